# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Trigger Matcher: cheap deterministic candidate shortlist.

For each capability:

    triggered = (any keyword in utterance OR any pattern matches)
                AND NOT (any exclusion in utterance)

No network, no LLM, no scoring. Context tags only flag a mismatch with the
active content mode so the ranker can down-rank; they never eliminate.

Example:
    matcher = TriggerMatcher()
    matches = matcher.match("תכין לי שיעור על מחזור המים", snapshot.matchable())
    triggered_ids(matches)  # ['create_interactive_lesson', ...]
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from src.core.capabilities.models import Capability
from src.core.resolution.content_mode import ContentMode
from src.core.resolution.text import normalize_text

logger = logging.getLogger(__name__)


@dataclass
class TriggerMatch:
    """Candidacy of one capability for one utterance.

    Attributes:
        capability_id: Capability the match refers to.
        triggered: Whether the capability is a candidate.
        matched_keywords: Keywords found in the utterance.
        matched_patterns: Regex patterns that matched.
        excluded_by: Exclusion terms that vetoed the match.
        context_match: False when the active content mode is not among the
            capability's declared contexts.
    """

    capability_id: str
    triggered: bool
    matched_keywords: list[str] = field(default_factory=list)
    matched_patterns: list[str] = field(default_factory=list)
    excluded_by: list[str] = field(default_factory=list)
    context_match: bool = True

    @property
    def hit_count(self) -> int:
        """Number of keyword and pattern hits."""
        return len(self.matched_keywords) + len(self.matched_patterns)


def context_matches(capability: Capability, content_mode: ContentMode | None) -> bool:
    """Whether a capability's declared contexts admit the content mode.

    Capabilities without contexts, and turns without a content mode, always match.
    """
    if content_mode is None or not capability.triggers.contexts:
        return True
    return content_mode.context_tag in capability.triggers.contexts


def triggered_ids(matches: Iterable[TriggerMatch]) -> list[str]:
    """Ids of triggered capabilities, in match order."""
    return [m.capability_id for m in matches if m.triggered]


class TriggerMatcher:
    """Keyword/pattern/exclusion matcher with a compiled-pattern cache."""

    def __init__(self) -> None:
        self._pattern_cache: dict[str, re.Pattern[str] | None] = {}

    def _compile(self, pattern: str) -> re.Pattern[str] | None:
        if pattern not in self._pattern_cache:
            try:
                self._pattern_cache[pattern] = re.compile(pattern, re.IGNORECASE)
            except re.error as e:
                logger.debug("Skipping invalid trigger pattern %r: %s", pattern, str(e))
                self._pattern_cache[pattern] = None
        return self._pattern_cache[pattern]

    def match_one(
        self,
        utterance: str,
        capability: Capability,
        content_mode: ContentMode | None = None,
    ) -> TriggerMatch:
        """Match a single capability against an utterance."""
        normalized = normalize_text(utterance)
        return self._match_normalized(utterance, normalized, capability, content_mode)

    def _match_normalized(
        self,
        utterance: str,
        normalized: str,
        capability: Capability,
        content_mode: ContentMode | None,
    ) -> TriggerMatch:
        triggers = capability.triggers

        keywords = [
            keyword for keyword in triggers.keywords
            if (term := normalize_text(keyword)) and term in normalized
        ]

        patterns = []
        for pattern in triggers.patterns:
            compiled = self._compile(pattern)
            if compiled is not None and (
                compiled.search(utterance) or compiled.search(normalized)
            ):
                patterns.append(pattern)

        excluded_by = [
            term for term in triggers.exclusions
            if (normalized_term := normalize_text(term)) and normalized_term in normalized
        ]

        return TriggerMatch(
            capability_id=capability.id,
            triggered=bool(keywords or patterns) and not excluded_by,
            matched_keywords=keywords,
            matched_patterns=patterns,
            excluded_by=excluded_by,
            context_match=context_matches(capability, content_mode),
        )

    def match(
        self,
        utterance: str,
        capabilities: Iterable[Capability],
        content_mode: ContentMode | None = None,
    ) -> list[TriggerMatch]:
        """Match every capability against an utterance.

        Args:
            utterance: Raw user text.
            capabilities: Capabilities to consider (input order is kept).
            content_mode: Active content-mode hint, if any.

        Returns:
            One TriggerMatch per capability.
        """
        normalized = normalize_text(utterance)
        matches = [
            self._match_normalized(utterance, normalized, capability, content_mode)
            for capability in capabilities
        ]
        logger.debug(
            "Trigger matching: %d/%d triggered", len(triggered_ids(matches)), len(matches)
        )
        return matches
