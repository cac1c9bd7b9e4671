# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Semantic Ranker: scores candidate capabilities against an utterance.

The score (0-100) is a weighted sum of three signals, each in [0, 1]:

- trigger strength: keyword/pattern hits from the trigger matcher, plus
  the capability name appearing verbatim
- description similarity: cosine similarity of embeddings when both
  vectors are available, otherwise lexical token coverage
- example resemblance: closeness to a stored few-shot utterance

Adjustments after weighting: a bonus for a near-literal example match,
x0.8 for deprecated entries, -10 when the capability's contexts do not
admit the active content mode, x0.5 when an exclusion term vetoed it.

Ranking is synchronous. Embeddings are only computed by ``index()`` (for
capabilities) and by the caller (for the utterance).

Example:
    ranker = SemanticRanker(tie_margin=5.0)
    await ranker.index(snapshot.matchable(), embedding_service)
    ranked = ranker.rank(utterance, candidates, matches, content_mode)
    ranked[0].capability.id, ranked[0].score
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol, Sequence

from src.core.capabilities.models import Capability, CapabilityStatus
from src.core.intelligence.embeddings.service import cosine_similarity
from src.core.resolution.content_mode import ContentMode
from src.core.resolution.text import coverage, normalize_text, tokenize
from src.core.resolution.triggers import TriggerMatch, context_matches

logger = logging.getLogger(__name__)

TRIGGER_WEIGHT = 0.45
DESCRIPTION_WEIGHT = 0.30
EXAMPLE_WEIGHT = 0.25

EXAMPLE_BONUS_THRESHOLD = 0.8
EXAMPLE_BONUS = 10.0
DEPRECATED_FACTOR = 0.8
CONTEXT_MISMATCH_PENALTY = 10.0
EXCLUSION_FACTOR = 0.5


class Embedder(Protocol):
    """Anything that can embed a batch of texts (EmbeddingService does)."""

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        ...


@dataclass
class RankedCapability:
    """A scored candidate.

    Attributes:
        capability: The candidate.
        score: Confidence 0-100.
        matched_triggers: Keywords and patterns that fired.
        reasoning: Human-readable explanation of the score.
        context_match: Whether the capability admits the active content mode.
    """

    capability: Capability
    score: float
    matched_triggers: list[str] = field(default_factory=list)
    reasoning: str = ""
    context_match: bool = True


def _trigger_strength(match: TriggerMatch | None, capability: Capability, normalized: str) -> float:
    if match is not None and match.excluded_by:
        return 0.0
    hits = match.hit_count if match is not None else 0
    strength = min(1.0, 0.6 + 0.2 * (hits - 1)) if hits else 0.0
    name = normalize_text(capability.name)
    if name and name in normalized:
        strength = min(1.0, strength + 0.2)
    return strength


def _text_similarity(left: list[str], right: list[str]) -> float:
    """Symmetric lexical similarity: mean coverage in both directions."""
    return (coverage(left, right) + coverage(right, left)) / 2


class SemanticRanker:
    """Scores and orders candidate capabilities.

    Attributes:
        tie_margin: Score distance under which candidates count as tied.
    """

    def __init__(self, tie_margin: float = 5.0):
        self.tie_margin = tie_margin
        self._vectors: dict[str, list[float]] = {}

    @property
    def indexed_ids(self) -> list[str]:
        """Capabilities that have a description embedding."""
        return list(self._vectors)

    async def index(self, capabilities: Iterable[Capability], embedder: Embedder) -> int:
        """Embed the short descriptions of ``capabilities``.

        Returns:
            Number of capabilities indexed.
        """
        items = list(capabilities)
        if not items:
            return 0
        texts = [c.short_description or c.name for c in items]
        vectors = await embedder.embed_batch(texts)
        indexed = 0
        for capability, vector in zip(items, vectors):
            if vector:
                self._vectors[capability.id] = vector
                indexed += 1
        logger.info("Indexed %d capability descriptions", indexed)
        return indexed

    def _description_similarity(
        self,
        capability: Capability,
        utterance_tokens: list[str],
        utterance_vector: Sequence[float] | None,
    ) -> tuple[float, str]:
        vector = self._vectors.get(capability.id)
        if utterance_vector and vector:
            return max(0.0, cosine_similarity(list(utterance_vector), vector)), "embedding"
        description = tokenize(f"{capability.short_description} {capability.name}")
        return coverage(utterance_tokens, description), "lexical"

    @staticmethod
    def _example_resemblance(capability: Capability, normalized: str, utterance_tokens: list[str]) -> float:
        best = 0.0
        for example in capability.examples:
            if normalize_text(example.user_message) == normalized:
                return 1.0
            best = max(best, _text_similarity(utterance_tokens, tokenize(example.user_message)))
        return best

    def score(
        self,
        utterance: str,
        capability: Capability,
        match: TriggerMatch | None = None,
        content_mode: ContentMode | None = None,
        utterance_vector: Sequence[float] | None = None,
    ) -> RankedCapability:
        """Score a single candidate."""
        normalized = normalize_text(utterance)
        tokens = tokenize(utterance)

        strength = _trigger_strength(match, capability, normalized)
        description, method = self._description_similarity(capability, tokens, utterance_vector)
        example = self._example_resemblance(capability, normalized, tokens)

        score = 100.0 * (
            TRIGGER_WEIGHT * strength + DESCRIPTION_WEIGHT * description + EXAMPLE_WEIGHT * example
        )
        notes: list[str] = []
        matched = []
        if match is not None:
            matched = match.matched_keywords + match.matched_patterns
        if matched:
            notes.append(f"triggers: {', '.join(matched)}")
        notes.append(f"description {method} {description:.2f}")
        if example >= EXAMPLE_BONUS_THRESHOLD:
            score += EXAMPLE_BONUS
            notes.append(f"example match {example:.2f}")

        if capability.status == CapabilityStatus.DEPRECATED:
            score *= DEPRECATED_FACTOR
            notes.append("deprecated")

        context_match = (
            match.context_match if match is not None else context_matches(capability, content_mode)
        )
        if not context_match:
            score -= CONTEXT_MISMATCH_PENALTY
            notes.append(f"context mismatch ({content_mode.value if content_mode else '-'})")

        if match is not None and match.excluded_by:
            score *= EXCLUSION_FACTOR
            notes.append(f"excluded by: {', '.join(match.excluded_by)}")

        return RankedCapability(
            capability=capability,
            score=round(max(0.0, min(100.0, score)), 2),
            matched_triggers=matched,
            reasoning="; ".join(notes),
            context_match=context_match,
        )

    def rank(
        self,
        utterance: str,
        candidates: Iterable[Capability],
        matches: Iterable[TriggerMatch] = (),
        content_mode: ContentMode | None = None,
        utterance_vector: Sequence[float] | None = None,
    ) -> list[RankedCapability]:
        """Score and order candidates.

        Args:
            utterance: Raw user text.
            candidates: Capabilities to score.
            matches: Trigger matches for (a superset of) the candidates.
            content_mode: Active content-mode hint.
            utterance_vector: Utterance embedding, when available.

        Returns:
            Candidates ordered by score, ties resolved by context match,
            then complexity, then menu order.
        """
        by_id = {m.capability_id: m for m in matches}
        scored = [
            self.score(utterance, c, by_id.get(c.id), content_mode, utterance_vector)
            for c in candidates
        ]
        ranked = self._order(scored)
        if ranked:
            logger.debug(
                "Ranked %d candidates, top=%s (%.1f)",
                len(ranked),
                ranked[0].capability.id,
                ranked[0].score,
            )
        return ranked

    def _order(self, scored: list[RankedCapability]) -> list[RankedCapability]:
        """Sort by score, then break near-ties.

        Candidates whose score is within ``tie_margin`` of the best score of
        their group form one tie group, ordered by the tie-break keys.
        """
        by_score = sorted(scored, key=lambda r: (-r.score, r.capability.id))
        ordered: list[RankedCapability] = []
        index = 0
        while index < len(by_score):
            head = by_score[index].score
            group = [r for r in by_score[index:] if head - r.score <= self.tie_margin]
            group.sort(
                key=lambda r: (
                    not r.context_match,
                    r.capability.complexity.rank,
                    r.capability.ui.menu_order,
                    -r.score,
                    r.capability.id,
                )
            )
            ordered.extend(group)
            index += len(group)
        return ordered
