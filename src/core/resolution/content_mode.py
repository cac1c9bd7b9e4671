# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Content-mode hints and new-topic detection.

Teachers ask for the same nouns ("שיעור", "מבחן") in two flavours: an
interactive item students go through in the system, or a static document
to print. Qualifiers in the utterance disambiguate the flavour.

A request that names a generic content noun without any qualifier is a
brand-new content request: it always wins over stale pending state from a
previous turn.
"""

from enum import Enum

from src.core.capabilities.models import CapabilityCategory


class ContentMode(str, Enum):
    """Disambiguated content flavour."""

    INTERACTIVE = "interactive"
    STATIC = "static"

    @property
    def context_tag(self) -> str:
        """Trigger context tag matching this mode (``interactive_mode``...)."""
        return f"{self.value}_mode"


# Generic top-level content nouns that do not say which flavour is wanted.
AMBIGUOUS_CONTENT_TERMS: tuple[str, ...] = (
    "מערך שיעור",
    "שיעור",
    "מבחן",
    "בוחן",
    "פעילות",
    "דף עבודה",
)

STATIC_INDICATORS: tuple[str, ...] = (
    "להדפסה",
    "מודפס",
    "pdf",
    "וורד",
    "word",
    "להורדה",
    "נייר",
    "למורה",
    "תכנון",
)

INTERACTIVE_INDICATORS: tuple[str, ...] = (
    "אינטראקטיבי",
    "דיגיטלי",
    "עם שאלות",
    "עם תמונות",
    "לתלמידים",
    "במערכת",
    "אונליין",
    "online",
)

# Markers used by the content-type quick replies.
INTERACTIVE_MARKERS: tuple[str, ...] = ("🖥",)
STATIC_MARKERS: tuple[str, ...] = ("📄",)

CATEGORY_CONTENT_MODES: dict[CapabilityCategory, ContentMode] = {
    CapabilityCategory.INTERACTIVE_CONTENT: ContentMode.INTERACTIVE,
    CapabilityCategory.STATIC_CONTENT: ContentMode.STATIC,
}


def detect_content_mode(utterance: str) -> ContentMode | None:
    """Detect an explicit content-mode qualifier.

    Print intent is the more specific signal, so static wins when both
    kinds of qualifier appear.
    """
    text = utterance.casefold()
    if any(marker in utterance for marker in STATIC_MARKERS) or any(
        indicator in text for indicator in STATIC_INDICATORS
    ):
        return ContentMode.STATIC
    if any(marker in utterance for marker in INTERACTIVE_MARKERS) or any(
        indicator in text for indicator in INTERACTIVE_INDICATORS
    ):
        return ContentMode.INTERACTIVE
    return None


def mentions_ambiguous_term(utterance: str) -> bool:
    """Whether the utterance names a generic content noun."""
    text = utterance.casefold()
    return any(term in text for term in AMBIGUOUS_CONTENT_TERMS)


def is_new_topic_request(utterance: str) -> bool:
    """A generic content noun with no content-mode qualifier."""
    return mentions_ambiguous_term(utterance) and detect_content_mode(utterance) is None


def content_mode_for_category(category: CapabilityCategory) -> ContentMode | None:
    """Content mode implied by a capability category, if any."""
    return CATEGORY_CONTENT_MODES.get(category)
