# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for content-mode detection."""

import pytest

from src.core.capabilities import CapabilityCategory
from src.core.resolution.content_mode import (
    ContentMode,
    content_mode_for_category,
    detect_content_mode,
    is_new_topic_request,
    mentions_ambiguous_term,
)


@pytest.mark.unit
class TestDetectContentMode:
    """Tests for detect_content_mode."""

    @pytest.mark.parametrize(
        "utterance",
        ["דף עבודה להדפסה על שברים", "מבחן PDF בחשבון", "📄 מסמך מודפס"],
    )
    def test_static_indicators(self, utterance: str) -> None:
        """Test that print qualifiers select the static mode."""
        assert detect_content_mode(utterance) == ContentMode.STATIC

    @pytest.mark.parametrize(
        "utterance",
        ["שיעור אינטראקטיבי על החלל", "בוחן דיגיטלי לתלמידים", "🖥 משהו במערכת"],
    )
    def test_interactive_indicators(self, utterance: str) -> None:
        """Test that digital qualifiers select the interactive mode."""
        assert detect_content_mode(utterance) == ContentMode.INTERACTIVE

    def test_static_wins_over_interactive(self) -> None:
        """Test that print intent is preferred when both qualifiers appear."""
        assert detect_content_mode("מבחן דיגיטלי וגם להדפסה") == ContentMode.STATIC

    def test_no_qualifier(self) -> None:
        """Test that an unqualified request has no mode."""
        assert detect_content_mode("שיעור על מחזור המים") is None

    def test_context_tag(self) -> None:
        """Test the trigger context tag of each mode."""
        assert ContentMode.INTERACTIVE.context_tag == "interactive_mode"
        assert ContentMode.STATIC.context_tag == "static_mode"


@pytest.mark.unit
class TestNewTopicRequest:
    """Tests for new-topic detection."""

    def test_generic_noun_without_qualifier(self) -> None:
        """Test that a bare content noun is a new request."""
        assert mentions_ambiguous_term("תכין לי שיעור") is True
        assert is_new_topic_request("תכין לי שיעור") is True

    def test_qualified_noun_is_not_new_topic(self) -> None:
        """Test that a qualified noun is a continuation, not a new request."""
        assert is_new_topic_request("מבחן להדפסה") is False

    def test_plain_reply_is_not_new_topic(self) -> None:
        """Test that a clarification answer is not a new request."""
        assert mentions_ambiguous_term("על שברים") is False
        assert is_new_topic_request("על שברים") is False


@pytest.mark.unit
class TestCategoryModes:
    """Tests for the category to mode mapping."""

    def test_content_categories_have_modes(self) -> None:
        """Test the two content categories."""
        assert content_mode_for_category(CapabilityCategory.INTERACTIVE_CONTENT) == ContentMode.INTERACTIVE
        assert content_mode_for_category(CapabilityCategory.STATIC_CONTENT) == ContentMode.STATIC

    def test_other_categories_have_none(self) -> None:
        """Test that non-content categories imply no mode."""
        assert content_mode_for_category(CapabilityCategory.UTILITY) is None
