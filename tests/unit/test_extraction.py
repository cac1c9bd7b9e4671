# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for deterministic parameter extraction."""

import pytest

from src.core.capabilities import ParameterSpec, RegistrySnapshot
from src.core.resolution.extraction import (
    extract_field_value,
    extract_grade,
    extract_params,
    extract_quick_replies,
    extract_topic,
    normalize_grade,
)


@pytest.mark.unit
class TestGrades:
    """Tests for grade parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("שיעור לכיתה ד", "ד"),
            ("מבחן לכיתה 4", "ד"),
            ("דף עבודה כיתה ה'", "ה"),
            ("חזרה לכיתות יא", "יא"),
            ("שיעור בכיתה 10", "י"),
            ("שיעור על שברים", None),
        ],
    )
    def test_extract_grade(self, text: str, expected: str | None) -> None:
        """Test grade clauses in several spellings."""
        assert extract_grade(text) == expected

    def test_normalize_grade(self) -> None:
        """Test digit and geresh normalisation."""
        assert normalize_grade("12") == "יב"
        assert normalize_grade("ג'") == "ג"
        assert normalize_grade("13") == "13"


@pytest.mark.unit
class TestTopics:
    """Tests for topic extraction."""

    def test_topic_before_grade_clause(self) -> None:
        """Test that the grade clause is cut off the topic."""
        assert extract_topic("תכין לי שיעור על מחזור המים לכיתה ד") == "מחזור המים"

    def test_topic_after_benose(self) -> None:
        """Test the ``בנושא`` marker and trailing punctuation."""
        assert extract_topic("צור מבחן בנושא מערכת השמש.") == "מערכת השמש"

    def test_no_topic_marker(self) -> None:
        """Test that requests without a topic marker yield nothing."""
        assert extract_topic("צור פעילות") is None

    def test_extract_params_for_lesson(self, snapshot: RegistrySnapshot) -> None:
        """Test topic and grade extraction against a capability schema."""
        lesson = snapshot.get("create_interactive_lesson")

        params = extract_params(lesson, "תכין לי שיעור על מחזור המים לכיתה ד")

        assert params == {"topic": "מחזור המים", "grade": "ד"}

    def test_extract_params_ignores_unknown_fields(self, snapshot: RegistrySnapshot) -> None:
        """Test that only fields in the schema are extracted."""
        letter = snapshot.get("generate_letter")

        params = extract_params(letter, "מכתב להורים על טיול שנתי לכיתה ג")

        assert params == {}


@pytest.mark.unit
class TestFieldValues:
    """Tests for reading clarification replies."""

    def test_string_reply_drops_leading_preposition(self) -> None:
        """Test that "על שברים" answers a topic question with "שברים"."""
        spec = ParameterSpec(type="string")

        assert extract_field_value(spec, "topic", "על שברים") == "שברים"
        assert extract_field_value(spec, "topic", "בנושא חלל!") == "חלל"

    def test_blank_reply(self) -> None:
        """Test that a blank reply yields nothing."""
        assert extract_field_value(ParameterSpec(), "topic", "  ?  ") is None

    def test_enum_reply(self) -> None:
        """Test enum values by value and by Hebrew label."""
        spec = ParameterSpec(type="enum", enumValues=["short", "medium", "long"])

        assert extract_field_value(spec, "activityLength", "medium") == "medium"
        assert extract_field_value(spec, "activityLength", "קצרה בבקשה") == "short"
        assert extract_field_value(spec, "activityLength", "לא משנה לי") is None

    def test_number_reply(self) -> None:
        """Test numeric replies."""
        spec = ParameterSpec(type="number")

        assert extract_field_value(spec, "itemCount", "בערך 12 שאלות") == 12
        assert extract_field_value(spec, "duration", "2.5") == 2.5
        assert extract_field_value(spec, "itemCount", "הרבה") is None

    def test_boolean_reply(self) -> None:
        """Test yes/no replies."""
        spec = ParameterSpec(type="boolean")

        assert extract_field_value(spec, "includeBot", "כן בבקשה") is True
        assert extract_field_value(spec, "includeBot", "לא") is False
        assert extract_field_value(spec, "includeBot", "אולי") is None

    def test_grade_reply(self) -> None:
        """Test bare and clause grade replies."""
        spec = ParameterSpec(type="string")

        assert extract_field_value(spec, "grade", "ד'") == "ד"
        assert extract_field_value(spec, "grade", "7") == "ז"
        assert extract_field_value(spec, "grade", "לכיתה ה") == "ה"
        assert extract_field_value(spec, "grade", "כל השכבות") is None

    def test_array_reply(self) -> None:
        """Test comma-separated list replies."""
        spec = ParameterSpec(type="array")

        assert extract_field_value(spec, "questionTypes", "התאמה, מיון ,סידור") == [
            "התאמה",
            "מיון",
            "סידור",
        ]


@pytest.mark.unit
class TestQuickReplies:
    """Tests for quick replies pulled from model text."""

    def test_bullets_and_numbers(self) -> None:
        """Test bullet and numbered lines, with length limits."""
        text = "על איזה נושא?\n- שברים\n• גאומטריה\n1. חיבור וחיסור\n* x\nסתם שורה"

        assert extract_quick_replies(text) == ["שברים", "גאומטריה", "חיבור וחיסור"]

    def test_limit(self) -> None:
        """Test that at most ``limit`` replies are returned."""
        text = "\n".join(f"- אפשרות {i}" for i in range(6))

        assert extract_quick_replies(text, limit=4) == [f"אפשרות {i}" for i in range(4)]

    def test_empty_text(self) -> None:
        """Test that empty text yields nothing."""
        assert extract_quick_replies("") == []
