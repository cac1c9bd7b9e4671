# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for named pre/post-processors."""

from collections.abc import Callable
from typing import Any

import pytest

from src.core.capabilities import Capability, RegistrySnapshot
from src.core.errors import ErrorCode
from src.core.execution.processors import (
    UnknownProcessorError,
    build_additional_instructions,
    build_wizard_data,
    get_postprocessor,
    get_preprocessor,
    map_to_static_content_request,
    register_postprocessor,
    register_preprocessor,
    run_postprocessors,
    run_preprocessors,
    unwrap_data,
)


@pytest.mark.unit
class TestProcessorRegistry:
    """Tests for registering and looking up processors."""

    def test_builtins_registered(self) -> None:
        """Test that the built-in processors are available by name."""
        assert get_preprocessor("mapToStaticContentRequest") is map_to_static_content_request
        assert get_preprocessor("buildWizardData") is build_wizard_data
        assert get_postprocessor("unwrapData") is unwrap_data

    def test_unknown_name_raises(self) -> None:
        """Test that unknown names are execution failures."""
        with pytest.raises(UnknownProcessorError) as exc_info:
            get_preprocessor("doesNotExist")

        assert exc_info.value.code == ErrorCode.EXECUTION_FAILURE
        assert exc_info.value.kind == "preprocessor"

    def test_custom_processors_run_in_order(
        self, make_capability: Callable[..., Capability]
    ) -> None:
        """Test that processors are chained in the listed order."""

        @register_preprocessor("testAddGrade")
        def add_grade(capability: Capability, params: dict[str, Any]) -> dict[str, Any]:
            return {**params, "grade": "ד"}

        @register_postprocessor("testCount")
        def count(capability: Capability, payload: Any) -> Any:
            return len(payload)

        capability = make_capability()

        payload = run_preprocessors(capability, ["testAddGrade"], {"topic": "שברים"})
        result = run_postprocessors(capability, ["unwrapData", "testCount"], {"data": [1, 2, 3]})

        assert payload == {"topic": "שברים", "grade": "ד"}
        assert result == 3

    def test_no_preprocessors_copies_params(
        self, make_capability: Callable[..., Capability]
    ) -> None:
        """Test that params pass through without being shared."""
        params = {"topic": "שברים"}

        payload = run_preprocessors(make_capability(), [], params)

        assert payload == params
        assert payload is not params


@pytest.mark.unit
class TestStaticContentRequest:
    """Tests for mapToStaticContentRequest."""

    def test_worksheet_request(self, snapshot: RegistrySnapshot) -> None:
        """Test the worksheet request shape."""
        request = map_to_static_content_request(
            snapshot.get("generate_worksheet"),
            {"topic": "שברים", "grade": "ד", "questionCount": 12, "includeAnswerKey": False},
        )

        assert request == {
            "contentType": "worksheet",
            "topic": "שברים",
            "grade": "ד",
            "subject": None,
            "additionalInstructions": "מספר שאלות: 12. ללא מפתח תשובות",
        }

    def test_letter_uses_subject_as_topic(self, snapshot: RegistrySnapshot) -> None:
        """Test that letters are sent with their subject as topic."""
        request = map_to_static_content_request(
            snapshot.get("generate_letter"),
            {"subject": "טיול שנתי", "tone": "warm"},
        )

        assert request["contentType"] == "letter"
        assert request["topic"] == "טיול שנתי"
        assert request["additionalInstructions"] == "טון: warm"

    def test_rubric_uses_assignment_type(self, snapshot: RegistrySnapshot) -> None:
        """Test the rubric mapping."""
        request = map_to_static_content_request(
            snapshot.get("generate_rubric"),
            {"assignmentType": "עבודת חקר", "criteria": ["מקורות", "ניסוח"], "levels": 4},
        )

        assert request["contentType"] == "rubric"
        assert request["topic"] == "עבודת חקר"
        assert request["additionalInstructions"] == "קריטריונים: מקורות, ניסוח. רמות הערכה: 4"

    def test_previous_step_result_forwarded(self, snapshot: RegistrySnapshot) -> None:
        """Test that a hybrid step's previous result is passed on."""
        request = map_to_static_content_request(
            snapshot.get("generate_worksheet"),
            {"topic": "שברים", "previousResult": {"content": "טיוטה"}},
        )

        assert request["previousResult"] == {"content": "טיוטה"}

    def test_unknown_capability_is_custom(
        self, make_capability: Callable[..., Capability]
    ) -> None:
        """Test the fallback content type."""
        request = map_to_static_content_request(make_capability(), {"topic": "x"})

        assert request["contentType"] == "custom"

    def test_no_extra_params_no_instructions(self) -> None:
        """Test that nothing extra means empty instructions."""
        assert build_additional_instructions({"topic": "שברים"}) == ""


@pytest.mark.unit
class TestWizardData:
    """Tests for buildWizardData."""

    def test_lesson_defaults(self, snapshot: RegistrySnapshot) -> None:
        """Test the wizard defaults for a lesson."""
        data = build_wizard_data(snapshot.get("create_interactive_lesson"), {"topic": "חלל"})

        assert data["productType"] == "lesson"
        assert data["topic"] == "חלל"
        assert data["activityLength"] == "medium"
        assert data["difficultyLevel"] == "core"
        assert data["profile"] == "balanced"
        assert data["includeBot"] is True
        assert "itemCount" not in data

    def test_explicit_values_win(self, snapshot: RegistrySnapshot) -> None:
        """Test that supplied values override wizard defaults."""
        data = build_wizard_data(
            snapshot.get("create_interactive_activity"),
            {"topic": "פעלים", "profile": "game", "includeBot": False, "questionTypes": ["matching"]},
        )

        assert data["productType"] == "activity"
        assert data["profile"] == "game"
        assert data["includeBot"] is False
        assert data["customQuestionTypes"] == ["matching"]

    def test_micro_activity_fields(self, snapshot: RegistrySnapshot) -> None:
        """Test the extra micro-activity fields."""
        data = build_wizard_data(
            snapshot.get("create_micro_activity"),
            {"topic": "חיות", "activityType": "memory_game"},
        )

        assert data["activityType"] == "memory_game"
        assert data["itemCount"] == 6
        assert data["sourceType"] == "topic"

    def test_hybrid_uses_wizard_step_mode(
        self, make_capability: Callable[..., Capability]
    ) -> None:
        """Test that a hybrid capability takes its wizard step's mode."""
        capability = make_capability(
            execution={
                "type": "hybrid",
                "steps": [
                    {"type": "prompt_based", "promptId": "draft"},
                    {
                        "type": "wizard",
                        "wizardComponent": "ContentCreationWizard",
                        "wizardMode": "exam",
                    },
                ],
            },
        )

        assert build_wizard_data(capability, {"topic": "חלל"})["productType"] == "exam"
        assert (
            build_wizard_data(capability, {"topic": "חלל"}, wizard_mode="lesson")["productType"]
            == "lesson"
        )


@pytest.mark.unit
class TestUnwrapData:
    """Tests for unwrapData."""

    def test_wrapped_payload(self, make_capability: Callable[..., Capability]) -> None:
        """Test that a data envelope is removed."""
        assert unwrap_data(make_capability(), {"data": {"id": 1}, "meta": {}}) == {"id": 1}

    def test_unwrapped_payload(self, make_capability: Callable[..., Capability]) -> None:
        """Test that other payloads are returned unchanged."""
        assert unwrap_data(make_capability(), [1, 2]) == [1, 2]
        assert unwrap_data(make_capability(), {"id": 1}) == {"id": 1}
