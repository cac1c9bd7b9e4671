# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Named pre/post-processors referenced by execution descriptors.

Capability documents name processors as strings
(``preprocessors: [mapToStaticContentRequest]``); this module maps those
names to pure functions.

- A preprocessor receives ``(capability, params)`` and returns the request
  payload for the target endpoint.
- A postprocessor receives ``(capability, payload)`` and returns the value
  stored as the execution result.

Usage:
    @register_preprocessor("myMapping")
    def my_mapping(capability, params):
        return {...}
"""

import logging
from typing import Any, Callable

from src.core.capabilities.models import Capability, HybridExecution, WizardExecution
from src.core.errors import ExecutionFailureError

logger = logging.getLogger(__name__)

Preprocessor = Callable[[Capability, dict[str, Any]], dict[str, Any]]
Postprocessor = Callable[[Capability, Any], Any]

_preprocessors: dict[str, Preprocessor] = {}
_postprocessors: dict[str, Postprocessor] = {}


class UnknownProcessorError(ExecutionFailureError):
    """Raised when a descriptor names a processor that is not registered."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"Unknown {kind} '{name}'", details={"processor": name})


def register_preprocessor(name: str) -> Callable[[Preprocessor], Preprocessor]:
    """Register a preprocessor under ``name`` (decorator)."""

    def decorator(func: Preprocessor) -> Preprocessor:
        _preprocessors[name] = func
        return func

    return decorator


def register_postprocessor(name: str) -> Callable[[Postprocessor], Postprocessor]:
    """Register a postprocessor under ``name`` (decorator)."""

    def decorator(func: Postprocessor) -> Postprocessor:
        _postprocessors[name] = func
        return func

    return decorator


def get_preprocessor(name: str) -> Preprocessor:
    """Look up a preprocessor.

    Raises:
        UnknownProcessorError: If the name is not registered.
    """
    try:
        return _preprocessors[name]
    except KeyError:
        raise UnknownProcessorError("preprocessor", name) from None


def get_postprocessor(name: str) -> Postprocessor:
    """Look up a postprocessor.

    Raises:
        UnknownProcessorError: If the name is not registered.
    """
    try:
        return _postprocessors[name]
    except KeyError:
        raise UnknownProcessorError("postprocessor", name) from None


def run_preprocessors(
    capability: Capability, names: list[str], params: dict[str, Any]
) -> dict[str, Any]:
    """Apply preprocessors in order; no names means the params pass through."""
    payload = dict(params)
    for name in names:
        payload = get_preprocessor(name)(capability, payload)
    return payload


def run_postprocessors(capability: Capability, names: list[str], payload: Any) -> Any:
    """Apply postprocessors in order."""
    for name in names:
        payload = get_postprocessor(name)(capability, payload)
    return payload


# =============================================================================
# Built-in processors
# =============================================================================

STATIC_CONTENT_TYPES: dict[str, str] = {
    "generate_worksheet": "worksheet",
    "generate_lesson_plan": "lesson_plan",
    "generate_letter": "letter",
    "generate_feedback": "feedback",
    "generate_rubric": "rubric",
    "generate_printable_test": "test",
}


def content_type_for(capability_id: str) -> str:
    """Static content type sent to the generation endpoint."""
    return STATIC_CONTENT_TYPES.get(capability_id, "custom")


def build_additional_instructions(params: dict[str, Any]) -> str:
    """Free-text instructions built from the params the request shape lacks."""
    instructions: list[str] = []
    if params.get("questionCount"):
        instructions.append(f"מספר שאלות: {params['questionCount']}")
    if params.get("duration"):
        instructions.append(f"זמן: {params['duration']} דקות")
    if params.get("includeAnswerKey") is False:
        instructions.append("ללא מפתח תשובות")
    if params.get("tone"):
        instructions.append(f"טון: {params['tone']}")
    if params.get("letterType"):
        instructions.append(f"סוג מכתב: {params['letterType']}")
    if isinstance(params.get("criteria"), list) and params["criteria"]:
        instructions.append(f"קריטריונים: {', '.join(map(str, params['criteria']))}")
    if isinstance(params.get("objectives"), list) and params["objectives"]:
        instructions.append(f"מטרות: {', '.join(map(str, params['objectives']))}")
    if params.get("levels"):
        instructions.append(f"רמות הערכה: {params['levels']}")
    return ". ".join(instructions)


@register_preprocessor("mapToStaticContentRequest")
def map_to_static_content_request(capability: Capability, params: dict[str, Any]) -> dict[str, Any]:
    """Map capability params onto the static-content generation request."""
    request = {
        "contentType": content_type_for(capability.id),
        "topic": params.get("topic") or params.get("subject") or params.get("assignmentType"),
        "grade": params.get("grade"),
        "subject": params.get("subject"),
        "additionalInstructions": build_additional_instructions(params),
    }
    if "previousResult" in params:
        request["previousResult"] = params["previousResult"]
    return request


def _wizard_mode_of(capability: Capability) -> str | None:
    execution = capability.execution
    if isinstance(execution, WizardExecution):
        return execution.wizard_mode
    if isinstance(execution, HybridExecution):
        for step in execution.steps:
            if isinstance(step, WizardExecution):
                return step.wizard_mode
    return None


@register_preprocessor("buildWizardData")
def build_wizard_data(
    capability: Capability,
    params: dict[str, Any],
    wizard_mode: str | None = None,
) -> dict[str, Any]:
    """Wizard payload with the wizard's own defaults filled in.

    ``wizard_mode`` names the wizard being opened. Without it the mode comes
    from the capability's wizard execution, or its first wizard step.
    """
    mode = wizard_mode or _wizard_mode_of(capability)
    data: dict[str, Any] = {
        "productType": mode,
        "topic": params.get("topic"),
        "grade": params.get("grade"),
        "subject": params.get("subject"),
        "activityLength": params.get("activityLength") or "medium",
        "difficultyLevel": params.get("difficultyLevel") or "core",
        "profile": params.get("profile") or "balanced",
        "includeBot": True if params.get("includeBot") is None else params["includeBot"],
        "questionCount": params.get("questionCount"),
        "customQuestionTypes": params.get("questionTypes"),
    }
    if capability.id == "create_micro_activity":
        data["activityType"] = params.get("activityType")
        data["itemCount"] = params.get("itemCount") or 6
        data["sourceType"] = params.get("sourceType") or "topic"
    return data


@register_postprocessor("unwrapData")
def unwrap_data(capability: Capability, payload: Any) -> Any:
    """Return ``payload["data"]`` when the endpoint wraps its result."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload
