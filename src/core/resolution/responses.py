# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Response shapes and user-facing Hebrew texts of the resolver."""

from typing import Literal

from pydantic import Field

from src.core.capabilities.models import CamelModel, Capability
from src.core.errors import ErrorCode
from src.core.execution.results import ExecutionResult
from src.core.resolution.oracle import FunctionCall
from src.core.resolution.state import PendingExecution

ResponseType = Literal["function_call", "clarification", "message", "error"]

WELCOME_MESSAGE = "היי! 👋 ספרו לי מה תרצו ליצור ואעזור לכם."
WELCOME_QUICK_REPLIES = ["צור שיעור", "צור פעילות", "צור מבחן", "דף עבודה להדפסה"]

GENERIC_ERROR_MESSAGE = "סליחה, משהו השתבש. אפשר לנסות שוב?"
GENERIC_ERROR_QUICK_REPLIES = ["נסה שוב", "התחל מחדש"]

RESET_MESSAGE = "התחלנו מחדש. " + WELCOME_MESSAGE

# (message, quick replies) per error code.
ERROR_MESSAGES: dict[ErrorCode, tuple[str, list[str]]] = {
    ErrorCode.NOT_FOUND: (
        "סליחה, לא הצלחתי להבין מה ביקשת. אפשר לנסות לנסח אחרת?",
        ["צור שיעור", "צור פעילות", "צור מבחן"],
    ),
    ErrorCode.INVALID_ARGUMENT: (
        "חלק מהפרטים לא תקינים. אפשר לתקן ולנסות שוב?",
        ["נסה שוב", "התחל מחדש"],
    ),
    ErrorCode.AMBIGUOUS_INTENT: (
        "לא בטוח שהבנתי. מה תרצו ליצור?",
        WELCOME_QUICK_REPLIES,
    ),
    ErrorCode.EXECUTION_FAILURE: (
        "משהו השתבש בתהליך היצירה. נסו שוב בעוד רגע.",
        ["נסה שוב", "צור משהו אחר"],
    ),
    ErrorCode.MALFORMED_LLM_OUTPUT: (
        "סליחה, לא הצלחתי להבין. אפשר לנסח את הבקשה אחרת?",
        ["צור שיעור", "צור פעילות", "התחל מחדש"],
    ),
}

FIELD_QUESTIONS: dict[str, str] = {
    "topic": "על איזה נושא?",
    "grade": "לאיזו כיתה?",
    "subject": "באיזה מקצוע?",
    "difficultyLevel": "באיזו רמת קושי?",
    "questionCount": "כמה שאלות?",
    "itemCount": "כמה פריטים?",
    "studentName": "מה שם התלמיד/ה?",
    "context": "על מה המשוב (עבודה, מבחן, התנהגות)?",
    "strengths": "אילו חוזקות תרצו לציין?",
    "improvements": "מה כדאי לשפר?",
    "letterType": "איזה סוג מכתב?",
    "tone": "באיזה טון לכתוב?",
    "duration": "כמה זמן?",
    "assignmentType": "איזו משימה נעריך?",
    "criteria": "אילו קריטריונים לכלול?",
    "levels": "כמה רמות הערכה?",
}


class ResolutionResponse(CamelModel):
    """Outcome of resolving one utterance.

    Attributes:
        type: ``function_call``, ``clarification``, ``message`` or ``error``.
        message: Text to show the user.
        quick_replies: Suggested replies.
        function_call: The resolved call (function_call responses).
        execution_result: Dispatch outcome (function_call and execution errors).
        pending_execution: Pending record after the turn (clarifications).
        error_code: Stable error code (error responses).
    """

    type: ResponseType
    message: str | None = None
    quick_replies: list[str] = Field(default_factory=list)
    function_call: FunctionCall | None = None
    execution_result: ExecutionResult | None = None
    pending_execution: PendingExecution | None = None
    error_code: ErrorCode | None = None


def error_response(
    code: ErrorCode,
    execution_result: ExecutionResult | None = None,
    pending: PendingExecution | None = None,
    message: str | None = None,
) -> ResolutionResponse:
    """Build an ``error`` response from the catalogue."""
    text, quick_replies = ERROR_MESSAGES.get(
        code, (GENERIC_ERROR_MESSAGE, GENERIC_ERROR_QUICK_REPLIES)
    )
    return ResolutionResponse(
        type="error",
        message=message or text,
        quick_replies=list(quick_replies),
        execution_result=execution_result,
        pending_execution=pending,
        error_code=code,
    )


def welcome_response(message: str = WELCOME_MESSAGE) -> ResolutionResponse:
    """A conversational ``message`` response with the generic quick replies."""
    return ResolutionResponse(
        type="message",
        message=message,
        quick_replies=list(WELCOME_QUICK_REPLIES),
    )


def field_question(capability: Capability, field: str, remaining: int = 0) -> str:
    """Question asking for one missing field.

    Args:
        capability: Target capability.
        field: Field to ask about.
        remaining: How many other fields are still missing after this one.
    """
    question = FIELD_QUESTIONS.get(field)
    if question is None:
        spec = capability.parameters.get(field)
        label = spec.description if spec and spec.description else field
        question = f"מה {label}?"
    if remaining > 0:
        question += f" (עוד {remaining} פרטים אחר כך)"
    return question


def field_quick_replies(capability: Capability, field: str, limit: int = 4) -> list[str]:
    """Quick replies for a field: enum values, else values seen in examples."""
    spec = capability.parameters.get(field)
    if spec is not None and spec.enum_values:
        return list(spec.enum_values[:limit])

    replies: list[str] = []
    for example in capability.examples:
        value = example.expected_params.get(field)
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            text = str(value)
            if text and text not in replies:
                replies.append(text)
    return replies[:limit]
