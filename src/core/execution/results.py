# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Execution outcome contract.

Every dispatch returns an ExecutionResult: ``success`` with an opaque
``result`` payload for the UI, or an ``error`` carrying a stable code and
every detail the caller needs. ``next_steps`` is how a capability's
``dependencies.suggest_after`` reaches the user.
"""

from typing import Any

from pydantic import Field

from src.core.capabilities.models import CamelModel
from src.core.errors import ErrorCode


class ExecutionError(CamelModel):
    """Structured failure."""

    code: ErrorCode
    message: str
    details: Any = None


class NextSteps(CamelModel):
    """Follow-up suggestions after a dispatch."""

    suggested_capabilities: list[str] = Field(default_factory=list)
    message: str | None = None
    quick_replies: list[str] = Field(default_factory=list)


class ExecutionResult(CamelModel):
    """Outcome of dispatching one capability.

    Attributes:
        success: Whether the side effect was performed.
        capability_id: The dispatched capability.
        result: Payload interpreted by the UI (opaque here).
        error: Failure details when ``success`` is False.
        next_steps: Suggested follow-ups.
        execution_time_ms: Wall time of the dispatch.
    """

    success: bool
    capability_id: str
    result: Any = None
    error: ExecutionError | None = None
    next_steps: NextSteps | None = None
    execution_time_ms: float = 0.0

    @classmethod
    def ok(
        cls,
        capability_id: str,
        result: Any = None,
        next_steps: NextSteps | None = None,
    ) -> "ExecutionResult":
        return cls(
            success=True,
            capability_id=capability_id,
            result=result,
            next_steps=next_steps,
        )

    @classmethod
    def failure(
        cls,
        capability_id: str,
        code: ErrorCode,
        message: str,
        details: Any = None,
    ) -> "ExecutionResult":
        return cls(
            success=False,
            capability_id=capability_id,
            error=ExecutionError(code=code, message=message, details=details),
        )

    @property
    def error_code(self) -> ErrorCode | None:
        """Shortcut to ``error.code``."""
        return self.error.code if self.error else None
