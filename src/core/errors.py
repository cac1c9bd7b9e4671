# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error taxonomy of the capability engine.

Every engine exception carries a stable ``code`` that the resolver maps
onto one of the typed response shapes:

- invalid-argument: parameters fail schema validation at dispatch time
- not-found: capability id missing from the registry snapshot
- ambiguous-intent: no confident match (surfaced as a message, not a fault)
- execution-failure: wizard/API/prompt collaborator raised
- malformed-llm-output: function-calling output could not be parsed or matched
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes exposed to callers."""

    INVALID_ARGUMENT = "invalid-argument"
    NOT_FOUND = "not-found"
    AMBIGUOUS_INTENT = "ambiguous-intent"
    EXECUTION_FAILURE = "execution-failure"
    MALFORMED_LLM_OUTPUT = "malformed-llm-output"


class EngineError(Exception):
    """Base exception for capability engine errors.

    Attributes:
        message: Error description.
        code: Stable error code.
        details: Structured details for callers.
        original_error: Original exception if any.
    """

    code: ErrorCode = ErrorCode.EXECUTION_FAILURE

    def __init__(
        self,
        message: str,
        details: Any = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.details = details
        self.original_error = original_error
        super().__init__(self.message)


class CapabilityNotFoundError(EngineError):
    """Raised when a requested capability is not in the registry.

    Attributes:
        capability_id: Id of the capability that was not found.
        available: Ids that are registered.
    """

    code = ErrorCode.NOT_FOUND

    def __init__(self, capability_id: str, available: list[str]):
        self.capability_id = capability_id
        self.available = available
        super().__init__(
            f"Capability '{capability_id}' not found. "
            f"Available: {', '.join(available) or '(none)'}",
            details={"capabilityId": capability_id},
        )


class DuplicateCapabilityError(EngineError):
    """Raised when registering an id that already exists."""

    code = ErrorCode.INVALID_ARGUMENT

    def __init__(self, capability_id: str):
        self.capability_id = capability_id
        super().__init__(
            f"Capability '{capability_id}' is already registered. "
            f"Use replace() to override."
        )


class CapabilityLoadError(EngineError):
    """Raised when a capability document cannot be loaded or validated.

    Attributes:
        source: File or document id the error refers to.
    """

    code = ErrorCode.INVALID_ARGUMENT

    def __init__(self, source: str, reason: str, original_error: Exception | None = None):
        self.source = source
        self.reason = reason
        super().__init__(
            f"Invalid capability document '{source}': {reason}",
            original_error=original_error,
        )


class MalformedLLMOutputError(EngineError):
    """Raised when function-calling output cannot be parsed or matched.

    Attributes:
        raw_output: The (truncated) text that failed to parse.
    """

    code = ErrorCode.MALFORMED_LLM_OUTPUT

    def __init__(
        self,
        message: str,
        raw_output: str | None = None,
        original_error: Exception | None = None,
    ):
        self.raw_output = raw_output[:500] if raw_output else raw_output
        super().__init__(message, original_error=original_error)


class ParameterValidationError(EngineError):
    """Raised when parameters fail schema validation.

    Attributes:
        errors: Every field error found (never just the first).
    """

    code = ErrorCode.INVALID_ARGUMENT

    def __init__(self, capability_id: str, errors: list[Any]):
        self.capability_id = capability_id
        self.errors = errors
        super().__init__(
            f"Invalid parameters for '{capability_id}': {len(errors)} error(s)",
            details=errors,
        )


class ExecutionFailureError(EngineError):
    """Raised by execution collaborators (generation API, prompts, processors)."""

    code = ErrorCode.EXECUTION_FAILURE
