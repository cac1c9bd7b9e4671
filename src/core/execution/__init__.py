# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Execution of resolved capability calls.

Usage:
    from src.core.execution import ExecutionDispatcher, ExecutorCallbacks

    dispatcher = ExecutionDispatcher(generation_client, prompt_runner)
    result = await dispatcher.execute(capability, params, callbacks)
"""

from src.core.execution.analytics import AnalyticsRecorder
from src.core.execution.dispatcher import (
    ExecutionDispatcher,
    ExecutorCallbacks,
    RecordingCallbacks,
    WizardTriggerPayload,
    sanitize_for_logging,
)
from src.core.execution.generation import GenerationAPIError, GenerationClient
from src.core.execution.processors import (
    UnknownProcessorError,
    register_postprocessor,
    register_preprocessor,
)
from src.core.execution.prompts import PromptLibrary, PromptNotFoundError, PromptRunner, PromptTemplate
from src.core.execution.results import ExecutionError, ExecutionResult, NextSteps
from src.core.execution.validation import FieldError, ValidationOutcome, validate_parameters

__all__ = [
    "AnalyticsRecorder",
    "ExecutionDispatcher",
    "ExecutorCallbacks",
    "RecordingCallbacks",
    "WizardTriggerPayload",
    "sanitize_for_logging",
    "GenerationAPIError",
    "GenerationClient",
    "UnknownProcessorError",
    "register_preprocessor",
    "register_postprocessor",
    "PromptLibrary",
    "PromptNotFoundError",
    "PromptRunner",
    "PromptTemplate",
    "ExecutionError",
    "ExecutionResult",
    "NextSteps",
    "FieldError",
    "ValidationOutcome",
    "validate_parameters",
]
