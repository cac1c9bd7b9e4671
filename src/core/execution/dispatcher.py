# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Execution Dispatcher: performs a resolved capability's side effect.

Dispatch is a switch on ``capability.execution.type``:

- wizard: hand the wizard payload to ``callbacks.on_wizard_trigger``
- direct_api: preprocess, call the generation endpoint, postprocess
- prompt_based: render the prompt template and generate text
- hybrid: run the declared steps in order, stopping at the first failure

Parameters are validated first for every type; an invalid call never
reaches a collaborator. Every dispatch updates analytics, best-effort.

Example:
    dispatcher = ExecutionDispatcher(GenerationClient(), prompt_runner, AnalyticsRecorder())
    result = await dispatcher.execute(capability, {"topic": "שברים"}, callbacks)
    if result.success:
        print(result.result)
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from src.core.capabilities.models import (
    Capability,
    CapabilityCategory,
    DirectApiExecution,
    HybridExecution,
    PromptExecution,
    WizardExecution,
)
from src.core.errors import (
    EngineError,
    ErrorCode,
    ExecutionFailureError,
    ParameterValidationError,
)
from src.core.execution.analytics import AnalyticsRecorder
from src.core.execution.generation import GenerationClient
from src.core.execution.processors import (
    build_wizard_data,
    run_postprocessors,
    run_preprocessors,
)
from src.core.execution.prompts import PromptRunner
from src.core.execution.results import ExecutionResult, NextSteps
from src.core.execution.validation import validate_parameters
from src.core.intelligence.llm.client import LLMError

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = ("password", "token", "secret", "apikey", "key")
MAX_LOG_STRING = 500
MAX_LOG_ITEMS = 10

DEFAULT_QUICK_REPLIES_AFTER = ["צור עוד", "סיום"]
WIZARD_QUICK_REPLIES = ["בטל", "שנה הגדרות"]


def sanitize_for_logging(data: Any, max_length: int = MAX_LOG_STRING) -> Any:
    """Redact secrets and truncate large values before logging."""
    if isinstance(data, str):
        return data if len(data) <= max_length else data[:max_length] + "..."
    if isinstance(data, (list, tuple)):
        items = [sanitize_for_logging(item, max_length) for item in data[:MAX_LOG_ITEMS]]
        if len(data) > MAX_LOG_ITEMS:
            items.append("...")
        return items
    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            if any(marker in str(key).lower() for marker in SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = sanitize_for_logging(value, max_length)
        return sanitized
    return data


@dataclass
class WizardTriggerPayload:
    """What the UI needs to open a wizard."""

    wizard_component: str
    wizard_mode: str
    params: dict[str, Any]
    wizard_data: dict[str, Any]
    api_endpoint: str | None = None


@dataclass
class ExecutorCallbacks:
    """Collaborator hooks called synchronously during dispatch."""

    on_wizard_trigger: Callable[[WizardTriggerPayload], None] | None = None
    on_static_content_generated: Callable[[Any], None] | None = None


class RecordingCallbacks(ExecutorCallbacks):
    """Callbacks that keep every event, for transports that reply later."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []
        super().__init__(
            on_wizard_trigger=self._record_wizard,
            on_static_content_generated=self._record_static,
        )

    def _record_wizard(self, payload: WizardTriggerPayload) -> None:
        self.events.append(
            {
                "event": "wizard_trigger",
                "wizardComponent": payload.wizard_component,
                "wizardMode": payload.wizard_mode,
                "params": payload.params,
                "wizardData": payload.wizard_data,
            }
        )

    def _record_static(self, content: Any) -> None:
        self.events.append({"event": "static_content_generated", "content": content})


class CallbackError(ExecutionFailureError):
    """Raised when a UI callback fails during dispatch."""


@dataclass
class _StepContext:
    callbacks: ExecutorCallbacks | None
    notified_static: bool = False
    results: list[Any] = field(default_factory=list)


class ExecutionDispatcher:
    """Dispatches validated capability calls to their collaborators."""

    def __init__(
        self,
        generation_client: GenerationClient | None = None,
        prompt_runner: PromptRunner | None = None,
        analytics: AnalyticsRecorder | None = None,
    ):
        self._generation = generation_client
        self._prompts = prompt_runner
        self.analytics = analytics or AnalyticsRecorder()

    async def execute(
        self,
        capability: Capability,
        params: dict[str, Any],
        callbacks: ExecutorCallbacks | None = None,
    ) -> ExecutionResult:
        """Validate and dispatch one capability call.

        Returns:
            ExecutionResult. Validation failures are ``invalid-argument``
            (listing every field error); collaborator failures are
            ``execution-failure``.

        Raises:
            Exception: Unexpected faults that are not collaborator errors.
        """
        started = time.perf_counter()
        logger.info(
            "Dispatching %s (%s) params=%s",
            capability.id,
            capability.execution.type,
            sanitize_for_logging(params),
        )

        result: ExecutionResult | None = None
        try:
            try:
                valid_params = validate_parameters(capability, params).raise_for_errors(capability.id)
            except ParameterValidationError as e:
                result = ExecutionResult.failure(
                    capability.id,
                    e.code,
                    f"{len(e.errors)} invalid parameter(s)",
                    details=[error.model_dump() for error in e.errors],
                )
                return result

            try:
                payload = await self._run(
                    capability, capability.execution, valid_params, _StepContext(callbacks)
                )
            except (EngineError, LLMError) as e:
                logger.warning("Execution of %s failed: %s", capability.id, e.message)
                details = getattr(e, "details", None)
                result = ExecutionResult.failure(
                    capability.id, ErrorCode.EXECUTION_FAILURE, e.message, details=details
                )
                return result

            result = ExecutionResult.ok(capability.id, payload, self._next_steps(capability))
            return result

        finally:
            elapsed = (time.perf_counter() - started) * 1000
            if result is not None:
                result.execution_time_ms = round(elapsed, 2)
            self.analytics.record(
                capability.id, bool(result and result.success), elapsed
            )

    async def execute_many(
        self,
        requests: list[tuple[Capability, dict[str, Any]]],
        callbacks: ExecutorCallbacks | None = None,
    ) -> list[ExecutionResult]:
        """Execute calls in order, stopping after the first failure."""
        results: list[ExecutionResult] = []
        for capability, params in requests:
            result = await self.execute(capability, params, callbacks)
            results.append(result)
            if not result.success:
                break
        return results

    # -------------------------------------------------------------------------
    # Per-type handlers
    # -------------------------------------------------------------------------

    async def _run(
        self,
        capability: Capability,
        execution: Any,
        params: dict[str, Any],
        context: _StepContext,
    ) -> Any:
        if isinstance(execution, WizardExecution):
            return self._run_wizard(capability, execution, params, context)
        if isinstance(execution, DirectApiExecution):
            return await self._run_direct_api(capability, execution, params, context)
        if isinstance(execution, PromptExecution):
            return await self._run_prompt(capability, execution, params, context)
        if isinstance(execution, HybridExecution):
            return await self._run_hybrid(capability, execution, params, context)
        raise ExecutionFailureError(f"Unsupported execution type: {execution.type}")

    def _run_wizard(
        self,
        capability: Capability,
        execution: WizardExecution,
        params: dict[str, Any],
        context: _StepContext,
    ) -> dict[str, Any]:
        wizard_data = run_preprocessors(
            capability,
            execution.preprocessors,
            build_wizard_data(capability, params, wizard_mode=execution.wizard_mode),
        )
        payload = WizardTriggerPayload(
            wizard_component=execution.wizard_component,
            wizard_mode=execution.wizard_mode,
            params=params,
            wizard_data=wizard_data,
            api_endpoint=execution.api_endpoint,
        )
        if context.callbacks and context.callbacks.on_wizard_trigger:
            self._invoke(context.callbacks.on_wizard_trigger, payload, "on_wizard_trigger")
        logger.info("Wizard triggered: %s/%s", execution.wizard_component, execution.wizard_mode)
        result = {"action": "wizard_triggered", "wizardData": wizard_data}
        return run_postprocessors(capability, execution.postprocessors, result)

    async def _run_direct_api(
        self,
        capability: Capability,
        execution: DirectApiExecution,
        params: dict[str, Any],
        context: _StepContext,
    ) -> Any:
        if self._generation is None:
            raise ExecutionFailureError("No generation client configured")
        request = run_preprocessors(capability, execution.preprocessors, params)
        response = await self._generation.call(execution.api_endpoint, execution.api_method, request)
        result = run_postprocessors(capability, execution.postprocessors, response)
        self._notify_static(capability, result, context)
        return result

    async def _run_prompt(
        self,
        capability: Capability,
        execution: PromptExecution,
        params: dict[str, Any],
        context: _StepContext,
    ) -> Any:
        if self._prompts is None:
            raise ExecutionFailureError("No prompt runner configured")
        prompt_params = run_preprocessors(capability, execution.preprocessors, params)
        generated = await self._prompts.run(execution.prompt_id, prompt_params)
        result = run_postprocessors(capability, execution.postprocessors, generated)
        self._notify_static(capability, result, context)
        return result

    async def _run_hybrid(
        self,
        capability: Capability,
        execution: HybridExecution,
        params: dict[str, Any],
        context: _StepContext,
    ) -> dict[str, Any]:
        step_params = run_preprocessors(capability, execution.preprocessors, params)
        previous: Any = None
        for index, step in enumerate(execution.steps):
            current = dict(step_params)
            if previous is not None:
                current["previousResult"] = previous
            try:
                previous = await self._run(capability, step, current, context)
            except (EngineError, LLMError) as e:
                logger.warning(
                    "Hybrid step %d (%s) of %s failed", index, step.type, capability.id
                )
                raise ExecutionFailureError(
                    f"Step {index + 1} ({step.type}) failed: {e.message}",
                    details={"step": index, "type": step.type},
                    original_error=e,
                ) from e
            context.results.append(previous)
        result = {"steps": list(context.results), "result": previous}
        return run_postprocessors(capability, execution.postprocessors, result)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _invoke(callback: Callable[[Any], None], value: Any, name: str) -> None:
        try:
            callback(value)
        except Exception as e:
            raise CallbackError(f"Callback {name} failed: {e}", original_error=e) from e

    def _notify_static(self, capability: Capability, content: Any, context: _StepContext) -> None:
        if capability.category != CapabilityCategory.STATIC_CONTENT or context.notified_static:
            return
        if context.callbacks and context.callbacks.on_static_content_generated:
            self._invoke(
                context.callbacks.on_static_content_generated,
                content,
                "on_static_content_generated",
            )
            context.notified_static = True

    @staticmethod
    def _next_steps(capability: Capability) -> NextSteps:
        suggested = list(capability.dependencies.suggest_after)
        if capability.execution.type == "wizard":
            return NextSteps(
                suggested_capabilities=suggested,
                message=f"מצוין! פותחים את האשף: {capability.name}",
                quick_replies=list(WIZARD_QUICK_REPLIES),
            )
        return NextSteps(
            suggested_capabilities=suggested,
            message=f"✅ {capability.name} הושלם!",
            quick_replies=list(capability.ui.quick_replies_after or DEFAULT_QUICK_REPLIES_AFTER),
        )
