# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Intent Resolver: the per-turn state machine.

One call to ``IntentResolver.resolve`` handles one utterance of one
session:

1. Reset commands clear the conversation.
2. A new, unqualified content request clears stale pending state and the
   content-mode hint.
3. With a pending execution, the utterance fills its missing parameters.
   Otherwise the trigger matcher and the ranker shortlist capabilities and
   the function-calling oracle picks one (or the ranker's top candidate is
   taken when the oracle abstains and the score clears the floor).
4. The turn ends as a ``function_call`` (dispatched), a ``clarification``
   (pending stored), a conversational ``message`` or an ``error``.

The turn runs on a working copy of the context that is written back at the
end, unless the session was reset meanwhile. The caller owns serialization
of turns within a session (see ``sessions.SessionManager``).
"""

import logging
from typing import Any, Sequence

from src.core.capabilities.models import Capability, is_missing_value
from src.core.capabilities.registry import RegistrySnapshot
from src.core.config.settings import ResolverSettings, get_settings
from src.core.errors import ErrorCode, MalformedLLMOutputError
from src.core.execution.dispatcher import ExecutionDispatcher, ExecutorCallbacks
from src.core.execution.results import ExecutionResult
from src.core.intelligence.embeddings.service import EmbeddingError
from src.core.intelligence.llm.client import LLMError
from src.core.resolution.content_mode import (
    content_mode_for_category,
    detect_content_mode,
    is_new_topic_request,
    mentions_ambiguous_term,
)
from src.core.resolution.extraction import (
    extract_field_value,
    extract_params,
    extract_quick_replies,
)
from src.core.resolution.oracle import (
    CLARIFICATION_TOOL,
    FunctionCall,
    FunctionCallingOracle,
)
from src.core.resolution.ranker import Embedder, RankedCapability, SemanticRanker
from src.core.resolution.responses import (
    GENERIC_ERROR_MESSAGE,
    RESET_MESSAGE,
    ResolutionResponse,
    error_response,
    field_question,
    field_quick_replies,
    welcome_response,
)
from src.core.resolution.state import (
    ConversationContext,
    ConversationMessage,
    PendingExecution,
    ResolverState,
)
from src.core.resolution.triggers import TriggerMatcher, triggered_ids

logger = logging.getLogger(__name__)

RESET_COMMANDS: frozenset[str] = frozenset({"התחל מחדש", "איפוס", "reset", "/reset"})


def is_reset_command(utterance: str) -> bool:
    """Whether the utterance asks to start the conversation over."""
    return utterance.strip().casefold() in RESET_COMMANDS


class IntentResolver:
    """Turns utterances into dispatched calls, questions or replies.

    Attributes:
        matcher: Keyword/pattern pre-filter.
        ranker: Candidate scorer.
        oracle: Function-calling pass.
        dispatcher: Executes resolved calls.
        settings: Floors, margins and window sizes.
    """

    def __init__(
        self,
        matcher: TriggerMatcher,
        ranker: SemanticRanker,
        oracle: FunctionCallingOracle,
        dispatcher: ExecutionDispatcher,
        settings: ResolverSettings | None = None,
        embedder: Embedder | None = None,
    ):
        self.matcher = matcher
        self.ranker = ranker
        self.oracle = oracle
        self.dispatcher = dispatcher
        self.settings = settings or get_settings().resolver
        self._embedder = embedder

    async def resolve(
        self,
        utterance: str,
        context: ConversationContext,
        snapshot: RegistrySnapshot,
        callbacks: ExecutorCallbacks | None = None,
    ) -> ResolutionResponse:
        """Resolve one utterance against a registry snapshot.

        Args:
            utterance: Raw user text.
            context: The session's conversation context, updated when the turn ends.
            snapshot: Registry snapshot used for the whole turn.
            callbacks: UI hooks for dispatch side effects.

        Returns:
            ResolutionResponse for the turn. If the session is reset while
            the turn is in flight, the response is still returned but the
            turn's state changes are discarded.

        Raises:
            Exception: Faults outside the engine's control (anything that
                is not an LLM, parsing or collaborator error).
        """
        generation = context.generation
        working = context.fork()
        response = await self._resolve_turn(utterance, working, snapshot, callbacks)
        if not context.commit(working, generation):
            logger.info(
                "Session %s was reset during the turn, discarding its state",
                context.session_id,
            )
        return response

    async def _resolve_turn(
        self,
        utterance: str,
        context: ConversationContext,
        snapshot: RegistrySnapshot,
        callbacks: ExecutorCallbacks | None,
    ) -> ResolutionResponse:
        text = utterance.strip()

        if is_reset_command(text):
            logger.info("Session %s reset by user", context.session_id)
            context.reset()
            response = welcome_response(RESET_MESSAGE)
            self._record_turn(context, utterance, response)
            return response

        if context.state in (ResolverState.ERROR, ResolverState.EXECUTING):
            context.state = ResolverState.IDLE
            context.set_pending(context.pending_execution)

        history = context.recent_messages(self.settings.history_window)
        self._apply_content_mode(text, context, snapshot)

        try:
            if context.pending_execution is not None:
                response = await self._continue_pending(text, context, snapshot, history, callbacks)
            else:
                response = await self._resolve_fresh(text, context, snapshot, history, callbacks)
        except MalformedLLMOutputError as e:
            logger.warning("Malformed function-calling output: %s", e.message)
            context.clear_pending()
            context.state = ResolverState.ERROR
            response = error_response(ErrorCode.MALFORMED_LLM_OUTPUT)
        except LLMError as e:
            logger.error("Function-calling pass failed: %s", e.message)
            context.state = ResolverState.ERROR
            response = error_response(
                ErrorCode.EXECUTION_FAILURE,
                pending=context.pending_execution,
                message=GENERIC_ERROR_MESSAGE,
            )

        self._record_turn(context, utterance, response)
        return response

    # -------------------------------------------------------------------------
    # Turn phases
    # -------------------------------------------------------------------------

    def _apply_content_mode(
        self, text: str, context: ConversationContext, snapshot: RegistrySnapshot
    ) -> None:
        mode = detect_content_mode(text)
        has_stale_state = context.pending_execution is not None or context.content_mode is not None

        if has_stale_state and is_new_topic_request(text):
            logger.info("New content request in session %s, clearing stale state", context.session_id)
            context.clear_stale_state()
        elif mode is not None and context.pending_execution is not None and mentions_ambiguous_term(text):
            # A qualified request for the other content flavour also starts over.
            target = snapshot.get_optional(context.pending_execution.function_name)
            if target is not None and content_mode_for_category(target.category) not in (None, mode):
                logger.info("Content mode switched to %s, clearing pending execution", mode.value)
                context.clear_stale_state()

        if mode is not None:
            context.content_mode = mode

    async def _continue_pending(
        self,
        text: str,
        context: ConversationContext,
        snapshot: RegistrySnapshot,
        history: Sequence[ConversationMessage],
        callbacks: ExecutorCallbacks | None,
    ) -> ResolutionResponse:
        pending = context.pending_execution
        capability = snapshot.get_optional(pending.function_name)
        if capability is None:
            logger.warning("Pending capability %s no longer registered", pending.function_name)
            context.clear_pending()
            context.state = ResolverState.ERROR
            return error_response(ErrorCode.NOT_FOUND)

        call = await self.oracle.resolve_function_call(
            text, [capability.to_tool_definition()], history, hint=capability.id
        )

        supplied: dict[str, Any] = {}
        if call is not None and call.name == capability.id:
            supplied.update(call.args)

        current = pending.current_field
        if current is not None and is_missing_value(supplied.get(current)):
            value = extract_field_value(capability.parameters[current], current, text)
            if value is not None:
                supplied[current] = value

        merged = pending.merge(capability, supplied)
        logger.debug(
            "Pending %s: collected=%s missing=%s",
            capability.id,
            sorted(merged.collected_params),
            merged.missing_fields,
        )
        return await self._conclude(capability, merged, context, callbacks)

    async def _resolve_fresh(
        self,
        text: str,
        context: ConversationContext,
        snapshot: RegistrySnapshot,
        history: Sequence[ConversationMessage],
        callbacks: ExecutorCallbacks | None,
    ) -> ResolutionResponse:
        ranked = await self._shortlist(text, context, snapshot)
        top_n = ranked[: self.settings.top_n_tools]

        tools = [r.capability.to_tool_definition() for r in top_n] + [CLARIFICATION_TOOL]
        hint = top_n[0].capability.id if top_n else None
        call = await self.oracle.resolve_function_call(text, tools, history, hint=hint)

        if call is not None and call.is_clarification:
            return self._clarification_from_oracle(call)

        if call is not None:
            capability = snapshot.get_optional(call.name)
            if capability is None:
                raise MalformedLLMOutputError(f"Function call names unknown capability '{call.name}'")
            if not capability.is_matchable:
                raise MalformedLLMOutputError(f"Function call names disabled capability '{call.name}'")
            params = dict(call.args)
        elif top_n and top_n[0].score >= self.settings.confidence_floor:
            capability = top_n[0].capability
            params = extract_params(capability, text)
            logger.info(
                "Oracle abstained, taking top candidate %s (%.1f)", capability.id, top_n[0].score
            )
        else:
            best = f"{top_n[0].capability.id} ({top_n[0].score:.1f})" if top_n else "none"
            logger.info("No confident capability for utterance, best=%s", best)
            return welcome_response()

        pending = PendingExecution.for_capability(capability, params)
        return await self._conclude(capability, pending, context, callbacks)

    async def _shortlist(
        self, text: str, context: ConversationContext, snapshot: RegistrySnapshot
    ) -> list[RankedCapability]:
        matchable = snapshot.matchable()
        matches = self.matcher.match(text, matchable, context.content_mode)
        triggered = set(triggered_ids(matches))
        candidates = [c for c in matchable if c.id in triggered] or matchable
        vector = await self._embed_utterance(text)
        return self.ranker.rank(text, candidates, matches, context.content_mode, vector)

    async def _embed_utterance(self, text: str) -> list[float] | None:
        if self._embedder is None or not self.ranker.indexed_ids:
            return None
        try:
            vectors = await self._embedder.embed_batch([text])
        except EmbeddingError as e:
            logger.warning("Utterance embedding failed, ranking lexically: %s", e.message)
            return None
        return vectors[0] if vectors and vectors[0] else None

    # -------------------------------------------------------------------------
    # Outcomes
    # -------------------------------------------------------------------------

    async def _conclude(
        self,
        capability: Capability,
        pending: PendingExecution,
        context: ConversationContext,
        callbacks: ExecutorCallbacks | None,
    ) -> ResolutionResponse:
        if pending.missing_fields:
            context.set_pending(pending)
            current = pending.current_field
            return ResolutionResponse(
                type="clarification",
                message=field_question(capability, current, len(pending.missing_fields) - 1),
                quick_replies=field_quick_replies(capability, current),
                pending_execution=pending,
            )

        context.state = ResolverState.EXECUTING
        result = await self.dispatcher.execute(capability, pending.collected_params, callbacks)
        call = FunctionCall(name=capability.id, args=dict(pending.collected_params))

        if result.success:
            context.clear_pending()
            context.state = ResolverState.IDLE
            context.last_capability_id = capability.id
            mode = content_mode_for_category(capability.category)
            if mode is not None:
                context.content_mode = mode
            next_steps = result.next_steps
            return ResolutionResponse(
                type="function_call",
                message=next_steps.message if next_steps else None,
                quick_replies=list(next_steps.quick_replies) if next_steps else [],
                function_call=call,
                execution_result=result,
            )

        return self._execution_error(capability, pending, result, context)

    @staticmethod
    def _execution_error(
        capability: Capability,
        pending: PendingExecution,
        result: ExecutionResult,
        context: ConversationContext,
    ) -> ResolutionResponse:
        code = result.error_code or ErrorCode.EXECUTION_FAILURE
        if code == ErrorCode.INVALID_ARGUMENT:
            failing = _failing_fields(result)
            logger.info("Dropping invalid values for %s: %s", capability.id, failing)
            context.set_pending(pending.without(capability, failing))
        else:
            context.set_pending(pending)
        context.state = ResolverState.ERROR
        return error_response(
            code,
            execution_result=result,
            pending=context.pending_execution,
        )

    @staticmethod
    def _clarification_from_oracle(call: FunctionCall) -> ResolutionResponse:
        question = call.args.get("question") or GENERIC_ERROR_MESSAGE
        options = call.args.get("options")
        if isinstance(options, list) and options:
            quick_replies = [str(option) for option in options[:4]]
        else:
            quick_replies = extract_quick_replies(question)
        return ResolutionResponse(type="clarification", message=question, quick_replies=quick_replies)

    @staticmethod
    def _record_turn(
        context: ConversationContext, utterance: str, response: ResolutionResponse
    ) -> None:
        context.add_message("user", utterance)
        context.add_message("assistant", response.message or "")


def _failing_fields(result: ExecutionResult) -> list[str]:
    """Top-level parameter names reported by an invalid-argument result."""
    details = result.error.details if result.error else None
    fields: list[str] = []
    for item in details or []:
        name = item.get("field") if isinstance(item, dict) else None
        if name:
            top = name.split(".", 1)[0]
            if top not in fields:
                fields.append(top)
    return fields
