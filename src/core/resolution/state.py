# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-session conversation state.

A ConversationContext is owned by exactly one session and passed by
reference into every resolver call; nothing here is global. The
PendingExecution it may carry is rebuilt, never edited in place, so that
its invariants always hold:

- collected_params keys are a subset of the target capability's schema
- missing_fields is exactly the required parameters absent from
  collected_params, in schema order
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import ConfigDict

from src.core.capabilities.models import Capability, CamelModel, is_missing_value
from src.core.resolution.content_mode import ContentMode


class ResolverState(str, Enum):
    """Resolver state machine."""

    IDLE = "idle"
    AWAITING_PARAMETERS = "awaiting_parameters"
    EXECUTING = "executing"
    ERROR = "error"


class PendingExecution(CamelModel):
    """A capability waiting for more required parameters.

    Attributes:
        function_name: Id of the target capability.
        collected_params: Parameters accumulated across turns.
        missing_fields: Required parameters not yet supplied.
    """

    model_config = ConfigDict(frozen=True)

    function_name: str
    collected_params: dict[str, Any]
    missing_fields: list[str]

    @classmethod
    def for_capability(
        cls, capability: Capability, params: dict[str, Any]
    ) -> "PendingExecution":
        """Build a record for ``capability`` from raw parameters.

        Keys outside the schema and blank values are dropped.
        """
        collected = {
            key: value
            for key, value in params.items()
            if key in capability.parameters and not is_missing_value(value)
        }
        return cls(
            function_name=capability.id,
            collected_params=collected,
            missing_fields=capability.missing_required(collected),
        )

    @property
    def current_field(self) -> str | None:
        """The field the last clarification asked for."""
        return self.missing_fields[0] if self.missing_fields else None

    @property
    def is_complete(self) -> bool:
        """Whether every required parameter has been collected."""
        return not self.missing_fields

    def merge(self, capability: Capability, params: dict[str, Any]) -> "PendingExecution":
        """Merge newly supplied parameters (last writer wins per field)."""
        supplied = {k: v for k, v in params.items() if not is_missing_value(v)}
        return PendingExecution.for_capability(
            capability, {**self.collected_params, **supplied}
        )

    def without(self, capability: Capability, fields: list[str]) -> "PendingExecution":
        """Drop collected values, e.g. ones that failed validation."""
        kept = {k: v for k, v in self.collected_params.items() if k not in fields}
        return PendingExecution.for_capability(capability, kept)


@dataclass
class ConversationMessage:
    """A message in the conversation history."""

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ConversationContext:
    """Working memory of one conversation session.

    Attributes:
        session_id: Owning session.
        messages: Full message history.
        content_mode: Disambiguated content flavour, if any. Biases ranking
            without forcing it.
        pending_execution: Capability waiting for parameters, if any.
        state: Resolver state after the last turn.
        last_capability_id: Last capability that executed successfully.
        generation: Bumped by every reset. A turn that started under an
            older generation must not write its results back.
    """

    session_id: str
    messages: list[ConversationMessage] = field(default_factory=list)
    content_mode: ContentMode | None = None
    pending_execution: PendingExecution | None = None
    state: ResolverState = ResolverState.IDLE
    last_capability_id: str | None = None
    generation: int = 0

    def add_message(self, role: Literal["user", "assistant"], content: str) -> None:
        """Append a message to the history."""
        self.messages.append(ConversationMessage(role=role, content=content))

    def recent_messages(self, limit: int) -> list[ConversationMessage]:
        """The last ``limit`` messages (oldest first)."""
        if limit <= 0:
            return []
        return self.messages[-limit:]

    def set_pending(self, pending: PendingExecution | None) -> None:
        """Store a pending execution and update the state accordingly."""
        self.pending_execution = pending
        if pending is not None and pending.missing_fields:
            self.state = ResolverState.AWAITING_PARAMETERS
        elif self.state == ResolverState.AWAITING_PARAMETERS:
            self.state = ResolverState.IDLE

    def clear_pending(self) -> None:
        """Forget the pending execution."""
        self.set_pending(None)

    def clear_stale_state(self) -> None:
        """Drop both the pending execution and the content-mode hint."""
        self.content_mode = None
        self.clear_pending()

    def reset(self) -> None:
        """Clear everything and start a new generation. Idempotent."""
        self.messages = []
        self.content_mode = None
        self.pending_execution = None
        self.state = ResolverState.IDLE
        self.last_capability_id = None
        self.generation += 1

    def fork(self) -> "ConversationContext":
        """A working copy for one turn."""
        return replace(self, messages=list(self.messages))

    def commit(self, working: "ConversationContext", generation: int) -> bool:
        """Adopt a turn's working copy unless a reset happened meanwhile.

        Args:
            working: Copy returned by ``fork`` and mutated by the turn.
            generation: This context's generation when the turn forked.

        Returns:
            Whether the working copy was adopted.
        """
        if self.generation != generation:
            return False
        self.messages = working.messages
        self.content_mode = working.content_mode
        self.pending_execution = working.pending_execution
        self.state = working.state
        self.last_capability_id = working.last_capability_id
        self.generation = working.generation
        return True
