# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Session manager: one context and one lock per conversation.

Turns of the same session are serialized on an ``asyncio.Lock`` (waiters
are woken in FIFO order), so responses come back in request order and no
two turns mutate the same context concurrently. Different sessions never
share a lock and resolve independently.

The registry snapshot is taken after the lock is acquired, so a re-seed
that lands while a turn waits is visible to that turn, and a re-seed that
lands during a turn is not.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from src.core.capabilities.registry import CapabilityRegistry
from src.core.execution.dispatcher import ExecutorCallbacks
from src.core.resolution.resolver import IntentResolver
from src.core.resolution.responses import ResolutionResponse
from src.core.resolution.state import ConversationContext
from src.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)


@dataclass
class ConversationSession:
    """A session's context and the lock serializing its turns."""

    context: ConversationContext
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionManager:
    """Routes utterances to per-session contexts.

    Session lifetime (TTL eviction) belongs to the caller, which uses
    ``drop`` to forget a session.

    Example:
        manager = SessionManager(resolver, registry)
        response = await manager.handle("session-1", "צור פעילות")
    """

    def __init__(self, resolver: IntentResolver, registry: CapabilityRegistry):
        self.resolver = resolver
        self.registry = registry
        self._sessions: dict[str, ConversationSession] = {}

    def _get_or_create(self, session_id: str) -> ConversationSession:
        session = self._sessions.get(session_id)
        if session is None:
            session = ConversationSession(context=ConversationContext(session_id=session_id))
            self._sessions[session_id] = session
            logger.debug("Created session %s", session_id)
        return session

    async def handle(
        self,
        session_id: str,
        utterance: str,
        callbacks: ExecutorCallbacks | None = None,
    ) -> ResolutionResponse:
        """Resolve one utterance within its session, after earlier turns."""
        session = self._get_or_create(session_id)
        async with session.lock:
            bind_context(session_id=session_id)
            try:
                await self.registry.refresh()
                snapshot = self.registry.snapshot()
                return await self.resolver.resolve(utterance, session.context, snapshot, callbacks)
            finally:
                clear_context()

    def reset(self, session_id: str) -> None:
        """Clear a session's context. Unknown sessions are a no-op.

        Takes effect at once, without waiting for the session lock. A turn
        that is in flight keeps its response but its state is discarded.
        """
        session = self._sessions.get(session_id)
        if session is not None:
            session.context.reset()
            logger.info("Session %s reset", session_id)

    def drop(self, session_id: str) -> bool:
        """Forget a session entirely. Returns whether it existed."""
        return self._sessions.pop(session_id, None) is not None

    def get_context(self, session_id: str) -> ConversationContext | None:
        """The context of a session, if it exists."""
        session = self._sessions.get(session_id)
        return session.context if session else None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
