# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conversation API endpoints.

- POST /sessions/{session_id}/messages - Resolve one utterance
- POST /sessions/{session_id}/reset - Clear a session

Wizard triggers and generated static content happen during dispatch; over
HTTP they are returned as ``events`` next to the resolution response.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import get_engine
from src.core.capabilities.models import CamelModel
from src.core.engine import CapabilityEngine
from src.core.execution.dispatcher import RecordingCallbacks
from src.core.resolution.responses import ResolutionResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatMessageRequest(BaseModel):
    """A user utterance."""

    utterance: str = Field(min_length=1, max_length=4000, description="User text")


class ChatMessageResponse(CamelModel):
    """Resolution of one utterance plus the UI events it produced."""

    session_id: str
    response: ResolutionResponse
    events: list[dict[str, Any]] = Field(default_factory=list)


class ResetResponse(CamelModel):
    """Reset acknowledgement."""

    session_id: str
    reset: bool = True


@router.post("/sessions/{session_id}/messages", response_model=ChatMessageResponse)
async def send_message(
    session_id: str,
    request: ChatMessageRequest,
    engine: CapabilityEngine = Depends(get_engine),
) -> ChatMessageResponse:
    """Resolve an utterance within a session."""
    callbacks = RecordingCallbacks()
    response = await engine.handle_message(session_id, request.utterance, callbacks)
    return ChatMessageResponse(session_id=session_id, response=response, events=callbacks.events)


@router.post("/sessions/{session_id}/reset", response_model=ResetResponse)
async def reset_session(
    session_id: str,
    engine: CapabilityEngine = Depends(get_engine),
) -> ResetResponse:
    """Clear a session's conversation state. Idempotent."""
    engine.reset(session_id)
    return ResetResponse(session_id=session_id)
