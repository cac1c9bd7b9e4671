# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Intent resolution: from an utterance to a capability call.

Pipeline of one turn:
    TriggerMatcher (shortlist) -> SemanticRanker (scores)
    -> FunctionCallingOracle (tool + args) -> IntentResolver (state machine)

Usage:
    from src.core.resolution import IntentResolver, SessionManager
"""

from src.core.resolution.content_mode import ContentMode, detect_content_mode, is_new_topic_request
from src.core.resolution.json_repair import parse_llm_json
from src.core.resolution.oracle import (
    CLARIFICATION_TOOL,
    CLARIFICATION_TOOL_NAME,
    FunctionCall,
    FunctionCallingOracle,
    LLMFunctionCallingOracle,
    NullOracle,
)
from src.core.resolution.ranker import RankedCapability, SemanticRanker
from src.core.resolution.resolver import IntentResolver, is_reset_command
from src.core.resolution.responses import ResolutionResponse
from src.core.resolution.sessions import ConversationSession, SessionManager
from src.core.resolution.state import (
    ConversationContext,
    ConversationMessage,
    PendingExecution,
    ResolverState,
)
from src.core.resolution.triggers import TriggerMatch, TriggerMatcher

__all__ = [
    # State
    "ConversationContext",
    "ConversationMessage",
    "PendingExecution",
    "ResolverState",
    "ContentMode",
    "detect_content_mode",
    "is_new_topic_request",
    # Matching and ranking
    "TriggerMatch",
    "TriggerMatcher",
    "RankedCapability",
    "SemanticRanker",
    # Oracle
    "CLARIFICATION_TOOL",
    "CLARIFICATION_TOOL_NAME",
    "FunctionCall",
    "FunctionCallingOracle",
    "LLMFunctionCallingOracle",
    "NullOracle",
    "parse_llm_json",
    # Resolver
    "IntentResolver",
    "ResolutionResponse",
    "is_reset_command",
    "ConversationSession",
    "SessionManager",
]
