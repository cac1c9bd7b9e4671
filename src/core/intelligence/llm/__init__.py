# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""LLM client module using LiteLLM.

Components:
- LLMClient: text completions (prompt-based capabilities) and tool
  calling (the function-calling oracle)

Example:
    >>> from src.core.intelligence.llm import LLMClient
    >>> client = LLMClient()
    >>> response = await client.complete("כתוב מכתב להורים")
    >>> print(response.content)
"""

from src.core.intelligence.llm.client import (
    LLMClient,
    LLMError,
    LLMResponse,
    LLMToolResponse,
    ToolCall,
)

__all__ = [
    "LLMClient",
    "LLMError",
    "LLMResponse",
    "LLMToolResponse",
    "ToolCall",
]
