# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Intelligence module for AI-powered operations.

This module provides unified interfaces for:
- Embedding generation via LiteLLM (used by the semantic ranker)
- LLM completions and tool calling via LiteLLM (used by the
  function-calling oracle and prompt-based capabilities)

Example:
    >>> from src.core.intelligence import EmbeddingService, LLMClient
    >>> embedder = EmbeddingService()
    >>> vector = await embedder.embed_text("דף עבודה על כפל")
    >>> client = LLMClient()
    >>> response = await client.complete("כתוב משוב לתלמיד")
"""

from src.core.intelligence.embeddings import EmbeddingService
from src.core.intelligence.llm import LLMClient

__all__ = [
    # Embeddings
    "EmbeddingService",
    # LLM
    "LLMClient",
]
