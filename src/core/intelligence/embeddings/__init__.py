# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Embedding service module using LiteLLM.

Used by the semantic ranker to compare utterances with capability short
descriptions when embeddings are enabled (``EMBEDDING_ENABLED=true``).

Example:
    >>> from src.core.intelligence.embeddings import EmbeddingService
    >>> service = EmbeddingService(model="ollama/nomic-embed-text")
    >>> vector = await service.embed_text("שיעור על שברים")
"""

from src.core.intelligence.embeddings.service import (
    EmbeddingError,
    EmbeddingService,
    cosine_similarity,
)

__all__ = ["EmbeddingError", "EmbeddingService", "cosine_similarity"]
