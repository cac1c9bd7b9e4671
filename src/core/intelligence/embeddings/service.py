# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Embedding service used by the semantic ranker.

Capability short descriptions and incoming utterances are embedded with
the same model so the ranker can compare them by cosine similarity.

Supported providers:
- Ollama: nomic-embed-text, mxbai-embed-large - via direct httpx
- OpenAI / Cohere / Gemini - via LiteLLM

Note: Ollama embeddings use direct httpx calls because LiteLLM doesn't
properly pass the Authorization header for authenticated Ollama endpoints.

Example:
    >>> from src.core.intelligence.embeddings import EmbeddingService
    >>> service = EmbeddingService()
    >>> vector = await service.embed_text("שיעור על מחזור המים")
    >>> vectors = await service.embed_batch(["שיעור", "מבחן"])
"""

import logging
from typing import Any, Optional

import httpx
import litellm
from litellm import aembedding

from src.core.config.settings import EmbeddingSettings, get_settings

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Exception raised when embedding generation fails.

    Attributes:
        message: Error description.
        model: Model that caused the error.
        original_error: Original exception if any.
    """

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.model = model
        self.original_error = original_error
        super().__init__(self.message)


def cosine_similarity(vec1: list[float], vec2: list[float]) -> float:
    """Cosine similarity between two vectors (0.0 for zero vectors).

    Args:
        vec1: First embedding vector.
        vec2: Second embedding vector.

    Returns:
        Cosine similarity score between -1 and 1.
    """
    dot_product = sum(a * b for a, b in zip(vec1, vec2))
    norm1 = sum(a * a for a in vec1) ** 0.5
    norm2 = sum(b * b for b in vec2) ** 0.5

    if norm1 == 0 or norm2 == 0:
        return 0.0

    return dot_product / (norm1 * norm2)


class EmbeddingService:
    """Service for generating text embeddings via LiteLLM.

    Attributes:
        model: The embedding model identifier in LiteLLM format.
        batch_size: Maximum number of texts to embed in a single batch.

    Example:
        >>> service = EmbeddingService()
        >>> vector = await service.embed_text("דף עבודה להדפסה")
    """

    def __init__(
        self,
        model: Optional[str] = None,
        batch_size: Optional[int] = None,
        settings: Optional[EmbeddingSettings] = None,
    ):
        """Initialize the embedding service.

        Args:
            model: Embedding model in LiteLLM format. Falls back to settings.
            batch_size: Maximum batch size for embed_batch. Falls back to settings.
            settings: Embedding settings. Uses application settings if None.
        """
        self._settings = settings or get_settings().embedding
        self._model = model or self._settings.model
        self._batch_size = batch_size or self._settings.batch_size
        self._litellm_params = self._build_litellm_params()

        # Suppress LiteLLM verbose logging
        litellm.set_verbose = False

        logger.info(
            "EmbeddingService initialized with model=%s, batch_size=%d",
            self._model,
            self._batch_size,
        )

    def _build_litellm_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self._settings.api_base:
            params["api_base"] = self._settings.api_base
        if self._settings.api_key:
            params["api_key"] = self._settings.api_key.get_secret_value()
        return params

    def _is_ollama_provider(self) -> bool:
        return self._model.startswith("ollama/")

    async def _ollama_embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings using a direct Ollama API call.

        Raises:
            EmbeddingError: If the API call fails.
        """
        model_name = self._model.removeprefix("ollama/")
        api_base = self._settings.api_base or "http://localhost:11434"

        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key.get_secret_value()}"

        try:
            async with httpx.AsyncClient(timeout=60.0) as client:
                response = await client.post(
                    f"{api_base}/api/embed",
                    headers=headers,
                    json={"model": model_name, "input": texts},
                )
                response.raise_for_status()
                data = response.json()
                return data.get("embeddings", [])

        except httpx.HTTPStatusError as e:
            raise EmbeddingError(
                message=f"Ollama API error: {e.response.status_code} - {e.response.text}",
                model=self._model,
                original_error=e,
            ) from e
        except Exception as e:
            raise EmbeddingError(
                message=f"Failed to call Ollama embedding API: {str(e)}",
                model=self._model,
                original_error=e,
            ) from e

    @property
    def model(self) -> str:
        """Embedding model identifier in LiteLLM format."""
        return self._model

    @property
    def batch_size(self) -> int:
        """Maximum number of texts per batch."""
        return self._batch_size

    async def embed_text(self, text: str) -> list[float]:
        """Generate the embedding vector of a single text.

        Raises:
            EmbeddingError: If embedding generation fails.
            ValueError: If text is empty.
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for multiple texts.

        Texts are sent in chunks of ``batch_size``. Empty texts get an
        empty vector, which the ranker treats as "no embedding".

        Args:
            texts: Input texts.

        Returns:
            One vector per input text.

        Raises:
            EmbeddingError: If embedding generation fails.
            ValueError: If texts list is empty.
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        valid = [(i, text) for i, text in enumerate(texts) if text and text.strip()]
        result: list[list[float]] = [[] for _ in texts]

        try:
            for start in range(0, len(valid), self._batch_size):
                chunk = valid[start : start + self._batch_size]
                batch = [text for _, text in chunk]

                if self._is_ollama_provider():
                    batch_embeddings = await self._ollama_embed(batch)
                else:
                    response = await aembedding(
                        model=self._model,
                        input=batch,
                        **self._litellm_params,
                    )
                    batch_embeddings = [item["embedding"] for item in response.data]

                for (index, _), embedding in zip(chunk, batch_embeddings):
                    result[index] = embedding

            logger.debug("Generated %d embeddings", len(valid))
            return result

        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(
                "Failed to generate embeddings: model=%s, count=%d, error=%s",
                self._model,
                len(texts),
                str(e),
            )
            raise EmbeddingError(
                message=f"Failed to generate embeddings: {str(e)}",
                model=self._model,
                original_error=e,
            ) from e

    async def similarity(self, text1: str, text2: str) -> float:
        """Cosine similarity between the embeddings of two texts."""
        embeddings = await self.embed_batch([text1, text2])
        return cosine_similarity(embeddings[0], embeddings[1])

    def __repr__(self) -> str:
        return f"EmbeddingService(model={self._model!r}, batch_size={self._batch_size})"
