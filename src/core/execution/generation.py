# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""HTTP client for the external content-generation endpoints.

``direct_api`` capabilities name an endpoint (``generateStaticContent``,
``generateMicroActivity``...). The client appends it to the configured
base URL and sends the preprocessed payload as JSON.
"""

import logging
from typing import Any

import httpx

from src.core.config.settings import GenerationAPISettings, get_settings
from src.core.errors import ExecutionFailureError

logger = logging.getLogger(__name__)


class GenerationAPIError(ExecutionFailureError):
    """Raised when a generation endpoint fails.

    Attributes:
        endpoint: Endpoint that failed.
        status_code: HTTP status, when a response was received.
    """

    def __init__(
        self,
        message: str,
        endpoint: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ):
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(
            message,
            details={"endpoint": endpoint, "statusCode": status_code},
            original_error=original_error,
        )


class GenerationClient:
    """Async client for generation endpoints.

    Example:
        client = GenerationClient()
        payload = await client.call("generateStaticContent", "POST", {...})
        await client.close()
    """

    def __init__(
        self,
        settings: GenerationAPISettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings().generation_api
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        """Base URL the endpoint names are appended to."""
        return self._settings.base_url.rstrip("/")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self._settings.api_key:
                headers["Authorization"] = f"Bearer {self._settings.api_key.get_secret_value()}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._settings.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def call(self, endpoint: str, method: str, payload: dict[str, Any]) -> Any:
        """Call an endpoint and return its decoded JSON body.

        Raises:
            GenerationAPIError: On transport errors, non-2xx statuses or a
                body that is not JSON.
        """
        client = self._get_client()
        path = f"/{endpoint.lstrip('/')}"

        try:
            if method.upper() == "GET":
                response = await client.get(path, params=payload)
            else:
                response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.error("Generation endpoint %s unreachable: %s", endpoint, str(e))
            raise GenerationAPIError(
                f"Generation endpoint '{endpoint}' unreachable: {e}",
                endpoint=endpoint,
                original_error=e,
            ) from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except Exception:
                detail = response.text
            raise GenerationAPIError(
                f"Generation endpoint '{endpoint}' failed: {response.status_code} {detail}",
                endpoint=endpoint,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise GenerationAPIError(
                f"Generation endpoint '{endpoint}' returned invalid JSON",
                endpoint=endpoint,
                status_code=response.status_code,
                original_error=e,
            ) from e

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
