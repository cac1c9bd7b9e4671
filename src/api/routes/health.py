# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.dependencies import get_engine
from src.core.config import get_settings
from src.core.config.settings import LLMSettings
from src.core.engine import CapabilityEngine

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    message: str | None = Field(None, description="Additional status message")


class LLMProviderHealth(BaseModel):
    """LLM provider configuration status."""
    status: str = Field(description="Provider status")
    url: str | None = Field(None, description="Provider URL")


class ComponentsHealth(BaseModel):
    """All components health status."""
    registry: ComponentHealth | None = None
    embeddings: ComponentHealth | None = None
    llm_providers: dict[str, LLMProviderHealth] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    components: ComponentsHealth = Field(default_factory=ComponentsHealth)


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


def check_registry(engine: CapabilityEngine) -> ComponentHealth:
    """A registry without active capabilities cannot resolve anything."""
    active = len(engine.list_capabilities())
    if active == 0:
        return ComponentHealth(status="unhealthy", message="No active capabilities loaded")
    return ComponentHealth(status="healthy", message=f"{active} active capabilities")


def check_embeddings(engine: CapabilityEngine) -> ComponentHealth:
    """Embeddings are optional; missing vectors degrade ranking only."""
    if not engine.settings.embedding.enabled:
        return ComponentHealth(status="disabled")
    indexed = len(engine.resolver.ranker.indexed_ids)
    if indexed == 0:
        return ComponentHealth(status="degraded", message="No capability descriptions indexed")
    return ComponentHealth(status="healthy", message=f"{indexed} descriptions indexed")


def check_llm_providers(llm: LLMSettings) -> dict[str, LLMProviderHealth]:
    """Report which LLM providers are configured."""
    providers: dict[str, LLMProviderHealth] = {}
    if llm.default_provider == "ollama" or llm.ollama_api_key:
        providers["ollama"] = LLMProviderHealth(status="configured", url=llm.ollama_base_url)
    if llm.openai_api_key:
        providers["openai"] = LLMProviderHealth(status="configured", url="https://api.openai.com")
    if llm.anthropic_api_key:
        providers["anthropic"] = LLMProviderHealth(status="configured", url="https://api.anthropic.com")
    if llm.google_api_key:
        providers["google"] = LLMProviderHealth(
            status="configured", url="https://generativelanguage.googleapis.com"
        )
    return providers


@router.get("/health", response_model=HealthResponse)
async def health_check(engine: CapabilityEngine = Depends(get_engine)) -> HealthResponse:
    """Check if the API is healthy with component details.

    Returns:
        HealthResponse with detailed status.
    """
    settings = get_settings()
    registry = check_registry(engine)
    embeddings = check_embeddings(engine)

    if registry.status == "unhealthy":
        overall_status = "unhealthy"
    elif embeddings.status == "degraded":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
        components=ComponentsHealth(
            registry=registry,
            embeddings=embeddings,
            llm_providers=check_llm_providers(settings.llm),
        ),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(engine: CapabilityEngine = Depends(get_engine)) -> ReadinessResponse:
    """Check if the API is ready to accept traffic."""
    registry = check_registry(engine)
    return ReadinessResponse(
        ready=registry.status == "healthy",
        checks={"registry": {"status": registry.status, "message": registry.message}},
    )
