# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the application factory of the capability engine
HTTP surface.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.core.engine import CapabilityEngine
from src.core.errors import CapabilityNotFoundError, EngineError, ErrorCode
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the CapabilityEngine (unless one was injected), loads the
    capability catalogue on startup and releases clients on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    logger.info("Starting capability engine API (environment=%s)", settings.environment)

    engine: CapabilityEngine | None = getattr(app.state, "engine", None)
    if engine is None:
        engine = CapabilityEngine.from_settings(settings)
        app.state.engine = engine

    await engine.start()

    yield

    try:
        await engine.close()
    except Exception as e:
        logger.warning("Error closing capability engine: %s", str(e))

    logger.info("Shutting down capability engine API")


async def capability_not_found_handler(request: Request, exc: CapabilityNotFoundError) -> JSONResponse:
    """Map unknown capability ids to 404."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": exc.message, "code": exc.code.value},
    )


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Map remaining engine errors to 400 (bad input) or 502 (collaborator)."""
    status_code = (
        status.HTTP_400_BAD_REQUEST
        if exc.code == ErrorCode.INVALID_ARGUMENT
        else status.HTTP_502_BAD_GATEWAY
    )
    logger.warning("Engine error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "code": exc.code.value})


def create_app(engine: CapabilityEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        engine: Pre-built engine (tests, embedding in another process).
            Built from settings during startup when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Capability Engine API",
        description="Resolves teacher requests into content-creation capabilities",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    if engine is not None:
        app.state.engine = engine

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(CapabilityNotFoundError, capability_not_found_handler)
    app.add_exception_handler(EngineError, engine_error_handler)

    # =========================================================================
    # Middleware
    # =========================================================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
