# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependencies."""

from fastapi import HTTPException, Request, status

from src.core.engine import CapabilityEngine


def get_engine(request: Request) -> CapabilityEngine:
    """Get the capability engine built during application startup.

    Raises:
        HTTPException: 503 if the engine is not initialized.
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Capability engine not initialized",
        )
    return engine
