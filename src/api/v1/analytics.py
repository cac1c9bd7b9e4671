# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capability usage analytics endpoints.

Example:
    GET /api/v1/analytics
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_engine
from src.core.capabilities.models import CapabilityAnalytics
from src.core.engine import CapabilityEngine

router = APIRouter()


@router.get("", response_model=dict[str, CapabilityAnalytics])
async def get_analytics(engine: CapabilityEngine = Depends(get_engine)) -> dict[str, CapabilityAnalytics]:
    """Usage counters per capability since startup."""
    return engine.analytics()
