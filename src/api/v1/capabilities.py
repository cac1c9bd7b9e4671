# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capability catalogue API endpoints.

This module provides endpoints for the capability registry:
- GET / - List capabilities (filters: category, status, menu)
- GET /menu - Capabilities of the creation menu
- GET /{capability_id} - Get one capability
- POST /seed - Write the YAML seed catalogue into the registry

Example:
    GET /api/v1/capabilities?category=static_content
"""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from src.api.dependencies import get_engine
from src.core.capabilities import Capability, CapabilityCategory, CapabilityStatus, SeedReport
from src.core.engine import CapabilityEngine

logger = logging.getLogger(__name__)

router = APIRouter()


class SeedRequest(BaseModel):
    """Seeding options."""

    force: bool = Field(default=False, description="Replace existing documents")
    merge: bool = Field(default=False, description="Deep-merge into existing documents")


@router.get("", response_model=list[Capability])
async def list_capabilities(
    category: CapabilityCategory | None = Query(None, description="Filter by category"),
    status: CapabilityStatus | None = Query(None, description="Filter by status"),
    menu: bool | None = Query(None, description="Filter by menu visibility"),
    include_inactive: bool = Query(False, description="Include non-active capabilities"),
    engine: CapabilityEngine = Depends(get_engine),
) -> list[Capability]:
    """List capabilities sorted by category and menu order."""
    return engine.list_capabilities(
        category=category,
        status=status,
        menu=menu,
        include_inactive=include_inactive,
    )


@router.get("/menu", response_model=list[Capability])
async def get_menu(engine: CapabilityEngine = Depends(get_engine)) -> list[Capability]:
    """Capabilities shown in the creation menu, in menu order."""
    return engine.menu()


@router.get("/{capability_id}", response_model=Capability)
async def get_capability(
    capability_id: str,
    engine: CapabilityEngine = Depends(get_engine),
) -> Capability:
    """Get a capability by id.

    Raises:
        CapabilityNotFoundError: Mapped to 404 by the application.
    """
    return engine.get_capability(capability_id)


@router.post("/seed", response_model=SeedReport)
async def seed_capabilities(
    request: SeedRequest,
    engine: CapabilityEngine = Depends(get_engine),
) -> SeedReport:
    """Seed the registry from the bundled YAML documents."""
    logger.info("Seeding capabilities (force=%s, merge=%s)", request.force, request.merge)
    return await engine.seed(force=request.force, merge=request.merge)
