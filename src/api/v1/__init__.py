# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    capabilities: Capability catalogue and seeding endpoints.
    chat: Conversation endpoints (resolve an utterance, reset a session).
    analytics: Capability usage analytics.
"""

from fastapi import APIRouter

from src.api.v1 import analytics, capabilities, chat

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(capabilities.router, prefix="/capabilities", tags=["Capabilities"])
router.include_router(chat.router, prefix="/chat", tags=["Chat"])
router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
