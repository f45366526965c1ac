# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    stats: Learning statistics endpoints (employee, team, org).
    webhooks: Learning sync webhook that schedules recomputation.
"""

from fastapi import APIRouter

from src.api.v1 import stats, webhooks

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(stats.router, prefix="/stats", tags=["Statistics"])
router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])

__all__ = ["router"]
