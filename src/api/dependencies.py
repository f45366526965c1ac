# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get authenticated users
- Get service instances

Example:
    @router.get("/stats/me")
    async def get_my_stats(
        current_user: CurrentUser = Depends(require_auth),
        service: StatsService = Depends(get_stats_service),
    ):
        ...
"""

import logging

from fastapi import HTTPException, Request, status

from src.api.middleware.auth import CurrentUser, get_current_user
from src.core.config import get_settings
from src.domains.stats import (
    MembershipResolver,
    SQLEventLog,
    SQLMembershipResolver,
    SQLProjectionStore,
    StatsService,
)
from src.infrastructure.database.connection import close_database, init_database

logger = logging.getLogger(__name__)

# Stats service singleton; holds the per-scope computation locks
_stats_service: StatsService | None = None
_membership: MembershipResolver | None = None


async def init_db() -> None:
    """Initialize the database connection pool."""
    await init_database(get_settings())
    logger.info("Database initialized")


async def close_db() -> None:
    """Close the database connection pool and drop cached services."""
    global _stats_service, _membership
    await close_database()
    _stats_service = None
    _membership = None


# =============================================================================
# Authentication
# =============================================================================


def get_optional_user(request: Request) -> CurrentUser | None:
    """Get current user if authenticated, None otherwise."""
    return get_current_user(request)


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


# =============================================================================
# Services
# =============================================================================


def get_membership_resolver() -> MembershipResolver:
    """Get the membership resolver singleton."""
    global _membership
    if _membership is None:
        _membership = SQLMembershipResolver()
    return _membership


def get_stats_service() -> StatsService:
    """Get the stats service singleton.

    A single instance is shared so that concurrent requests for the same
    scope wait on the same computation lock.
    """
    global _stats_service
    if _stats_service is None:
        _stats_service = StatsService(
            store=SQLProjectionStore(),
            event_log=SQLEventLog(),
            membership=get_membership_resolver(),
        )
    return _stats_service
