# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning statistics background tasks for Learnboard.

The learning sync webhook calls ``schedule_recompute(employee_id)`` when a
learning entry changes. The worker then recomputes the employee's
projection, their team's and the org's. Enqueue failures are logged and
reported to the caller as False.
"""

import logging
from typing import Any

import dramatiq

from src.domains.stats.exceptions import ScopeNotFound
from src.domains.stats.service import StatsService
from src.domains.stats.sources import SQLEventLog, SQLMembershipResolver
from src.domains.stats.store import SQLProjectionStore
from src.infrastructure.background.broker import Queues, setup_dramatiq
from src.infrastructure.background.tasks.base import run_async
from src.infrastructure.database.connection import get_worker_session
from src.utils.logging import bind_context, clear_context

# Setup broker before defining actors
setup_dramatiq()

logger = logging.getLogger(__name__)


def build_worker_stats_service() -> StatsService:
    """Create a StatsService bound to the worker thread's database engine."""
    return StatsService(
        store=SQLProjectionStore(get_worker_session),
        event_log=SQLEventLog(get_worker_session),
        membership=SQLMembershipResolver(get_worker_session),
    )


@dramatiq.actor(
    queue_name=Queues.STATS,
    max_retries=3,
    time_limit=120000,  # 2 minutes
)
def recompute_learning_stats(employee_id: str) -> dict[str, Any]:
    """Recompute the stats projections affected by an employee's new event.

    Event log failures propagate so Dramatiq retries the message.

    Args:
        employee_id: Owner of the new learning event.

    Returns:
        Result with the recomputed scopes.
    """

    async def _process() -> dict[str, Any]:
        service = build_worker_stats_service()
        try:
            projections = await service.recompute_for_owner(employee_id)
        except ScopeNotFound:
            logger.warning("Skipping stats recompute for unknown employee %s", employee_id)
            return {
                "employee_id": employee_id,
                "recomputed": False,
                "reason": "Employee not found",
            }

        return {
            "employee_id": employee_id,
            "recomputed": True,
            "scopes": [f"{p.scope_kind.value}:{p.scope_id}" for p in projections],
        }

    bind_context(task="recompute_learning_stats", employee_id=employee_id)
    try:
        return run_async(_process())
    finally:
        clear_context()


def schedule_recompute(employee_id: str) -> bool:
    """Enqueue a stats recompute without blocking or failing the caller.

    Args:
        employee_id: Owner of the new learning event.

    Returns:
        True if the message was enqueued.
    """
    try:
        recompute_learning_stats.send(employee_id)
    except Exception as e:
        logger.error("Failed to schedule stats recompute for employee %s: %s", employee_id, e)
        return False

    logger.debug("Scheduled stats recompute for employee %s", employee_id)
    return True


def get_stats_actors() -> list:
    """Get all stats actors."""
    return [recompute_learning_stats]
