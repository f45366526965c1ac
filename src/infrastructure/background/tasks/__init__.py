# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task actors for Learnboard.

- Stats: recompute learning statistics after new learning events

Usage:
    from src.infrastructure.background.tasks import schedule_recompute

    # After a learning event was recorded
    schedule_recompute(employee_id)

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 2 --threads 4
"""

from src.core.config import get_settings
from src.infrastructure.background.tasks.base import run_async
from src.infrastructure.background.tasks.stats import (
    get_stats_actors,
    recompute_learning_stats,
    schedule_recompute,
)
from src.utils.logging import setup_logging

setup_logging(get_settings())

__all__ = [
    # Stats
    "recompute_learning_stats",
    "schedule_recompute",
    # Utilities
    "run_async",
    "get_all_actors",
]


def get_all_actors() -> list:
    """Get list of all defined actors.

    Returns:
        List of all Dramatiq actors from all domains.
    """
    actors = []
    actors.extend(get_stats_actors())
    return actors
