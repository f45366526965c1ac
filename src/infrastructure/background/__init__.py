# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task infrastructure module for Learnboard.

Provides background task processing with Dramatiq:
- Redis broker for message persistence and durability
- Actor-based task definitions for statistics recomputation

Quick Start:
    # Setup broker (call once at startup)
    from src.infrastructure.background import setup_dramatiq
    setup_dramatiq()

    # Send tasks
    from src.infrastructure.background.tasks import schedule_recompute

    schedule_recompute(employee_id)

Running Workers:
    dramatiq src.infrastructure.background.tasks --processes 2 --threads 4
"""

from src.infrastructure.background.broker import (
    BrokerManager,
    Queues,
    get_broker_manager,
    setup_dramatiq,
    shutdown_dramatiq,
)

# Note: Tasks are imported lazily to avoid circular imports
# Use: from src.infrastructure.background.tasks import schedule_recompute

__all__ = [
    "BrokerManager",
    "Queues",
    "get_broker_manager",
    "setup_dramatiq",
    "shutdown_dramatiq",
]
