# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dramatiq broker for statistics recomputation.

Recompute messages go through Redis so they survive API and worker
restarts. Tests run against a StubBroker (``DRAMATIQ_TEST_MODE=true``).

The API process and the workers both call ``setup_dramatiq()``: the API
to enqueue recomputes from the learning sync webhook, the workers to
consume them.
"""

import logging
import os
from typing import Any

import dramatiq
import redis
from dramatiq.brokers.redis import RedisBroker
from dramatiq.brokers.stub import StubBroker

from src.core.config import get_settings

logger = logging.getLogger(__name__)


class Queues:
    """Queue names."""

    DEFAULT = "default"
    STATS = "stats"

    ALL = (DEFAULT, STATS)


def _use_stub_broker() -> bool:
    return os.getenv("DRAMATIQ_TEST_MODE", "false").lower() == "true"


class BrokerManager:
    """Owns the process-wide Dramatiq broker."""

    def __init__(self) -> None:
        self._broker: dramatiq.Broker | None = None

    def setup(self) -> dramatiq.Broker:
        """Create the broker once and register it with Dramatiq."""
        if self._broker is not None:
            return self._broker

        if _use_stub_broker():
            broker: dramatiq.Broker = StubBroker()
            broker.emit_after("process_boot")
            logger.info("Using StubBroker for recompute messages")
        else:
            redis_url = get_settings().redis.url
            broker = RedisBroker(url=redis_url)
            logger.info("Redis broker at %s", redis_url.split("@")[-1])

        for queue in Queues.ALL:
            broker.declare_queue(queue)

        dramatiq.set_broker(broker)
        self._broker = broker
        return broker

    def shutdown(self) -> None:
        """Close the broker."""
        if self._broker is not None:
            self._broker.close()
            self._broker = None
            logger.info("Broker shutdown complete")

    def status(self) -> dict[str, Any]:
        """Report broker health and pending recompute messages.

        For Redis, ``queues`` holds the ready messages per queue and
        ``delayed`` the delayed (retry) messages no worker has pulled yet.
        """
        if self._broker is None:
            return {"status": "not_initialized"}

        if not isinstance(self._broker, RedisBroker):
            return {"broker_type": "stub", "status": "healthy"}

        report: dict[str, Any] = {"broker_type": "redis"}
        try:
            client = redis.from_url(get_settings().redis.url)
            report["queues"] = {queue: client.llen(f"dramatiq:{queue}") for queue in Queues.ALL}
            report["delayed"] = {
                queue: client.llen(f"dramatiq:{queue}.DQ") for queue in Queues.ALL
            }
            report["status"] = "healthy"
        except redis.RedisError as e:
            logger.warning("Broker status unavailable: %s", e)
            report["status"] = "error"
            report["error"] = str(e)

        return report


_broker_manager: BrokerManager | None = None


def get_broker_manager() -> BrokerManager:
    """Get the singleton broker manager."""
    global _broker_manager
    if _broker_manager is None:
        _broker_manager = BrokerManager()
    return _broker_manager


def setup_dramatiq() -> dramatiq.Broker:
    """Set up the broker from settings. Safe to call more than once."""
    return get_broker_manager().setup()


def shutdown_dramatiq() -> None:
    """Close the broker at application shutdown."""
    global _broker_manager
    if _broker_manager is not None:
        _broker_manager.shutdown()
        _broker_manager = None
