# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the statistics background tasks.

Runs against the Dramatiq StubBroker (DRAMATIQ_TEST_MODE=true).
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.domains.stats import EmployeeStats, EventLogUnavailable, OrgStats, ScopeNotFound, TeamStats
from src.infrastructure.background.broker import Queues
from src.infrastructure.background.tasks import get_all_actors, run_async
from src.infrastructure.background.tasks.stats import (
    recompute_learning_stats,
    schedule_recompute,
)

TASKS = "src.infrastructure.background.tasks.stats"
COMPUTED_AT = datetime(2024, 1, 10, tzinfo=timezone.utc)


@pytest.fixture
def mock_service() -> MagicMock:
    as_of = date(2024, 1, 10)
    service = MagicMock()
    service.recompute_for_owner = AsyncMock(
        return_value=[
            EmployeeStats(scope_id="alice", as_of=as_of, computed_at=COMPUTED_AT),
            TeamStats(scope_id="platform", as_of=as_of, computed_at=COMPUTED_AT),
            OrgStats(scope_id="org", as_of=as_of, computed_at=COMPUTED_AT),
        ]
    )
    return service


class TestRecomputeLearningStats:
    """Tests for the recompute_learning_stats actor."""

    def test_actor_routing(self) -> None:
        assert recompute_learning_stats.queue_name == Queues.STATS
        assert recompute_learning_stats in get_all_actors()

    def test_recomputes_all_scopes(self, mock_service: MagicMock) -> None:
        with (
            patch(f"{TASKS}.build_worker_stats_service", return_value=mock_service),
            patch(f"{TASKS}.run_async", side_effect=asyncio.run),
        ):
            result = recompute_learning_stats.fn("alice")

        assert result == {
            "employee_id": "alice",
            "recomputed": True,
            "scopes": ["employee:alice", "team:platform", "org:org"],
        }
        mock_service.recompute_for_owner.assert_awaited_once_with("alice")

    def test_unknown_employee_is_skipped(self, mock_service: MagicMock) -> None:
        mock_service.recompute_for_owner.side_effect = ScopeNotFound("employee", "ghost")

        with (
            patch(f"{TASKS}.build_worker_stats_service", return_value=mock_service),
            patch(f"{TASKS}.run_async", side_effect=asyncio.run),
        ):
            result = recompute_learning_stats.fn("ghost")

        assert result["recomputed"] is False
        assert result["reason"] == "Employee not found"

    def test_event_log_failure_propagates_for_retry(self, mock_service: MagicMock) -> None:
        mock_service.recompute_for_owner.side_effect = EventLogUnavailable("db down")

        with (
            patch(f"{TASKS}.build_worker_stats_service", return_value=mock_service),
            patch(f"{TASKS}.run_async", side_effect=asyncio.run),
            pytest.raises(EventLogUnavailable),
        ):
            recompute_learning_stats.fn("alice")


class TestScheduleRecompute:
    """Tests for schedule_recompute."""

    def test_enqueues_message(self) -> None:
        broker = recompute_learning_stats.broker
        broker.flush_all()

        assert schedule_recompute("alice") is True
        assert broker.queues[Queues.STATS].qsize() == 1

        broker.flush_all()

    def test_enqueue_failure_is_swallowed(self) -> None:
        with patch.object(recompute_learning_stats, "send", side_effect=ConnectionError("redis down")):
            assert schedule_recompute("alice") is False


class TestRunAsync:
    """Tests for run_async."""

    def test_reuses_thread_event_loop(self) -> None:
        async def current_loop() -> asyncio.AbstractEventLoop:
            return asyncio.get_running_loop()

        def run_twice() -> tuple:
            return run_async(current_loop()), run_async(current_loop())

        with ThreadPoolExecutor(max_workers=1) as executor:
            first, second = executor.submit(run_twice).result()

        assert first is second
