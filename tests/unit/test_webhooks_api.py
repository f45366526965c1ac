# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the learning sync webhook.

Tests:
- Shared secret verification (401)
- Recompute scheduling for created, updated and deleted learnings
- Duplicate delivery handling
- Enqueue failures (503)
"""

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.v1.webhooks import (
    DeliveryDeduplicator,
    get_delivery_deduplicator,
    get_stats_settings,
)
from src.core.config import StatsSettings

URL = "/api/v1/webhooks/learning-sync"
SECRET = "s3cret"
HEADERS = {"X-Webhook-Secret": SECRET}


def _delivery(event: str = "learning.created", learning_id: str = "l-1", employee_id: str = "alice") -> dict:
    return {"event": event, "learning_id": learning_id, "employee_id": employee_id}


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_schedule() -> Iterator[MagicMock]:
    with patch("src.api.v1.webhooks.schedule_recompute", return_value=True) as schedule:
        yield schedule


@pytest.fixture
def client(mock_schedule: MagicMock, clock: FakeClock) -> TestClient:
    deduplicator = DeliveryDeduplicator(window_seconds=30, clock=clock)
    app = create_app()
    app.dependency_overrides[get_stats_settings] = lambda: StatsSettings(webhook_secret=SECRET)
    app.dependency_overrides[get_delivery_deduplicator] = lambda: deduplicator
    return TestClient(app)


class TestSecret:
    """Tests for shared secret verification."""

    def test_missing_secret(self, client: TestClient, mock_schedule: MagicMock) -> None:
        response = client.post(URL, json=_delivery())

        assert response.status_code == 401
        mock_schedule.assert_not_called()

    def test_wrong_secret(self, client: TestClient, mock_schedule: MagicMock) -> None:
        response = client.post(URL, json=_delivery(), headers={"X-Webhook-Secret": "guess"})

        assert response.status_code == 401
        mock_schedule.assert_not_called()

    def test_no_configured_secret_accepts_delivery(
        self, client: TestClient, mock_schedule: MagicMock
    ) -> None:
        client.app.dependency_overrides[get_stats_settings] = lambda: StatsSettings()

        response = client.post(URL, json=_delivery())

        assert response.status_code == 200
        mock_schedule.assert_called_once_with("alice")


class TestLearningSync:
    """Tests for POST /api/v1/webhooks/learning-sync."""

    @pytest.mark.parametrize(
        ("event", "action"),
        [
            ("learning.created", "add"),
            ("learning.published", "add"),
            ("learning.updated", "update"),
            ("learning.deleted", "remove"),
            ("learning.unpublished", "remove"),
        ],
    )
    def test_schedules_recompute_for_owner(
        self, client: TestClient, mock_schedule: MagicMock, event: str, action: str
    ) -> None:
        response = client.post(URL, json=_delivery(event, employee_id="bob"), headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {
            "scheduled": True,
            "action": action,
            "message": "Recompute scheduled",
        }
        mock_schedule.assert_called_once_with("bob")

    def test_ignores_unhandled_event(self, client: TestClient, mock_schedule: MagicMock) -> None:
        response = client.post(URL, json=_delivery("learning.archived"), headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["scheduled"] is False
        mock_schedule.assert_not_called()

    def test_duplicate_delivery_is_skipped(
        self, client: TestClient, mock_schedule: MagicMock, clock: FakeClock
    ) -> None:
        first = client.post(URL, json=_delivery(), headers=HEADERS)
        clock.now = 10
        second = client.post(URL, json=_delivery(), headers=HEADERS)

        assert first.json()["scheduled"] is True
        assert second.json() == {"scheduled": False, "action": "add", "message": "Already processed"}
        assert mock_schedule.call_count == 1

    def test_delivery_after_window_is_processed(
        self, client: TestClient, mock_schedule: MagicMock, clock: FakeClock
    ) -> None:
        client.post(URL, json=_delivery(), headers=HEADERS)
        clock.now = 31
        response = client.post(URL, json=_delivery(), headers=HEADERS)

        assert response.json()["scheduled"] is True
        assert mock_schedule.call_count == 2

    def test_delete_after_create_is_not_a_duplicate(
        self, client: TestClient, mock_schedule: MagicMock
    ) -> None:
        client.post(URL, json=_delivery("learning.created"), headers=HEADERS)
        response = client.post(URL, json=_delivery("learning.deleted"), headers=HEADERS)

        assert response.json()["action"] == "remove"
        assert mock_schedule.call_count == 2

    def test_enqueue_failure_allows_retry(
        self, client: TestClient, mock_schedule: MagicMock
    ) -> None:
        mock_schedule.return_value = False

        failed = client.post(URL, json=_delivery(), headers=HEADERS)
        mock_schedule.return_value = True
        retried = client.post(URL, json=_delivery(), headers=HEADERS)

        assert failed.status_code == 503
        assert retried.json()["scheduled"] is True

    def test_rejects_missing_employee(self, client: TestClient) -> None:
        response = client.post(
            URL, json={"event": "learning.created", "learning_id": "l-1"}, headers=HEADERS
        )

        assert response.status_code == 422

    def test_status_endpoint(self, client: TestClient) -> None:
        response = client.get(URL)

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestDeliveryDeduplicator:
    """Tests for DeliveryDeduplicator."""

    def test_claim_and_release(self, clock: FakeClock) -> None:
        deduplicator = DeliveryDeduplicator(window_seconds=30, clock=clock)

        assert deduplicator.claim(("l-1", "learning.created")) is True
        assert deduplicator.claim(("l-1", "learning.created")) is False

        deduplicator.release(("l-1", "learning.created"))

        assert deduplicator.claim(("l-1", "learning.created")) is True

    def test_zero_window_never_deduplicates(self, clock: FakeClock) -> None:
        deduplicator = DeliveryDeduplicator(window_seconds=0, clock=clock)

        assert deduplicator.claim(("l-1", "learning.created")) is True
        assert deduplicator.claim(("l-1", "learning.created")) is True
