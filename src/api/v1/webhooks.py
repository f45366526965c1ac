# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning sync webhook endpoints.

The system that stores learning entries calls this webhook whenever an
entry changes. Each accepted delivery schedules a recomputation of the
owner's statistics (employee, team and org). Recomputation rebuilds from
the event log, so created, updated and deleted entries are all handled
the same way.

- POST /learning-sync - Receive a learning entry change
- GET /learning-sync - Check that the webhook is reachable

Deliveries carry the shared secret in the ``X-Webhook-Secret`` header.
Repeated deliveries of the same change within
``STATS_WEBHOOK_DEDUP_SECONDS`` are acknowledged without scheduling.

Example:
    POST /api/v1/webhooks/learning-sync
    X-Webhook-Secret: ...

    {"event": "learning.created", "learning_id": "l-42", "employee_id": "alice"}
"""

import logging
import secrets
import threading
import time
from collections.abc import Callable
from functools import lru_cache
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel, Field

from src.core.config import StatsSettings, get_settings
from src.infrastructure.background.tasks.stats import schedule_recompute

logger = logging.getLogger(__name__)

router = APIRouter()

# Events that change what the event log holds for the employee
RECOMPUTE_EVENTS: dict[str, str] = {
    "learning.created": "add",
    "learning.published": "add",
    "learning.updated": "update",
    "learning.deleted": "remove",
    "learning.unpublished": "remove",
}


# ============================================================================
# Delivery deduplication
# ============================================================================


class DeliveryDeduplicator:
    """Remembers recent deliveries so repeated webhook calls are ignored.

    Recomputation is idempotent, so this only spares duplicate work within
    one API process.
    """

    def __init__(
        self,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window = window_seconds
        self._clock = clock
        self._seen: dict[tuple[str, str], float] = {}
        self._lock = threading.Lock()

    def claim(self, key: tuple[str, str]) -> bool:
        """Claim a delivery.

        Returns:
            False if the same delivery was claimed within the window.
        """
        now = self._clock()
        with self._lock:
            self._seen = {k: t for k, t in self._seen.items() if now - t < self._window}
            if key in self._seen:
                return False
            self._seen[key] = now
            return True

    def release(self, key: tuple[str, str]) -> None:
        """Forget a delivery so a retry is processed."""
        with self._lock:
            self._seen.pop(key, None)


def get_stats_settings() -> StatsSettings:
    """Get statistics settings."""
    return get_settings().stats


@lru_cache
def get_delivery_deduplicator() -> DeliveryDeduplicator:
    """Get the process-wide delivery deduplicator."""
    return DeliveryDeduplicator(get_settings().stats.webhook_dedup_seconds)


def verify_webhook_secret(
    x_webhook_secret: Annotated[str | None, Header()] = None,
    settings: StatsSettings = Depends(get_stats_settings),
) -> None:
    """Check the shared secret sent with a webhook delivery.

    Without a configured secret every delivery is accepted; production
    settings refuse to start without one.

    Raises:
        HTTPException: 401 if the secret is missing or wrong.
    """
    if settings.webhook_secret is None:
        return

    expected = settings.webhook_secret.get_secret_value()
    if x_webhook_secret is None or not secrets.compare_digest(
        x_webhook_secret.encode("utf-8"), expected.encode("utf-8")
    ):
        logger.warning("Rejected learning sync delivery with invalid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret",
            headers={"WWW-Authenticate": "WebhookSecret"},
        )


# ============================================================================
# Request/Response Models
# ============================================================================


class LearningSyncRequest(BaseModel):
    """A learning entry change."""

    event: str = Field(description="Change type, e.g. learning.created")
    learning_id: str = Field(min_length=1, description="Changed learning entry")
    employee_id: str = Field(min_length=1, description="Owner of the learning entry")


class LearningSyncResponse(BaseModel):
    """Outcome of a webhook delivery."""

    scheduled: bool = Field(description="Whether a recompute was scheduled")
    action: str | None = Field(default=None, description="add, update or remove")
    message: str = Field(description="What happened to the delivery")


class WebhookStatusResponse(BaseModel):
    """Webhook reachability check."""

    status: str
    message: str


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/learning-sync",
    response_model=LearningSyncResponse,
    summary="Receive a learning entry change",
    description="Schedule a statistics recompute for the owner of a changed learning entry.",
    dependencies=[Depends(verify_webhook_secret)],
)
def receive_learning_sync(
    data: LearningSyncRequest,
    deduplicator: DeliveryDeduplicator = Depends(get_delivery_deduplicator),
) -> LearningSyncResponse:
    """Schedule a recompute for a learning entry change.

    Raises:
        HTTPException: 503 if the recompute cannot be enqueued, so the
            sender retries the delivery.
    """
    action = RECOMPUTE_EVENTS.get(data.event)
    if action is None:
        logger.info("Ignoring learning sync event %s", data.event)
        return LearningSyncResponse(scheduled=False, message="Event type not handled")

    key = (data.learning_id, data.event)
    if not deduplicator.claim(key):
        logger.info("Skipping duplicate %s delivery for learning %s", data.event, data.learning_id)
        return LearningSyncResponse(scheduled=False, action=action, message="Already processed")

    if not schedule_recompute(data.employee_id):
        deduplicator.release(key)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Statistics recompute could not be scheduled",
        )

    logger.info(
        "Scheduled stats recompute (%s) for learning %s of employee %s",
        action,
        data.learning_id,
        data.employee_id,
    )
    return LearningSyncResponse(scheduled=True, action=action, message="Recompute scheduled")


@router.get(
    "/learning-sync",
    response_model=WebhookStatusResponse,
    summary="Webhook status",
)
async def learning_sync_status() -> WebhookStatusResponse:
    """Report that the webhook endpoint is reachable."""
    return WebhookStatusResponse(status="ok", message="Learning sync webhook is active")
