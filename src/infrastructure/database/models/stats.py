# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Stored statistics projections.

One row per scope. The payload column holds the encoded projection
(see src.domains.stats.codec); the other columns are copies used for
inspection and housekeeping queries.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, PrimaryKeyConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base


class StatsProjectionRecord(Base):
    """Persisted projection for an employee, team or org scope."""

    __tablename__ = "stats_projections"
    __table_args__ = (PrimaryKeyConstraint("scope_kind", "scope_id"),)

    scope_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    scope_id: Mapped[str] = mapped_column(String(64), nullable=False)
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
