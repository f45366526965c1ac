# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Directory and learning event tables.

Employees and teams are maintained by the directory (invitations, admin
screens). Learning events are appended by the logging flow. The statistics
engine only reads these tables.
"""

from datetime import date
from uuid import uuid4

from sqlalchemy import ARRAY, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin


class Team(Base, TimestampMixin):
    """A team of employees with one manager."""

    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    manager_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")


class Employee(Base, TimestampMixin):
    """An employee; team membership is a snapshot read at query time."""

    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="employee")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    team_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )


class LearningEventRecord(Base, TimestampMixin):
    """One logged learning activity.

    ``occurred_on`` is a calendar date already normalized to the
    organization's timezone when the event was recorded.
    """

    __tablename__ = "learning_events"
    __table_args__ = (
        Index("ix_learning_events_employee_date", "employee_id", "occurred_on"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    activity_type: Mapped[str] = mapped_column(String(30), nullable=False, default="other")
    occurred_on: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tags: Mapped[list[str] | None] = mapped_column(ARRAY(String(100)), nullable=True)
