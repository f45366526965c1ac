# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database models for Learnboard."""

from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.learning import (
    Employee,
    LearningEventRecord,
    Team,
)
from src.infrastructure.database.models.stats import StatsProjectionRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "Employee",
    "Team",
    "LearningEventRecord",
    "StatsProjectionRecord",
]
