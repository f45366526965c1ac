# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial Learnboard schema.

This migration creates:
- teams, employees: directory snapshot used for membership lookups
- learning_events: append-only learning activity log
- stats_projections: derived per-scope statistics (rebuildable)

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-01-06
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    """Create directory, event log and projection tables."""
    # =========================================================================
    # DIRECTORY
    # =========================================================================
    op.create_table(
        "teams",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("manager_id", sa.String(36), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="employee"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column(
            "team_id",
            sa.String(36),
            sa.ForeignKey("teams.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_employees_team_id", "employees", ["team_id"])

    # =========================================================================
    # LEARNING EVENT LOG
    # =========================================================================
    op.create_table(
        "learning_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "employee_id",
            sa.String(36),
            sa.ForeignKey("employees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(300), nullable=False, server_default=""),
        sa.Column("activity_type", sa.String(30), nullable=False, server_default="other"),
        sa.Column("occurred_on", sa.Date(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tags", postgresql.ARRAY(sa.String(100)), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("duration_minutes >= 0", name="ck_learning_events_duration"),
    )
    op.create_index("ix_learning_events_occurred_on", "learning_events", ["occurred_on"])
    op.create_index(
        "ix_learning_events_employee_date",
        "learning_events",
        ["employee_id", "occurred_on"],
    )

    # =========================================================================
    # STATS PROJECTIONS
    # =========================================================================
    op.create_table(
        "stats_projections",
        sa.Column("scope_kind", sa.String(20), nullable=False),
        sa.Column("scope_id", sa.String(64), nullable=False),
        sa.Column("schema_version", sa.Integer(), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("scope_kind", "scope_id"),
    )


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table("stats_projections")
    op.drop_index("ix_learning_events_employee_date", table_name="learning_events")
    op.drop_index("ix_learning_events_occurred_on", table_name="learning_events")
    op.drop_table("learning_events")
    op.drop_index("ix_employees_team_id", table_name="employees")
    op.drop_table("employees")
    op.drop_table("teams")
