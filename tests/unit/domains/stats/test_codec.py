# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for projection serialization.

Tests canonical encoding and strict parsing of stored projections.
"""

import json
from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from src.domains.stats.codec import encode, parse
from src.domains.stats.exceptions import MalformedProjection
from src.domains.stats.models import (
    ActivityDateBucket,
    EmployeeStats,
    OrgStats,
    RankedEntry,
    TeamStats,
)

COMPUTED_AT = datetime(2024, 1, 2, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def team_stats() -> TeamStats:
    return TeamStats(
        scope_id="platform",
        as_of=date(2024, 1, 2),
        computed_at=COMPUTED_AT,
        total_learnings=3,
        total_minutes=95,
        learnings_by_type={"course": 2, "video": 1},
        minutes_by_type={"course": 35, "video": 60},
        activity_dates=(
            ActivityDateBucket(date=date(2024, 1, 1), count=2, minutes=35),
            ActivityDateBucket(date=date(2024, 1, 2), count=1, minutes=60),
        ),
        tag_counts={"python": 2},
        last_learning_date=date(2024, 1, 2),
        current_streak=2,
        longest_streak=2,
        avg_session_minutes=31.7,
        active_learners=2,
        top_learners=(
            RankedEntry(uid="alice", name="Alice", total_learnings=1, total_minutes=60),
            RankedEntry(uid="bob", name="Bob", total_learnings=2, total_minutes=35),
        ),
    )


class TestEncode:
    """Tests for encode."""

    def test_is_canonical_json(self, team_stats: TeamStats) -> None:
        raw = encode(team_stats)

        data = json.loads(raw)
        assert raw == json.dumps(data, sort_keys=True, separators=(",", ":"))
        assert data["scope_kind"] == "team"
        assert data["as_of"] == "2024-01-02"
        assert data["computed_at"] == "2024-01-02T08:30:00+00:00"
        assert data["activity_dates"][0] == {"count": 2, "date": "2024-01-01", "minutes": 35}

    def test_writes_derived_hours(self, team_stats: TeamStats) -> None:
        data = json.loads(encode(team_stats))

        assert data["total_hours"] == 1.6
        assert data["hours_by_type"] == {"course": 0.6, "video": 1.0}

    def test_is_deterministic(self, team_stats: TeamStats) -> None:
        assert encode(team_stats) == encode(team_stats)


class TestParse:
    """Tests for parse."""

    def test_restores_each_variant(self, team_stats: TeamStats) -> None:
        employee = EmployeeStats(scope_id="alice", as_of=date(2024, 1, 2), computed_at=COMPUTED_AT)
        org = OrgStats(
            scope_id="acme",
            as_of=date(2024, 1, 2),
            computed_at=COMPUTED_AT,
            window_days=30,
            total_active_employees=2,
            top_teams=(RankedEntry(uid="platform", name="Platform", total_learnings=3, total_minutes=95),),
        )

        for projection in (employee, team_stats, org):
            assert parse(encode(projection)) == projection

    def test_parsed_record_reencodes_identically(self, team_stats: TeamStats) -> None:
        raw = encode(team_stats)

        assert encode(parse(raw)) == raw

    def test_accepts_bytes(self, team_stats: TeamStats) -> None:
        assert parse(encode(team_stats).encode("utf-8")) == team_stats

    @pytest.mark.parametrize("raw", ["", "{not json", "[]", "42"])
    def test_rejects_non_objects(self, raw: str) -> None:
        with pytest.raises(MalformedProjection):
            parse(raw)

    def test_rejects_missing_field(self, team_stats: TeamStats) -> None:
        data = json.loads(encode(team_stats))
        del data["top_learners"]

        with pytest.raises(MalformedProjection, match="top_learners"):
            parse(json.dumps(data))

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("total_learnings", -1),
            ("total_learnings", "3"),
            ("total_minutes", True),
            ("as_of", "02/01/2024"),
            ("computed_at", "yesterday"),
            ("learnings_by_type", ["course"]),
            ("avg_session_minutes", "fast"),
        ],
    )
    def test_rejects_mistyped_field(self, team_stats: TeamStats, key: str, value: object) -> None:
        data = json.loads(encode(team_stats))
        data[key] = value

        with pytest.raises(MalformedProjection):
            parse(json.dumps(data))

    def test_rejects_unknown_scope_kind(self, team_stats: TeamStats) -> None:
        data = json.loads(encode(team_stats))
        data["scope_kind"] = "department"

        with pytest.raises(MalformedProjection, match="scope_kind"):
            parse(json.dumps(data))

    def test_rejects_unsupported_schema_version(self, team_stats: TeamStats) -> None:
        data = json.loads(encode(team_stats))
        data["schema_version"] = 99

        with pytest.raises(MalformedProjection, match="schema version"):
            parse(json.dumps(data))

    def test_rejects_unordered_activity_dates(self, team_stats: TeamStats) -> None:
        data = json.loads(encode(team_stats))
        data["activity_dates"].reverse()

        with pytest.raises(MalformedProjection, match="ascending"):
            parse(json.dumps(data))

    def test_rejects_unknown_field(self, team_stats: TeamStats) -> None:
        data = json.loads(encode(team_stats))
        data["department"] = "platform"

        with pytest.raises(MalformedProjection, match="department"):
            parse(json.dumps(data))

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("total_hours", 9.9),
            ("hours_by_type", {"course": 1.0, "video": 0.6}),
        ],
    )
    def test_rejects_hours_that_disagree_with_minutes(
        self, team_stats: TeamStats, key: str, value: object
    ) -> None:
        data = json.loads(encode(team_stats))
        data[key] = value

        with pytest.raises(MalformedProjection, match="does not match"):
            parse(json.dumps(data))

    def test_original_error_is_kept(self) -> None:
        with pytest.raises(MalformedProjection) as exc_info:
            parse("{not json")

        assert isinstance(exc_info.value.original_error, ValidationError)
