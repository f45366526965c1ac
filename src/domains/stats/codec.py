# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Stats projection serialization.

Projections are stored as canonical JSON: sorted keys, compact separators,
ISO 8601 dates. Each scope kind has a pydantic storage record that
validates what comes back from the database, discriminated on
``scope_kind``.

Encoding is deterministic: ``parse(encode(p)) == p`` for any projection
``p``, and ``encode(parse(s)) == s`` for any string ``s`` produced by
``encode``. The derived hours written alongside the minutes are checked
against them when parsing, so a record whose hours disagree with its
minutes is rejected instead of being silently rewritten.
"""

import dataclasses
import json
from datetime import date, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    Strict,
    TypeAdapter,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

from src.domains.stats.exceptions import MalformedProjection
from src.domains.stats.models import (
    SCHEMA_VERSION,
    ActivityDateBucket,
    EmployeeStats,
    OrgStats,
    RankedEntry,
    StatsProjection,
    TeamStats,
    apportion_hours,
    minutes_to_hours,
)
from src.utils.datetime import ensure_utc, format_iso

SUPPORTED_SCHEMA_VERSIONS = frozenset({SCHEMA_VERSION})

Count = Annotated[int, Strict(), Field(ge=0)]
Day = Annotated[date, Strict()]
Timestamp = Annotated[datetime, Strict()]
Number = Annotated[float, Strict()]


class _StoredModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class BucketRecord(_StoredModel):
    """Stored form of ActivityDateBucket."""

    date: Day
    count: Count
    minutes: Count


class RankedEntryRecord(_StoredModel):
    """Stored form of RankedEntry."""

    uid: Annotated[str, Strict()]
    name: Annotated[str, Strict()]
    total_learnings: Count
    total_minutes: Count


class ProjectionRecord(_StoredModel):
    """Fields every stored projection carries."""

    schema_version: Annotated[int, Strict()]
    scope_id: Annotated[str, Strict()]
    as_of: Day
    computed_at: Timestamp
    total_learnings: Count
    total_minutes: Count
    learnings_by_type: dict[str, Count]
    minutes_by_type: dict[str, Count]
    activity_dates: list[BucketRecord]
    tag_counts: dict[str, Count]
    last_learning_date: Day | None
    window_days: Count | None
    total_hours: Number
    hours_by_type: dict[str, Number]

    @field_validator("schema_version")
    @classmethod
    def validate_schema_version(cls, v: int) -> int:
        if v not in SUPPORTED_SCHEMA_VERSIONS:
            raise ValueError(f"Unsupported schema version: {v}")
        return v

    @field_validator("activity_dates")
    @classmethod
    def validate_activity_dates(cls, v: list[BucketRecord]) -> list[BucketRecord]:
        for previous, current in zip(v, v[1:]):
            if current.date <= previous.date:
                raise ValueError("activity_dates must be strictly ascending by date")
        return v

    @model_validator(mode="after")
    def validate_derived_hours(self) -> "ProjectionRecord":
        if self.total_hours != minutes_to_hours(self.total_minutes):
            raise ValueError("total_hours does not match total_minutes")
        if self.hours_by_type != apportion_hours(self.minutes_by_type):
            raise ValueError("hours_by_type does not match minutes_by_type")
        return self

    @field_serializer("computed_at")
    def serialize_computed_at(self, value: datetime) -> str:
        return format_iso(value)

    def _common_fields(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "scope_id": self.scope_id,
            "as_of": self.as_of,
            "computed_at": ensure_utc(self.computed_at),
            "total_learnings": self.total_learnings,
            "total_minutes": self.total_minutes,
            "learnings_by_type": dict(self.learnings_by_type),
            "minutes_by_type": dict(self.minutes_by_type),
            "activity_dates": tuple(
                ActivityDateBucket(date=b.date, count=b.count, minutes=b.minutes)
                for b in self.activity_dates
            ),
            "tag_counts": dict(self.tag_counts),
            "last_learning_date": self.last_learning_date,
            "window_days": self.window_days,
        }


def _ranked(records: list[RankedEntryRecord]) -> tuple[RankedEntry, ...]:
    return tuple(RankedEntry(**record.model_dump()) for record in records)


class EmployeeStatsRecord(ProjectionRecord):
    scope_kind: Literal["employee"]
    current_streak: Count
    longest_streak: Count
    avg_session_minutes: Number

    def to_projection(self) -> EmployeeStats:
        return EmployeeStats(
            **self._common_fields(),
            current_streak=self.current_streak,
            longest_streak=self.longest_streak,
            avg_session_minutes=self.avg_session_minutes,
        )


class TeamStatsRecord(ProjectionRecord):
    scope_kind: Literal["team"]
    current_streak: Count
    longest_streak: Count
    avg_session_minutes: Number
    active_learners: Count
    top_learners: list[RankedEntryRecord]

    def to_projection(self) -> TeamStats:
        return TeamStats(
            **self._common_fields(),
            current_streak=self.current_streak,
            longest_streak=self.longest_streak,
            avg_session_minutes=self.avg_session_minutes,
            active_learners=self.active_learners,
            top_learners=_ranked(self.top_learners),
        )


class OrgStatsRecord(ProjectionRecord):
    scope_kind: Literal["org"]
    total_active_employees: Count
    total_active_teams: Count
    top_teams: list[RankedEntryRecord]
    top_learners: list[RankedEntryRecord]

    def to_projection(self) -> OrgStats:
        return OrgStats(
            **self._common_fields(),
            total_active_employees=self.total_active_employees,
            total_active_teams=self.total_active_teams,
            top_teams=_ranked(self.top_teams),
            top_learners=_ranked(self.top_learners),
        )


StoredProjection = Annotated[
    Union[EmployeeStatsRecord, TeamStatsRecord, OrgStatsRecord],
    Field(discriminator="scope_kind"),
]

_stored_projection: TypeAdapter[StoredProjection] = TypeAdapter(StoredProjection)


def to_record(projection: StatsProjection) -> ProjectionRecord:
    """Build the storage record for a projection."""
    data = dataclasses.asdict(projection)
    data["scope_kind"] = projection.scope_kind.value
    data["total_hours"] = projection.total_hours
    data["hours_by_type"] = projection.hours_by_type
    return _stored_projection.validate_python(data)


def encode(projection: StatsProjection) -> str:
    """Serialize a projection to its canonical JSON form."""
    payload = to_record(projection).model_dump(mode="json")
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def parse(raw: str | bytes) -> StatsProjection:
    """Deserialize a stored projection.

    Args:
        raw: JSON produced by ``encode``.

    Returns:
        The projection variant named by ``scope_kind``.

    Raises:
        MalformedProjection: On invalid JSON, missing, unknown or mistyped
            fields, unknown scope kind, unsupported schema version, or
            hours that do not match the stored minutes.
    """
    try:
        record = _stored_projection.validate_json(raw)
    except ValidationError as e:
        raise MalformedProjection("Stored projection failed validation", e) from e
    return record.to_projection()
