"""
Journey domain models.

An activity record ("journey") is a user-authored record of a single
place visit on a given day. A user has at most one record per
(date, place_name): the identity key.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TITLE = "Untitled Journey"
DEFAULT_PLACE = "Unknown Place"
DEFAULT_WEATHER = "sun"
DEFAULT_START = "09:00"
DEFAULT_END = "17:00"

# Owner field of flat-layout documents; older app versions wrote camelCase
OWNER_FIELD = "user_id"
OWNER_FIELDS = (OWNER_FIELD, "userId")

_HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class TimeRange(BaseModel):
    """Visit time window, ``HH:MM`` local wall-clock strings."""

    model_config = ConfigDict(frozen=True)

    start: str = Field(default=DEFAULT_START, pattern=_HHMM)
    end: str = Field(default=DEFAULT_END, pattern=_HHMM)


class ActivityRecordInput(BaseModel):
    """
    Incoming journey record, as saved from the app.

    ``date`` may be given directly in canonical form; otherwise it is
    derived from ``timestamp``, which accepts any representation the
    timestamp normalizer understands.

    Example:
        >>> draft = ActivityRecordInput(
        ...     owner_id="user_123",
        ...     place_name="Zhongliao Village",
        ...     timestamp="2025-09-14T07:49:00Z",
        ...     time_range=TimeRange(start="07:49", end="09:10"),
        ... )
    """

    owner_id: str
    place_name: str = ""
    title: str = ""
    photos: list[str] = Field(default_factory=list)
    weather: str = DEFAULT_WEATHER
    content: str = ""
    time_range: TimeRange = Field(default_factory=TimeRange)
    date: Optional[str] = None
    timestamp: Any = None


class ActivityRecord(BaseModel):
    """
    Persisted journey record.

    Attributes:
        id: Opaque identifier assigned on first persistence
        owner_id: Owning user (the storage partition)
        date: Canonical ``YYYY-MM-DD``
        date_needs_review: True when the date fell back to "today"
            because the supplied timestamp was unusable
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    title: str = DEFAULT_TITLE
    place_name: str = DEFAULT_PLACE
    photos: list[str] = Field(default_factory=list)
    weather: str = DEFAULT_WEATHER
    content: str = ""
    time_range: TimeRange = Field(default_factory=TimeRange)
    date_needs_review: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive datetimes are read as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def identity_key(self) -> tuple[str, str]:
        """(date, place_name): one record per owner per key."""
        return (self.date, self.place_name)


def recency_key(record: ActivityRecord) -> tuple[str, str]:
    """Sort key: date then start time; use with ``reverse=True`` for newest first.

    Both components are zero-padded strings, so lexicographic order is
    chronological order.
    """
    return (record.date, record.time_range.start)


def sort_by_recency(records: list[ActivityRecord]) -> list[ActivityRecord]:
    """Newest day first; within a day, later start time first."""
    return sorted(records, key=recency_key, reverse=True)
