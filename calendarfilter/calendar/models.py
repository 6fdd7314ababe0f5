"""Data models for time-of-day filtering and feed transformation."""

from __future__ import annotations

import datetime
from dataclasses import dataclass

from pydantic import AwareDatetime, BaseModel, Field, field_validator


@dataclass(frozen=True)
class TimeOfDay:
    """Wall-clock hour and minute with no date or zone association."""

    hour: int
    minute: int

    @classmethod
    def from_datetime(cls, dt: datetime.datetime | datetime.time) -> TimeOfDay:
        return cls(hour=dt.hour, minute=dt.minute)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class FilterRange:
    """Daily recurring block matched exactly against event start/end.

    No ordering between ``start`` and ``end`` is enforced; overnight and
    degenerate ranges are legal.
    """

    start: TimeOfDay
    end: TimeOfDay

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class FilterSpec:
    """Resolved filter for a single request.

    Attributes:
        ranges: Ordered filter ranges (may be empty)
        zone: Timezone used to convert event instants to wall-clock time
        zone_name: Identifier ``zone`` was resolved from, for logging
    """

    ranges: tuple[FilterRange, ...]
    zone: datetime.tzinfo
    zone_name: str

    @property
    def is_empty(self) -> bool:
        """An empty spec means pass-through, never "filter everything"."""
        return not self.ranges

    def describe(self) -> str:
        return f"[{', '.join(str(r) for r in self.ranges)}] in {self.zone_name}"


@dataclass(frozen=True)
class FilterResult:
    """Outcome of a filter pass over one feed."""

    content: bytes
    original_count: int
    kept_count: int

    @property
    def removed_count(self) -> int:
        """Events either matched out or dropped as unresolvable."""
        return self.original_count - self.kept_count


class TimeRangeBody(BaseModel):
    """One absolute timestamp pair from a JSON filter request.

    Only RFC 3339 strings with a ``T`` separator and an explicit offset are
    accepted; epoch numbers and naive values fail validation.
    """

    start: AwareDatetime = Field(..., description="RFC 3339 start timestamp")
    end: AwareDatetime = Field(..., description="RFC 3339 end timestamp")

    @field_validator("start", "end", mode="before")
    @classmethod
    def require_rfc3339_string(cls, value: object) -> object:
        if not isinstance(value, str) or len(value) < 11 or value[10] not in "Tt":
            raise ValueError("timestamp must be an RFC 3339 date-time string")
        return value


class FilterRequestBody(BaseModel):
    """JSON body accepted by ``POST /filter``."""

    time_ranges: list[TimeRangeBody] = Field(default_factory=list)
