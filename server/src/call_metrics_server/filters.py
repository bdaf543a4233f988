"""Filter engine narrowing a record collection by a :class:`FilterSpec`.

Dimensions combine with AND; the values listed for one dimension combine
with OR.  A dimension without constraints is skipped entirely, so an empty
spec returns every record in its original order.

Date ranges are UTC-day anchored (``start`` at 00:00:00.000 UTC, ``end`` at
23:59:59.999 UTC) while hour windows in ``time_ranges`` read the hour of day
in ``FilterSpec.hour_timezone``; ``None`` there means the local timezone of
the running process.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any, Iterable, Mapping, Sequence, Union

from .errors import ValidationError
from .records import ConversationRecord

_EPOCH = date(1970, 1, 1)
_DAY_MS = 86_400_000
_HOUR_WINDOW_PATTERN = re.compile(r"^\s*(\d{1,2})\s*-\s*(\d{1,2})\s*$")


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-day range evaluated in UTC."""

    start: date
    end: date

    @classmethod
    def parse(cls, start: date | str, end: date | str) -> "DateRange":
        return cls(start=_parse_date(start, "dateRange.start"), end=_parse_date(end, "dateRange.end"))

    @property
    def start_ms(self) -> int:
        return (self.start - _EPOCH).days * _DAY_MS

    @property
    def end_ms(self) -> int:
        return (self.end - _EPOCH).days * _DAY_MS + _DAY_MS - 1

    def contains(self, record: ConversationRecord) -> bool:
        return self.start_ms <= record.start_time <= self.end_ms

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def _parse_date(value: date | str, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(
        f"Invalid date for {field_name}: {value!r} (expected YYYY-MM-DD)",
        details={"field": field_name, "value": str(value)},
    )


@dataclass(frozen=True)
class HourWindow:
    """Inclusive hour-of-day window such as ``9-17``."""

    first_hour: int
    last_hour: int

    @property
    def token(self) -> str:
        return f"{self.first_hour}-{self.last_hour}"

    def matches(self, record: ConversationRecord, tz: tzinfo | None) -> bool:
        hour = datetime.fromtimestamp(record.start_time / 1000, tz=tz).hour
        return self.first_hour <= hour <= self.last_hour


@dataclass(frozen=True)
class DurationBucket:
    """Named call-duration band, ``lower <= duration < upper``."""

    name: str
    lower: float
    upper: float | None

    @property
    def token(self) -> str:
        return self.name

    def matches(self, record: ConversationRecord, tz: tzinfo | None) -> bool:
        if record.duration < self.lower:
            return False
        return self.upper is None or record.duration < self.upper


DURATION_BUCKETS: dict[str, DurationBucket] = {
    "short": DurationBucket("short", 0, 120),
    "medium": DurationBucket("medium", 120, 300),
    "long": DurationBucket("long", 300, None),
}

TimeRange = Union[HourWindow, DurationBucket]


def parse_time_range(token: str) -> TimeRange:
    """Parse a ``time_ranges`` token into an hour window or duration bucket."""

    if isinstance(token, (HourWindow, DurationBucket)):
        return token
    if not isinstance(token, str):
        raise ValidationError(
            f"Invalid time range token: {token!r}",
            details={"field": "timeRanges", "value": repr(token)},
        )

    bucket = DURATION_BUCKETS.get(token.strip().lower())
    if bucket is not None:
        return bucket

    match = _HOUR_WINDOW_PATTERN.match(token)
    if match is None:
        raise ValidationError(
            f"Invalid time range token: {token!r} (expected 'H1-H2', 'short', 'medium' or 'long')",
            details={"field": "timeRanges", "value": token},
        )
    first_hour, last_hour = int(match.group(1)), int(match.group(2))
    if first_hour > 23 or last_hour > 23:
        raise ValidationError(
            f"Hour window {token!r} is outside 0-23",
            details={"field": "timeRanges", "value": token},
        )
    if first_hour > last_hour:
        raise ValidationError(
            f"Hour window {token!r} starts after it ends",
            details={"field": "timeRanges", "value": token},
        )
    return HourWindow(first_hour, last_hour)


def _normalize_values(values: Iterable[str] | str | None) -> frozenset[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        values = [values]
    return frozenset(value for value in values if value)


@dataclass(frozen=True)
class FilterSpec:
    """Normalized representation of every active filter for one query."""

    date_range: DateRange | None = None
    agents: frozenset[str] = field(default_factory=frozenset)
    call_types: frozenset[str] = field(default_factory=frozenset)
    time_ranges: tuple[TimeRange, ...] = ()
    hour_timezone: tzinfo | None = None

    @classmethod
    def build(
        cls,
        *,
        date_range: DateRange | Mapping[str, Any] | None = None,
        agents: Iterable[str] | str | None = None,
        call_types: Iterable[str] | str | None = None,
        time_ranges: Iterable[str] | str | None = None,
        hour_timezone: tzinfo | None = None,
    ) -> "FilterSpec":
        """Validate loosely typed values into a spec.

        A ``date_range`` mapping missing either bound leaves the date
        dimension unconstrained.  Raises :class:`ValidationError` for an
        unparseable date or an unknown time range token.
        """

        resolved_range: DateRange | None
        if date_range is None or isinstance(date_range, DateRange):
            resolved_range = date_range
        else:
            start, end = date_range.get("start"), date_range.get("end")
            resolved_range = DateRange.parse(start, end) if start and end else None

        if isinstance(time_ranges, str):
            time_ranges = [time_ranges]
        parsed_ranges = tuple(
            dict.fromkeys(parse_time_range(token) for token in (time_ranges or ()) if token)
        )

        return cls(
            date_range=resolved_range,
            agents=_normalize_values(agents),
            call_types=_normalize_values(call_types),
            time_ranges=parsed_ranges,
            hour_timezone=hour_timezone,
        )

    @property
    def is_empty(self) -> bool:
        return not (self.date_range or self.agents or self.call_types or self.time_ranges)

    def matches_time_range(self, record: ConversationRecord) -> bool:
        return any(token.matches(record, self.hour_timezone) for token in self.time_ranges)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dateRange": self.date_range.to_dict() if self.date_range else None,
            "agents": sorted(self.agents),
            "callTypes": sorted(self.call_types),
            "timeRanges": [token.token for token in self.time_ranges],
        }


def filter_records(
    records: Sequence[ConversationRecord], spec: FilterSpec
) -> list[ConversationRecord]:
    """Return the records matching every active dimension of ``spec``."""

    filtered = list(records)

    if spec.date_range is not None:
        date_range = spec.date_range
        filtered = [record for record in filtered if date_range.contains(record)]

    if spec.agents:
        filtered = [record for record in filtered if record.agent in spec.agents]

    if spec.call_types:
        filtered = [record for record in filtered if record.call_type in spec.call_types]

    if spec.time_ranges:
        filtered = [record for record in filtered if spec.matches_time_range(record)]

    return filtered


__all__ = [
    "DURATION_BUCKETS",
    "DateRange",
    "DurationBucket",
    "FilterSpec",
    "HourWindow",
    "TimeRange",
    "filter_records",
    "parse_time_range",
]
