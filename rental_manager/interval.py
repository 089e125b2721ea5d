from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware datetimes are returned unchanged."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class Interval:
    """A time range. Naive bounds are taken as UTC."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", as_utc(self.start))
        object.__setattr__(self, "end", as_utc(self.end))

    def is_valid(self) -> bool:
        return self.start < self.end

    def overlaps(self, other: Interval) -> bool:
        return overlaps(self, other)

    def restrict_to(self, other: Interval) -> Interval | None:
        return restrict_to(self, other)


def overlaps(a: Interval, b: Interval) -> bool:
    """Return True when two intervals share any moment.

    Intervals are treated as open ranges: (start, end)
    so touching boundaries (e.g. 10:00-11:00 and 11:00-12:00) do not overlap.
    """
    return a.start < b.end and b.start < a.end


def restrict_to(a: Interval, b: Interval) -> Interval | None:
    """Return the intersection of both intervals, or None if they are disjoint."""
    start = max(a.start, b.start)
    end = min(a.end, b.end)
    if start >= end:
        return None
    return Interval(start, end)


def is_valid(interval: Interval) -> bool:
    return interval.is_valid()
