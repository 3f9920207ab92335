"""
Half-open time interval [start, end) used for bookings and waitlist entries.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from app.core.exceptions import InvalidInterval


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        start, end = _as_utc(self.start), _as_utc(self.end)
        if start >= end:
            raise InvalidInterval(
                f"start_time must be before end_time (got {start.isoformat()} >= {end.isoformat()})"
            )
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def overlaps(self, other: "Interval") -> bool:
        # Touching intervals (self.end == other.start) are back-to-back, not overlapping
        return self.start < other.end and other.start < self.end

    @classmethod
    def day(cls, on_date: date) -> "Interval":
        """The UTC calendar day as [00:00, next day 00:00)."""
        start = datetime.combine(on_date, time.min, tzinfo=timezone.utc)
        return cls(start, start + timedelta(days=1))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"
