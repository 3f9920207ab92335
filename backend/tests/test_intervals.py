"""
Tests for the half-open interval type.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.exceptions import InvalidInterval
from app.domain.interval import Interval


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 6, 1, hour, minute, tzinfo=timezone.utc)


def test_back_to_back_intervals_do_not_overlap():
    morning = Interval(at(9), at(10))
    next_hour = Interval(at(10), at(11))
    assert not morning.overlaps(next_hour)
    assert not next_hour.overlaps(morning)


@pytest.mark.parametrize(
    "other",
    [
        Interval(at(10, 30), at(11, 30)),  # straddles the end
        Interval(at(9, 30), at(10, 30)),   # straddles the start
        Interval(at(10, 15), at(10, 45)),  # contained
        Interval(at(9), at(12)),           # contains
        Interval(at(10), at(11)),          # identical
    ],
)
def test_overlapping_intervals(other):
    slot = Interval(at(10), at(11))
    assert slot.overlaps(other)
    assert other.overlaps(slot)


def test_empty_interval_rejected():
    with pytest.raises(InvalidInterval) as exc_info:
        Interval(at(10), at(10))
    assert exc_info.value.status_code == 400


def test_inverted_interval_rejected():
    with pytest.raises(InvalidInterval):
        Interval(at(11), at(10))


def test_naive_datetimes_are_treated_as_utc():
    interval = Interval(datetime(2030, 6, 1, 10), datetime(2030, 6, 1, 11))
    assert interval.start == at(10)
    assert interval.start.tzinfo == timezone.utc


def test_offsets_are_normalized_to_utc():
    plus_two = timezone(timedelta(hours=2))
    interval = Interval(datetime(2030, 6, 1, 12, tzinfo=plus_two), datetime(2030, 6, 1, 13, tzinfo=plus_two))
    assert interval.start == at(10)
    assert interval.end.utcoffset() == timedelta(0)
    # An hour that only looks different because of its offset is the same slot
    assert interval.overlaps(Interval(at(10), at(11)))


def test_day_covers_utc_calendar_day():
    day = Interval.day(date(2030, 6, 1))
    assert day.start == at(0)
    assert day.end == datetime(2030, 6, 2, tzinfo=timezone.utc)
    assert day.duration == timedelta(days=1)
    assert day.overlaps(Interval(at(23), at(23, 59)))
    assert not day.overlaps(Interval(day.end, day.end + timedelta(hours=1)))
