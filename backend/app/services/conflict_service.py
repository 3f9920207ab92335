"""
Conflict detection against the active bookings of a court.

Overlap uses the half-open rule: [s1, e1) and [s2, e2) overlap iff
s1 < e2 and s2 < e1, so back-to-back bookings do not conflict.

These are pure reads. Callers whose next write depends on the answer must
already hold the court scope (see app.services.ledger), otherwise the answer
can be stale by the time they insert.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.interval import Interval
from app.models.booking import ACTIVE_STATUSES, Booking
from app.core.metrics import record_db_operation


def _conflict_filters(court_id: int, interval: Interval, exclude_booking_id: Optional[int]) -> list:
    filters = [
        Booking.court_id == court_id,
        Booking.status.in_(ACTIVE_STATUSES),
        Booking.start_time < interval.end,
        Booking.end_time > interval.start,
    ]
    if exclude_booking_id is not None:
        filters.append(Booking.id != exclude_booking_id)
    return filters


async def find_conflicts(
    db: AsyncSession,
    court_id: int,
    interval: Interval,
    exclude_booking_id: Optional[int] = None,
) -> list[Booking]:
    """Active bookings on the court that overlap the interval, earliest first."""
    record_db_operation("read")
    result = await db.execute(
        select(Booking)
        .where(*_conflict_filters(court_id, interval, exclude_booking_id))
        .order_by(Booking.start_time)
    )
    return list(result.scalars().all())


async def has_conflict(
    db: AsyncSession,
    court_id: int,
    interval: Interval,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    record_db_operation("read")
    result = await db.execute(
        select(Booking.id)
        .where(*_conflict_filters(court_id, interval, exclude_booking_id))
        .limit(1)
    )
    return result.first() is not None
