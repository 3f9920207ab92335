"""
Promotion engine: turns waitlist entries into bookings once their interval
is free.

Two entry points:
  - sweep_waitlist: runs inside the court scope of whatever ledger mutation
    freed capacity (cancel, move) and walks every overlapping candidate
  - recheck_waitlist_entry: explicit single-entry attempt, called by the API
    after an entry is edited or on demand

The sweep re-runs the conflict check for each candidate's own interval
against the current ledger, including bookings it has just promoted. A freed
hour can therefore satisfy two half-hour entries, while a higher-priority
entry that takes the slot blocks the ones behind it.

Running a sweep twice without ledger changes promotes nothing the second
time: promoted entries are `booked` and only `waiting` entries are candidates.
"""

from dataclasses import dataclass
from typing import Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidTransition
from app.core.logging import get_logger
from app.core.metrics import record_promotion
from app.domain.interval import Interval
from app.models.booking import Booking
from app.models.waitlist import BOOKED, WaitlistEntry
from app.services import booking_events
from app.services.conflict_service import has_conflict
from app.services.directory_service import court_is_active
from app.services.ledger import insert_booking, run_for_record
from app.services.waitlist_service import dequeue_candidates

logger = get_logger(__name__)


@dataclass
class Promoted:
    booking: Booking
    entry: WaitlistEntry


@dataclass
class StillWaiting:
    entry: WaitlistEntry


RecheckResult = Union[Promoted, StillWaiting]


async def _promote(db: AsyncSession, entry: WaitlistEntry) -> Booking:
    booking = await insert_booking(
        db,
        court_id=entry.court_id,
        player_id=entry.player_id,
        interval=entry.interval,
        price_cents=entry.price_cents,
    )
    entry.status = BOOKED
    entry.booking_id = booking.id
    await db.flush()
    return booking


async def sweep_waitlist(db: AsyncSession, court_id: int, freed: Interval) -> list[Promoted]:
    """
    Promote every eligible waiting entry overlapping `freed`, in order.
    Caller must hold the court scope; nothing is committed here.
    """
    if not await court_is_active(db, court_id):
        return []

    promoted: list[Promoted] = []
    for entry in await dequeue_candidates(db, court_id, freed):
        if await has_conflict(db, court_id, entry.interval):
            logger.debug("waitlist_still_waiting", entry_id=entry.id, court_id=court_id)
            continue
        booking = await _promote(db, entry)
        promoted.append(Promoted(booking=booking, entry=entry))
        logger.info(
            "waitlist_promoted",
            entry_id=entry.id,
            booking_id=booking.id,
            court_id=court_id,
            priority=entry.priority,
            trigger="sweep",
        )
        record_promotion("sweep")
    return promoted


def promotion_events(promoted: list[Promoted]) -> list[booking_events.BookingEvent]:
    return [
        booking_events.booking_event(booking_events.BOOKING_PROMOTED, p.booking, waitlist_entry_id=p.entry.id)
        for p in promoted
    ]


async def recheck_waitlist_entry(db: AsyncSession, entry_id: int) -> RecheckResult:
    """Try to book one waitlist entry against the current ledger."""

    async def work(entry: WaitlistEntry) -> RecheckResult:
        if not entry.is_open:
            raise InvalidTransition(f"Waitlist entry {entry.id} is {entry.status} and cannot be rechecked")
        if not await court_is_active(db, entry.court_id):
            return StillWaiting(entry=entry)
        if await has_conflict(db, entry.court_id, entry.interval):
            return StillWaiting(entry=entry)
        booking = await _promote(db, entry)
        return Promoted(booking=booking, entry=entry)

    result = await run_for_record(db, WaitlistEntry, entry_id, work, "recheck_waitlist_entry")

    if isinstance(result, Promoted):
        logger.info(
            "waitlist_promoted",
            entry_id=result.entry.id,
            booking_id=result.booking.id,
            court_id=result.entry.court_id,
            priority=result.entry.priority,
            trigger="recheck",
        )
        record_promotion("recheck")
        await booking_events.publish(*promotion_events([result]))
    else:
        logger.debug("waitlist_still_waiting", entry_id=entry_id)
    return result
