"""
Booking ledger: the only writer of court bookings.

Every operation that depends on the no-overlap rule runs its check and its
write as one unit inside the court scope (app.services.ledger), so the
invariant holds at every point another request can observe:

    for each court, no two bookings with status booked/completed overlap

A conflict on request is not an error. request_booking answers with
BookingConflict and, in the same transaction, puts the request on the
court's waitlist. create_booking is the ledger primitive without the
waitlist step.

State machine:
    booked -> cancelled   (frees capacity, triggers a promotion sweep)
    booked -> completed   (still occupies the slot)
    cancelled, completed are terminal
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidTransition, NotFound, SlotUnavailable
from app.core.logging import get_logger
from app.core.metrics import booking_latency, record_booking_attempt
from app.domain.interval import Interval
from app.models.booking import BOOKED, CANCELLED, COMPLETED, Booking
from app.models.waitlist import WaitlistEntry
from app.schemas.booking import BookingUpdate
from app.services import booking_events
from app.services.conflict_service import find_conflicts
from app.services.directory_service import player_exists
from app.services.ledger import insert_booking, lock_court, run_for_record, run_in_court_scope
from app.services.promotion_service import promotion_events, sweep_waitlist
from app.services.waitlist_service import add_entry

logger = get_logger(__name__)


@dataclass
class ConflictInfo:
    court_id: int
    interval: Interval
    conflicting_booking_ids: list[int] = field(default_factory=list)


@dataclass
class BookingCreated:
    booking: Booking


@dataclass
class BookingConflict:
    conflict: ConflictInfo
    waitlist_entry: Optional[WaitlistEntry] = None


BookingOutcome = Union[BookingCreated, BookingConflict]


async def _create_in_scope(
    db: AsyncSession,
    court_id: int,
    player_id: int,
    interval: Interval,
    price_cents: int,
) -> BookingOutcome:
    court = await lock_court(db, court_id)
    if not court.is_active:
        raise NotFound(f"Court {court_id} is not active")
    if not await player_exists(db, player_id):
        raise NotFound(f"Player {player_id} not found")

    conflicts = await find_conflicts(db, court_id, interval)
    if conflicts:
        return BookingConflict(
            conflict=ConflictInfo(
                court_id=court_id,
                interval=interval,
                conflicting_booking_ids=[b.id for b in conflicts],
            )
        )

    booking = await insert_booking(db, court_id, player_id, interval, price_cents)
    return BookingCreated(booking=booking)


async def _record_outcome(outcome: BookingOutcome, player_id: int) -> None:
    if isinstance(outcome, BookingCreated):
        booking = outcome.booking
        logger.info(
            "booking_created",
            booking_id=booking.id,
            court_id=booking.court_id,
            player_id=player_id,
            start_time=booking.start_time.isoformat(),
            end_time=booking.end_time.isoformat(),
        )
        record_booking_attempt("success")
        await booking_events.publish(booking_events.booking_event(booking_events.BOOKING_CREATED, booking))
        return

    conflict = outcome.conflict
    logger.warning(
        "booking_conflict",
        court_id=conflict.court_id,
        player_id=player_id,
        interval=str(conflict.interval),
        conflicting_booking_ids=conflict.conflicting_booking_ids,
        waitlist_entry_id=outcome.waitlist_entry.id if outcome.waitlist_entry else None,
    )
    record_booking_attempt("conflict")
    if outcome.waitlist_entry is not None:
        await booking_events.publish(
            booking_events.waitlist_event(booking_events.WAITLIST_ENQUEUED, outcome.waitlist_entry)
        )


async def create_booking(
    db: AsyncSession,
    court_id: int,
    player_id: int,
    interval: Interval,
    price_cents: int = 0,
) -> BookingOutcome:
    """
    Book the interval if the court is free. On conflict nothing is written
    and the caller decides what to do with the ConflictInfo.
    """
    with booking_latency.time():
        try:
            outcome = await run_in_court_scope(
                db,
                [court_id],
                lambda: _create_in_scope(db, court_id, player_id, interval, price_cents),
                "create_booking",
            )
        except NotFound:
            record_booking_attempt("error")
            raise
    await _record_outcome(outcome, player_id)
    return outcome


async def request_booking(
    db: AsyncSession,
    court_id: int,
    player_id: int,
    interval: Interval,
    price_cents: int = 0,
) -> BookingOutcome:
    """
    Book the interval, or put the request on the court's waitlist when it
    overlaps an active booking. Either way exactly one row is written, in
    the same transaction as the conflict check.
    """

    async def work() -> BookingOutcome:
        outcome = await _create_in_scope(db, court_id, player_id, interval, price_cents)
        if isinstance(outcome, BookingConflict):
            outcome.waitlist_entry = await add_entry(
                db, court_id, player_id, interval, priority=0, price_cents=price_cents
            )
        return outcome

    with booking_latency.time():
        try:
            outcome = await run_in_court_scope(db, [court_id], work, "request_booking")
        except NotFound:
            record_booking_attempt("error")
            raise
    await _record_outcome(outcome, player_id)
    return outcome


async def cancel_booking(db: AsyncSession, booking_id: int) -> Booking:
    """Cancel a booked slot and offer it to the waitlist in the same transaction."""

    async def work(booking: Booking):
        if booking.status != BOOKED:
            raise InvalidTransition(f"Booking {booking.id} is already {booking.status}")
        booking.status = CANCELLED
        await db.flush()
        promoted = await sweep_waitlist(db, booking.court_id, booking.interval)
        return booking, promoted

    booking, promoted = await run_for_record(db, Booking, booking_id, work, "cancel_booking")

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        court_id=booking.court_id,
        promoted_entries=[p.entry.id for p in promoted],
    )
    await booking_events.publish(
        booking_events.booking_event(booking_events.BOOKING_CANCELLED, booking),
        *promotion_events(promoted),
    )
    return booking


async def complete_booking(db: AsyncSession, booking_id: int) -> Booking:
    """Mark a booking as played. Completed bookings keep blocking their slot."""

    async def work(booking: Booking) -> Booking:
        if booking.status != BOOKED:
            raise InvalidTransition(f"Booking {booking.id} is {booking.status} and cannot be completed")
        booking.status = COMPLETED
        await db.flush()
        return booking

    booking = await run_for_record(db, Booking, booking_id, work, "complete_booking")

    logger.info("booking_completed", booking_id=booking.id, court_id=booking.court_id)
    await booking_events.publish(booking_events.booking_event(booking_events.BOOKING_COMPLETED, booking))
    return booking


async def update_booking(db: AsyncSession, booking_id: int, patch: BookingUpdate) -> Booking:
    """
    Apply an enumerated patch. Court or interval changes are re-checked
    against the target court with this booking excluded, and the vacated
    interval is swept for promotion. An overlapping move raises
    SlotUnavailable and leaves the booking untouched.
    """
    if patch.start_time is not None and patch.end_time is not None:
        Interval(patch.start_time, patch.end_time)

    async def work(booking: Booking):
        promoted = []
        target_court_id = patch.court_id if patch.court_id is not None else booking.court_id
        target = Interval(patch.start_time or booking.start_time, patch.end_time or booking.end_time)
        # Echoing the current court and times back is not a move
        if target_court_id != booking.court_id or target != booking.interval:
            if booking.status != BOOKED:
                raise InvalidTransition(f"Booking {booking.id} is {booking.status} and cannot be moved")

            if target_court_id != booking.court_id:
                court = await lock_court(db, target_court_id)
                if not court.is_active:
                    raise NotFound(f"Court {target_court_id} is not active")

            conflicts = await find_conflicts(db, target_court_id, target, exclude_booking_id=booking.id)
            if conflicts:
                raise SlotUnavailable(
                    f"Court {target_court_id} is already booked during {target} "
                    f"(bookings {[b.id for b in conflicts]})"
                )

            vacated_court_id, vacated = booking.court_id, booking.interval
            booking.court_id = target_court_id
            booking.start_time = target.start
            booking.end_time = target.end
            await db.flush()
            promoted = await sweep_waitlist(db, vacated_court_id, vacated)

        if patch.price_cents is not None:
            booking.price_cents = patch.price_cents
        if patch.payment_status is not None:
            booking.payment_status = patch.payment_status
        await db.flush()
        return booking, promoted

    booking, promoted = await run_for_record(
        db, Booking, booking_id, work, "update_booking", extra_court_ids=(patch.court_id,)
    )

    logger.info(
        "booking_updated",
        booking_id=booking.id,
        court_id=booking.court_id,
        fields=sorted(patch.model_dump(exclude_unset=True)),
        promoted_entries=[p.entry.id for p in promoted],
    )
    await booking_events.publish(
        booking_events.booking_event(booking_events.BOOKING_UPDATED, booking),
        *promotion_events(promoted),
    )
    return booking


async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
    booking = await db.get(Booking, booking_id)
    if not booking:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


async def list_bookings(
    db: AsyncSession,
    court_id: Optional[int] = None,
    player_id: Optional[int] = None,
    status: Optional[str] = None,
    on_date: Optional[date] = None,
) -> list[Booking]:
    """Bookings ordered by start time, optionally filtered by court, player, status or UTC day."""
    query = select(Booking)
    if court_id is not None:
        query = query.where(Booking.court_id == court_id)
    if player_id is not None:
        query = query.where(Booking.player_id == player_id)
    if status is not None:
        query = query.where(Booking.status == status)
    if on_date is not None:
        day = Interval.day(on_date)
        query = query.where(Booking.start_time >= day.start, Booking.start_time < day.end)

    result = await db.execute(query.order_by(Booking.start_time, Booking.id))
    return list(result.scalars().all())
