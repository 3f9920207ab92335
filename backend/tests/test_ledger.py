"""
Tests for the booking ledger: conflict checks, state transitions, moves,
and the per-court scope that keeps concurrent requests from double-booking.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError

from app.core.exceptions import InvalidInterval, InvalidTransition, NotFound, SlotUnavailable
from app.core.locks import court_locks
from app.domain.interval import Interval
from app.models.booking import ACTIVE_STATUSES, Booking
from app.models.waitlist import WaitlistEntry
from app.schemas.booking import BookingUpdate
from app.services import booking_service
from app.services.booking_service import BookingConflict, BookingCreated
from app.services.ledger import run_in_court_scope


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 6, 1, hour, minute, tzinfo=timezone.utc)


def slot(start: datetime, end: datetime) -> Interval:
    return Interval(start, end)


async def count_active(session_factory, court_id: int) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.count(Booking.id)).where(
                Booking.court_id == court_id, Booking.status.in_(ACTIVE_STATUSES)
            )
        )
        return result.scalar_one()


async def load(session_factory, model, record_id: int):
    async with session_factory() as session:
        return await session.get(model, record_id)


@pytest.mark.asyncio
async def test_book_free_court(db_session, court, players):
    outcome = await booking_service.request_booking(
        db_session, court.id, players[0].id, slot(at(10), at(11)), price_cents=2500
    )
    assert isinstance(outcome, BookingCreated)
    booking = outcome.booking
    assert booking.status == "booked"
    assert booking.payment_status == "unpaid"
    assert booking.price_cents == 2500
    assert booking.start_time == at(10)


@pytest.mark.asyncio
async def test_back_to_back_is_not_a_conflict(db_session, court, players):
    first = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(9), at(10)))
    second = await booking_service.request_booking(db_session, court.id, players[1].id, slot(at(10), at(11)))
    assert isinstance(first, BookingCreated)
    assert isinstance(second, BookingCreated)


@pytest.mark.asyncio
async def test_overlapping_request_goes_to_waitlist(db_session, session_factory, court, players):
    """[10:00, 11:00) against an active [10:30, 11:30) is waitlisted with the requested interval."""
    existing = await booking_service.request_booking(
        db_session, court.id, players[0].id, slot(at(10, 30), at(11, 30))
    )
    outcome = await booking_service.request_booking(
        db_session, court.id, players[1].id, slot(at(10), at(11)), price_cents=1800
    )

    assert isinstance(outcome, BookingConflict)
    assert outcome.conflict.conflicting_booking_ids == [existing.booking.id]
    entry = outcome.waitlist_entry
    assert entry.status == "waiting"
    assert entry.player_id == players[1].id
    assert entry.start_time == at(10)
    assert entry.end_time == at(11)
    assert entry.price_cents == 1800

    assert await count_active(session_factory, court.id) == 1
    async with session_factory() as session:
        entries = (await session.execute(select(WaitlistEntry))).scalars().all()
    assert [e.id for e in entries] == [entry.id]


@pytest.mark.asyncio
async def test_create_booking_on_conflict_writes_nothing(db_session, session_factory, court, players):
    await booking_service.create_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    outcome = await booking_service.create_booking(db_session, court.id, players[1].id, slot(at(10), at(12)))

    assert isinstance(outcome, BookingConflict)
    assert outcome.waitlist_entry is None
    async with session_factory() as session:
        assert (await session.execute(select(func.count(WaitlistEntry.id)))).scalar_one() == 0


@pytest.mark.asyncio
async def test_completed_booking_still_blocks_slot(db_session, court, players):
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    await booking_service.complete_booking(db_session, created.booking.id)

    outcome = await booking_service.request_booking(db_session, court.id, players[1].id, slot(at(10), at(11)))
    assert isinstance(outcome, BookingConflict)


@pytest.mark.asyncio
async def test_cancelled_booking_frees_slot(db_session, court, players):
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    cancelled = await booking_service.cancel_booking(db_session, created.booking.id)
    assert cancelled.status == "cancelled"

    outcome = await booking_service.request_booking(db_session, court.id, players[1].id, slot(at(10), at(11)))
    assert isinstance(outcome, BookingCreated)


@pytest.mark.asyncio
async def test_same_interval_on_other_court_is_independent(db_session, court, second_court, players):
    first = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    second = await booking_service.request_booking(
        db_session, second_court.id, players[1].id, slot(at(10), at(11))
    )
    assert isinstance(first, BookingCreated)
    assert isinstance(second, BookingCreated)


@pytest.mark.asyncio
async def test_concurrent_requests_for_same_slot(session_factory, court, players):
    """Two simultaneous requests for overlapping intervals: exactly one booking."""

    async def attempt(player_id: int, interval: Interval):
        async with session_factory() as session:
            return await booking_service.request_booking(session, court.id, player_id, interval)

    outcomes = await asyncio.gather(
        attempt(players[0].id, slot(at(10), at(11))),
        attempt(players[1].id, slot(at(10, 30), at(11, 30))),
    )

    assert sorted(type(o).__name__ for o in outcomes) == ["BookingConflict", "BookingCreated"]
    assert await count_active(session_factory, court.id) == 1


@pytest.mark.asyncio
async def test_many_concurrent_requests_book_once(session_factory, court, players):
    async def attempt(player_id: int):
        async with session_factory() as session:
            return await booking_service.request_booking(session, court.id, player_id, slot(at(18), at(19)))

    outcomes = await asyncio.gather(*(attempt(p.id) for p in players))

    assert sum(isinstance(o, BookingCreated) for o in outcomes) == 1
    assert sum(isinstance(o, BookingConflict) for o in outcomes) == len(players) - 1
    assert await count_active(session_factory, court.id) == 1


@pytest.mark.asyncio
async def test_unknown_court(db_session, players):
    with pytest.raises(NotFound):
        await booking_service.request_booking(db_session, 999, players[0].id, slot(at(10), at(11)))


@pytest.mark.asyncio
async def test_inactive_court_rejects_bookings(db_session, inactive_court, players):
    with pytest.raises(NotFound):
        await booking_service.request_booking(db_session, inactive_court.id, players[0].id, slot(at(10), at(11)))


@pytest.mark.asyncio
async def test_unknown_player(db_session, session_factory, court):
    with pytest.raises(NotFound):
        await booking_service.request_booking(db_session, court.id, 999, slot(at(10), at(11)))
    assert await count_active(session_factory, court.id) == 0


@pytest.mark.asyncio
async def test_cancel_twice(db_session, court, players):
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    booking_id = created.booking.id
    await booking_service.cancel_booking(db_session, booking_id)

    with pytest.raises(InvalidTransition):
        await booking_service.cancel_booking(db_session, booking_id)


@pytest.mark.asyncio
async def test_complete_cancelled_booking(db_session, court, players):
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    booking_id = created.booking.id
    await booking_service.cancel_booking(db_session, booking_id)

    with pytest.raises(InvalidTransition):
        await booking_service.complete_booking(db_session, booking_id)


@pytest.mark.asyncio
async def test_cancel_completed_booking(db_session, court, players):
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    booking_id = created.booking.id
    await booking_service.complete_booking(db_session, booking_id)

    with pytest.raises(InvalidTransition):
        await booking_service.cancel_booking(db_session, booking_id)


@pytest.mark.asyncio
async def test_cancel_unknown_booking(db_session):
    with pytest.raises(NotFound):
        await booking_service.cancel_booking(db_session, 12345)


@pytest.mark.asyncio
async def test_update_payment_fields(db_session, court, players):
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    booking = await booking_service.update_booking(
        db_session, created.booking.id, BookingUpdate(payment_status="paid", price_cents=3000)
    )
    assert booking.payment_status == "paid"
    assert booking.price_cents == 3000
    assert booking.start_time == at(10)


@pytest.mark.asyncio
async def test_move_within_own_interval(db_session, court, players):
    """A booking does not conflict with itself when shifted."""
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    moved = await booking_service.update_booking(
        db_session, created.booking.id, BookingUpdate(start_time=at(10, 30), end_time=at(11, 30))
    )
    assert moved.start_time == at(10, 30)
    assert moved.end_time == at(11, 30)


@pytest.mark.asyncio
async def test_move_into_conflict_leaves_booking_untouched(db_session, session_factory, court, players):
    first = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    second = await booking_service.request_booking(db_session, court.id, players[1].id, slot(at(12), at(13)))
    first_id, second_id = first.booking.id, second.booking.id

    with pytest.raises(SlotUnavailable) as exc_info:
        await booking_service.update_booking(db_session, second_id, BookingUpdate(start_time=at(10, 30)))
    assert exc_info.value.status_code == 409
    assert str(first_id) in exc_info.value.detail

    stored = await load(session_factory, Booking, second_id)
    assert stored.start_time == at(12)
    assert stored.end_time == at(13)


@pytest.mark.asyncio
async def test_move_to_another_court(db_session, session_factory, court, second_court, players):
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    moved = await booking_service.update_booking(
        db_session, created.booking.id, BookingUpdate(court_id=second_court.id)
    )
    assert moved.court_id == second_court.id
    assert await count_active(session_factory, court.id) == 0
    assert await count_active(session_factory, second_court.id) == 1


@pytest.mark.asyncio
async def test_move_to_inactive_court(db_session, court, inactive_court, players):
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    with pytest.raises(NotFound):
        await booking_service.update_booking(
            db_session, created.booking.id, BookingUpdate(court_id=inactive_court.id)
        )


@pytest.mark.asyncio
async def test_move_to_inverted_interval(db_session, court, players):
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    with pytest.raises(InvalidInterval):
        await booking_service.update_booking(db_session, created.booking.id, BookingUpdate(start_time=at(12)))


@pytest.mark.asyncio
async def test_cancelled_booking_cannot_move(db_session, court, players):
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    booking_id = created.booking.id
    await booking_service.cancel_booking(db_session, booking_id)

    with pytest.raises(InvalidTransition):
        await booking_service.update_booking(db_session, booking_id, BookingUpdate(start_time=at(9)))


@pytest.mark.asyncio
async def test_completed_booking_accepts_unchanged_court_and_times(db_session, court, players):
    """A full record sent back with a payment change is not a move."""
    created = await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    booking_id = created.booking.id
    await booking_service.complete_booking(db_session, booking_id)

    updated = await booking_service.update_booking(
        db_session,
        booking_id,
        BookingUpdate(court_id=court.id, start_time=at(10), end_time=at(11), payment_status="paid"),
    )
    assert updated.status == "completed"
    assert updated.payment_status == "paid"
    assert updated.start_time == at(10)


@pytest.mark.asyncio
async def test_list_bookings_filters(db_session, court, second_court, players):
    await booking_service.request_booking(db_session, court.id, players[0].id, slot(at(10), at(11)))
    await booking_service.request_booking(db_session, court.id, players[1].id, slot(at(8), at(9)))
    await booking_service.request_booking(db_session, second_court.id, players[0].id, slot(at(10), at(11)))

    on_court = await booking_service.list_bookings(db_session, court_id=court.id)
    assert [b.start_time for b in on_court] == [at(8), at(10)]

    for_player = await booking_service.list_bookings(db_session, player_id=players[0].id)
    assert len(for_player) == 2

    other_day = await booking_service.list_bookings(db_session, on_date=datetime(2030, 6, 2).date())
    assert other_day == []


class SerializationFailure(Exception):
    sqlstate = "40001"


class UniqueViolation(Exception):
    sqlstate = "23505"


@pytest.mark.asyncio
async def test_serialization_failure_is_retried(db_session):
    calls = 0

    async def work():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise DBAPIError("INSERT INTO bookings", {}, SerializationFailure("could not serialize access"))
        return "committed"

    assert await run_in_court_scope(db_session, [1], work, "test_retry") == "committed"
    assert calls == 2


@pytest.mark.asyncio
async def test_retries_are_bounded(db_session):
    calls = 0

    async def work():
        nonlocal calls
        calls += 1
        raise DBAPIError("INSERT INTO bookings", {}, SerializationFailure("could not serialize access"))

    with pytest.raises(DBAPIError):
        await run_in_court_scope(db_session, [1], work, "test_retry")
    assert calls == 3


@pytest.mark.asyncio
async def test_other_storage_errors_propagate(db_session):
    calls = 0

    async def work():
        nonlocal calls
        calls += 1
        raise DBAPIError("INSERT INTO bookings", {}, UniqueViolation("duplicate key"))

    with pytest.raises(DBAPIError):
        await run_in_court_scope(db_session, [1], work, "test_retry")
    assert calls == 1


@pytest.mark.asyncio
async def test_court_lock_serializes_same_court():
    order = []

    async def hold(name: str, court_id: int):
        async with court_locks.hold(court_id):
            order.append(f"{name}:in")
            await asyncio.sleep(0.01)
            order.append(f"{name}:out")

    await asyncio.gather(hold("a", 1), hold("b", 1))
    assert order == ["a:in", "a:out", "b:in", "b:out"]


@pytest.mark.asyncio
async def test_court_lock_lets_other_courts_proceed():
    order = []

    async def hold(name: str, court_id: int):
        async with court_locks.hold(court_id):
            order.append(f"{name}:in")
            await asyncio.sleep(0.01)
            order.append(f"{name}:out")

    await asyncio.gather(hold("a", 1), hold("b", 2))
    assert order[:2] == ["a:in", "b:in"]
