"""
Waitlist queue: requests that could not be booked when they were made.

Ordering is the only fairness policy: higher priority first, then earliest
request (created_at, then id, so entries created within the same clock tick
stay FIFO).

Status moves:
  waiting  -> notified | booked | cancelled | expired
  notified -> booked | cancelled | expired
  booked, cancelled, expired are terminal.

Promotion to `booked` belongs to app.services.promotion_service.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidTransition, NotFound
from app.core.logging import get_logger
from app.core.metrics import record_waitlist_operation
from app.db.base import utcnow
from app.domain.interval import Interval
from app.models.waitlist import (
    CANCELLED, EXPIRED, NOTIFIED, OPEN_STATUSES, WAITING, WaitlistEntry,
)
from app.schemas.waitlist import WaitlistEntryUpdate
from app.services import booking_events, directory_service
from app.services.ledger import lock_court, run_for_record, run_in_court_scope

logger = get_logger(__name__)


async def add_entry(
    db: AsyncSession,
    court_id: int,
    player_id: int,
    interval: Interval,
    priority: int = 0,
    price_cents: int = 0,
) -> WaitlistEntry:
    """Insert a waiting entry in the caller's transaction."""
    entry = WaitlistEntry(
        court_id=court_id,
        player_id=player_id,
        start_time=interval.start,
        end_time=interval.end,
        priority=priority,
        price_cents=price_cents,
        status=WAITING,
        created_at=utcnow(),
    )
    db.add(entry)
    await db.flush()
    await db.refresh(entry)
    return entry


async def enqueue(
    db: AsyncSession,
    court_id: int,
    player_id: int,
    interval: Interval,
    priority: int = 0,
    price_cents: int = 0,
) -> WaitlistEntry:
    """
    Add a player to a court's waitlist. No conflict check is made here; a
    free slot is picked up by the next sweep or an explicit recheck.
    """
    await directory_service.get_court(db, court_id)
    if not await directory_service.player_exists(db, player_id):
        raise NotFound(f"Player {player_id} not found")

    entry = await add_entry(db, court_id, player_id, interval, priority, price_cents)
    await db.commit()

    logger.info(
        "waitlist_enqueued",
        entry_id=entry.id,
        court_id=court_id,
        player_id=player_id,
        priority=priority,
    )
    record_waitlist_operation("enqueued")
    await booking_events.publish(booking_events.waitlist_event(booking_events.WAITLIST_ENQUEUED, entry))
    return entry


async def dequeue_candidates(db: AsyncSession, court_id: int, interval: Interval) -> list[WaitlistEntry]:
    """Waiting entries on the court overlapping the interval, in promotion order."""
    result = await db.execute(
        select(WaitlistEntry)
        .where(
            WaitlistEntry.court_id == court_id,
            WaitlistEntry.status == WAITING,
            WaitlistEntry.start_time < interval.end,
            WaitlistEntry.end_time > interval.start,
        )
        .order_by(
            WaitlistEntry.priority.desc(),
            WaitlistEntry.created_at.asc(),
            WaitlistEntry.id.asc(),
        )
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def cancel_entry(db: AsyncSession, entry_id: int) -> WaitlistEntry:
    async def work(entry: WaitlistEntry) -> WaitlistEntry:
        if not entry.is_open:
            raise InvalidTransition(f"Waitlist entry {entry.id} is already {entry.status}")
        entry.status = CANCELLED
        await db.flush()
        return entry

    entry = await run_for_record(db, WaitlistEntry, entry_id, work, "cancel_waitlist_entry")

    logger.info("waitlist_cancelled", entry_id=entry.id, court_id=entry.court_id)
    record_waitlist_operation("cancelled")
    await booking_events.publish(booking_events.waitlist_event(booking_events.WAITLIST_CANCELLED, entry))
    return entry


async def update_entry(db: AsyncSession, entry_id: int, patch: WaitlistEntryUpdate) -> WaitlistEntry:
    """
    Apply an enumerated patch to an open entry. Promotion is not attempted
    here; callers follow up with promotion_service.recheck_waitlist_entry.
    """
    if patch.start_time is not None and patch.end_time is not None:
        Interval(patch.start_time, patch.end_time)

    async def work(entry: WaitlistEntry) -> WaitlistEntry:
        if not entry.is_open:
            raise InvalidTransition(f"Waitlist entry {entry.id} is {entry.status} and can no longer change")

        interval = Interval(patch.start_time or entry.start_time, patch.end_time or entry.end_time)
        if patch.court_id is not None and patch.court_id != entry.court_id:
            await lock_court(db, patch.court_id)
            entry.court_id = patch.court_id
        entry.start_time = interval.start
        entry.end_time = interval.end
        if patch.priority is not None:
            entry.priority = patch.priority
        if patch.status == NOTIFIED:
            entry.status = NOTIFIED
        await db.flush()
        return entry

    entry = await run_for_record(
        db, WaitlistEntry, entry_id, work, "update_waitlist_entry", extra_court_ids=(patch.court_id,)
    )

    logger.info(
        "waitlist_updated",
        entry_id=entry.id,
        court_id=entry.court_id,
        priority=entry.priority,
        status=entry.status,
    )
    record_waitlist_operation("updated")
    await booking_events.publish(booking_events.waitlist_event(booking_events.WAITLIST_UPDATED, entry))
    return entry


async def expire_stale_entries(db: AsyncSession, now: Optional[datetime] = None) -> list[WaitlistEntry]:
    """Mark open entries whose start time has passed as expired and return them."""
    now = now or utcnow()
    stale_filters = (
        WaitlistEntry.status.in_(OPEN_STATUSES),
        WaitlistEntry.start_time <= now,
    )

    result = await db.execute(select(WaitlistEntry.court_id).where(*stale_filters).distinct())
    court_ids = sorted(row[0] for row in result.all())
    if not court_ids:
        return []

    async def work() -> list[WaitlistEntry]:
        for court_id in court_ids:
            await lock_court(db, court_id)
        result = await db.execute(
            select(WaitlistEntry)
            .where(*stale_filters, WaitlistEntry.court_id.in_(court_ids))
            .with_for_update()
        )
        stale = list(result.scalars().all())
        for entry in stale:
            entry.status = EXPIRED
        await db.flush()
        return stale

    expired = await run_in_court_scope(db, court_ids, work, "expire_waitlist_entries")

    logger.info("waitlist_expired", count=len(expired), court_ids=court_ids)
    record_waitlist_operation("expired", len(expired))
    await booking_events.publish(
        *(booking_events.waitlist_event(booking_events.WAITLIST_EXPIRED, e) for e in expired)
    )
    return expired


async def get_entry(db: AsyncSession, entry_id: int) -> WaitlistEntry:
    entry = await db.get(WaitlistEntry, entry_id)
    if not entry:
        raise NotFound(f"Waitlist entry {entry_id} not found")
    return entry


async def list_entries(
    db: AsyncSession,
    court_id: Optional[int] = None,
    player_id: Optional[int] = None,
    status: Optional[str] = None,
    on_date: Optional[date] = None,
) -> list[WaitlistEntry]:
    query = select(WaitlistEntry)
    if court_id is not None:
        query = query.where(WaitlistEntry.court_id == court_id)
    if player_id is not None:
        query = query.where(WaitlistEntry.player_id == player_id)
    if status is not None:
        query = query.where(WaitlistEntry.status == status)
    if on_date is not None:
        day = Interval.day(on_date)
        query = query.where(WaitlistEntry.start_time >= day.start, WaitlistEntry.start_time < day.end)

    result = await db.execute(query.order_by(WaitlistEntry.created_at, WaitlistEntry.id))
    return list(result.scalars().all())
