"""
Transactional core of the booking ledger.

CONCURRENCY STRATEGY: Per-court exclusive scope
===============================================

Problem:
  Two players request overlapping slots on the same court at the same time.
  Both run the conflict check, both see a free court, both insert.
  Result: Double booking.

Solution:
  Every operation whose write depends on a conflict check runs as one unit
  inside `run_in_court_scope`:

  1. Acquire the in-process asyncio lock for each court involved
     (ascending id order, so a cross-court move cannot deadlock)
  2. SELECT the court row FOR UPDATE, which serializes separate API
     processes on PostgreSQL (SQLite ignores the clause; the asyncio lock
     covers it since tests run in a single process)
  3. Run the check and the write
  4. COMMIT while still holding the lock, then release

  Courts are independent: no lock is ever shared between two courts.

  If PostgreSQL aborts the unit with a serialization failure or deadlock
  (SQLSTATE 40001 / 40P01) the whole unit is rolled back and re-run, up to
  MAX_RETRY_ATTEMPTS times. Any other storage error propagates unchanged.
"""

from typing import Any, Awaitable, Callable, Iterable, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import NotFound
from app.core.locks import court_locks
from app.core.logging import get_logger, ledger_context
from app.core.metrics import db_retries, record_db_operation
from app.domain.interval import Interval
from app.models.booking import BOOKED, Booking
from app.models.court import Court

logger = get_logger(__name__)

T = TypeVar("T")

RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_retryable(exc: DBAPIError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code in RETRYABLE_SQLSTATES


async def run_in_court_scope(
    db: AsyncSession,
    court_ids: Iterable[int],
    work: Callable[[], Awaitable[T]],
    operation: str,
) -> T:
    """
    Run `work` and commit it while holding the scope of every given court.
    `work` must do all of its reads and writes through `db`.
    """
    court_ids = sorted(set(court_ids))
    max_attempts = get_settings().MAX_RETRY_ATTEMPTS

    with ledger_context(operation, court_ids):
        for attempt in range(1, max_attempts + 1):
            async with court_locks.hold(*court_ids):
                try:
                    result = await work()
                    await db.commit()
                except DBAPIError as exc:
                    await db.rollback()
                    if attempt < max_attempts and is_retryable(exc):
                        logger.info("ledger_retry", attempt=attempt, reason="serialization_failure")
                        db_retries.inc()
                        record_db_operation("retry")
                        continue
                    raise
                except Exception:
                    await db.rollback()
                    raise
                record_db_operation("write")
                return result

    # Unreachable: the last attempt either returns or raises
    raise RuntimeError(f"{operation} exhausted {max_attempts} attempts")


async def lock_court(db: AsyncSession, court_id: int) -> Court:
    """Row-lock the court for the rest of the transaction."""
    result = await db.execute(
        select(Court)
        .where(Court.id == court_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    court = result.scalar_one_or_none()
    if not court:
        raise NotFound(f"Court {court_id} not found")
    return court


_COURT_CHANGED = object()


async def run_for_record(
    db: AsyncSession,
    model: type,
    record_id: int,
    work: Callable[[Any], Awaitable[T]],
    operation: str,
    extra_court_ids: Iterable[int] = (),
) -> T:
    """
    Run `work(record)` in the scope of the court a booking or waitlist entry
    lives on, plus any `extra_court_ids` (the target of a move).

    The record is re-read under the lock. If a concurrent move changed its
    court in the meantime, the scope is re-resolved and the work re-run.
    """
    label = model.__name__
    extra_court_ids = tuple(c for c in extra_court_ids if c is not None)

    while True:
        record = await db.get(model, record_id, populate_existing=True)
        if record is None:
            raise NotFound(f"{label} {record_id} not found")
        court_id = record.court_id
        court_ids = sorted({court_id, *extra_court_ids})

        async def scoped():
            for cid in court_ids:
                await lock_court(db, cid)
            fresh = await db.get(model, record_id, populate_existing=True, with_for_update=True)
            if fresh is None:
                raise NotFound(f"{label} {record_id} not found")
            if fresh.court_id != court_id:
                return _COURT_CHANGED
            return await work(fresh)

        result = await run_in_court_scope(db, court_ids, scoped, operation)
        if result is not _COURT_CHANGED:
            return result
        logger.info("ledger_rescope", operation=operation, record=label, record_id=record_id)


async def insert_booking(
    db: AsyncSession,
    court_id: int,
    player_id: int,
    interval: Interval,
    price_cents: int = 0,
) -> Booking:
    """Insert a booked row. Caller has already checked for conflicts in this scope."""
    booking = Booking(
        court_id=court_id,
        player_id=player_id,
        start_time=interval.start,
        end_time=interval.end,
        status=BOOKED,
        price_cents=price_cents,
        payment_status="unpaid",
    )
    db.add(booking)
    await db.flush()
    await db.refresh(booking)
    return booking
