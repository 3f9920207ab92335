"""
Waitlist endpoints.

Edits are followed by an explicit recheck, so an entry whose new interval is
free is booked right away.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.domain.interval import Interval
from app.schemas.waitlist import (
    WaitlistEntryCreate, WaitlistEntryUpdate, WaitlistEntryResponse, RecheckResponse, ExpireResponse,
)
from app.services import promotion_service, waitlist_service
from app.services.cache_service import invalidate_court_schedule
from app.services.promotion_service import Promoted

router = APIRouter(prefix="/waitlist", tags=["Waitlist"])


def _recheck_response(result) -> RecheckResponse:
    if isinstance(result, Promoted):
        return RecheckResponse(
            promoted=True,
            entry=WaitlistEntryResponse.model_validate(result.entry),
            booking_id=result.booking.id,
        )
    return RecheckResponse(promoted=False, entry=WaitlistEntryResponse.model_validate(result.entry))


@router.post("/", response_model=WaitlistEntryResponse, status_code=status.HTTP_201_CREATED)
async def enqueue(entry_data: WaitlistEntryCreate, db: AsyncSession = Depends(get_db)):
    interval = Interval(entry_data.start_time, entry_data.end_time)
    entry = await waitlist_service.enqueue(
        db,
        entry_data.court_id,
        entry_data.player_id,
        interval,
        priority=entry_data.priority,
        price_cents=entry_data.price_cents,
    )
    await invalidate_court_schedule(entry.court_id)
    return entry


@router.get("/", response_model=list[WaitlistEntryResponse])
async def list_entries(
    court_id: Optional[int] = Query(None),
    player_id: Optional[int] = Query(None),
    entry_status: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    return await waitlist_service.list_entries(db, court_id, player_id, entry_status)


@router.post("/expire", response_model=ExpireResponse)
async def expire_stale_entries(db: AsyncSession = Depends(get_db)):
    """Expire open entries whose start time has already passed."""
    expired = await waitlist_service.expire_stale_entries(db)
    await invalidate_court_schedule(*(entry.court_id for entry in expired))
    return ExpireResponse(expired=len(expired))


@router.get("/{entry_id}", response_model=WaitlistEntryResponse)
async def get_entry(entry_id: int, db: AsyncSession = Depends(get_db)):
    return await waitlist_service.get_entry(db, entry_id)


@router.patch("/{entry_id}", response_model=RecheckResponse)
async def update_entry(entry_id: int, patch: WaitlistEntryUpdate, db: AsyncSession = Depends(get_db)):
    before = await waitlist_service.get_entry(db, entry_id)
    previous_court_id = before.court_id
    entry = await waitlist_service.update_entry(db, entry_id, patch)
    result = await promotion_service.recheck_waitlist_entry(db, entry.id)
    await invalidate_court_schedule(previous_court_id, entry.court_id)
    return _recheck_response(result)


@router.post("/{entry_id}/recheck", response_model=RecheckResponse)
async def recheck_entry(entry_id: int, db: AsyncSession = Depends(get_db)):
    result = await promotion_service.recheck_waitlist_entry(db, entry_id)
    await invalidate_court_schedule(result.entry.court_id)
    return _recheck_response(result)


@router.delete("/{entry_id}", response_model=WaitlistEntryResponse)
async def cancel_entry(entry_id: int, db: AsyncSession = Depends(get_db)):
    entry = await waitlist_service.cancel_entry(db, entry_id)
    await invalidate_court_schedule(entry.court_id)
    return entry
