"""
Court endpoints, including the per-day schedule view (Redis-cached).
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.booking import BookingResponse
from app.schemas.court import CourtCreate, CourtUpdate, CourtResponse, CourtScheduleResponse
from app.schemas.waitlist import WaitlistEntryResponse
from app.services import booking_service, directory_service, waitlist_service
from app.services.cache_service import get_cached_schedule, set_cached_schedule, invalidate_court_schedule
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/courts", tags=["Courts"])


@router.post("/", response_model=CourtResponse, status_code=status.HTTP_201_CREATED)
async def create_court(court_data: CourtCreate, db: AsyncSession = Depends(get_db)):
    return await directory_service.create_court(db, court_data)


@router.get("/", response_model=list[CourtResponse])
async def list_courts(active_only: bool = Query(False), db: AsyncSession = Depends(get_db)):
    return await directory_service.list_courts(db, active_only)


@router.get("/{court_id}", response_model=CourtResponse)
async def get_court(court_id: int, db: AsyncSession = Depends(get_db)):
    return await directory_service.get_court(db, court_id)


@router.patch("/{court_id}", response_model=CourtResponse)
async def update_court(court_id: int, patch: CourtUpdate, db: AsyncSession = Depends(get_db)):
    court = await directory_service.update_court(db, court_id, patch)
    await invalidate_court_schedule(court_id)
    return court


@router.get("/{court_id}/schedule", response_model=CourtScheduleResponse)
async def get_court_schedule(
    court_id: int,
    on_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Bookings and waitlist entries starting on the given UTC day.
    Cached in Redis; every booking or waitlist change on the court drops it.
    """
    cached = await get_cached_schedule(court_id, on_date)
    if cached:
        logger.info("schedule_cache_hit", court_id=court_id, on_date=on_date.isoformat())
        cached["cached"] = True
        return CourtScheduleResponse(**cached)

    await directory_service.get_court(db, court_id)
    bookings = await booking_service.list_bookings(db, court_id=court_id, on_date=on_date)
    entries = await waitlist_service.list_entries(db, court_id=court_id, on_date=on_date)

    response_data = {
        "court_id": court_id,
        "on_date": on_date,
        "bookings": [BookingResponse.model_validate(b).model_dump() for b in bookings],
        "waitlist": [WaitlistEntryResponse.model_validate(e).model_dump() for e in entries],
        "cached": False,
    }
    await set_cached_schedule(court_id, on_date, response_data)

    return CourtScheduleResponse(**response_data)
