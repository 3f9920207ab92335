"""
Booking endpoints backed by the conflict-checked ledger.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.domain.interval import Interval
from app.schemas.booking import BookingCreate, BookingUpdate, BookingResponse, BookingConflictResponse
from app.schemas.waitlist import WaitlistEntryResponse
from app.services import booking_service
from app.services.booking_service import BookingConflict
from app.services.cache_service import invalidate_court_schedule

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_409_CONFLICT: {"model": BookingConflictResponse}},
)
async def create_booking(booking_data: BookingCreate, db: AsyncSession = Depends(get_db)):
    """
    Request a court for an interval.

    201 with the booking when the court is free. 409 when the interval
    overlaps an active booking; the request has then been added to the
    court's waitlist and the entry is returned in the body.
    """
    interval = Interval(booking_data.start_time, booking_data.end_time)
    outcome = await booking_service.request_booking(
        db,
        booking_data.court_id,
        booking_data.player_id,
        interval,
        booking_data.price_cents,
    )
    await invalidate_court_schedule(booking_data.court_id)

    if isinstance(outcome, BookingConflict):
        body = BookingConflictResponse(
            conflicting_booking_ids=outcome.conflict.conflicting_booking_ids,
            waitlist_entry=WaitlistEntryResponse.model_validate(outcome.waitlist_entry),
        )
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump(mode="json"))
    return outcome.booking


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    court_id: Optional[int] = Query(None),
    player_id: Optional[int] = Query(None),
    booking_status: Optional[str] = Query(None, alias="status"),
    on_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.list_bookings(db, court_id, player_id, booking_status, on_date)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: int, db: AsyncSession = Depends(get_db)):
    return await booking_service.get_booking(db, booking_id)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(booking_id: int, patch: BookingUpdate, db: AsyncSession = Depends(get_db)):
    """Update price/payment fields, or move the booking (conflict-checked)."""
    before = await booking_service.get_booking(db, booking_id)
    previous_court_id = before.court_id
    booking = await booking_service.update_booking(db, booking_id, patch)
    await invalidate_court_schedule(previous_court_id, booking.court_id)
    return booking


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(booking_id: int, db: AsyncSession = Depends(get_db)):
    """Cancel a booking; the freed slot is offered to the waitlist."""
    booking = await booking_service.cancel_booking(db, booking_id)
    await invalidate_court_schedule(booking.court_id)
    return booking


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(booking_id: int, db: AsyncSession = Depends(get_db)):
    booking = await booking_service.complete_booking(db, booking_id)
    await invalidate_court_schedule(booking.court_id)
    return booking


@router.delete("/{booking_id}", response_model=BookingResponse)
async def delete_booking(booking_id: int, db: AsyncSession = Depends(get_db)):
    """Same as cancel. Bookings are never hard-deleted so history is kept."""
    booking = await booking_service.cancel_booking(db, booking_id)
    await invalidate_court_schedule(booking.court_id)
    return booking
