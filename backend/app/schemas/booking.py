"""
Pydantic schemas for booking-related request/response validation.

Intervals are not checked here: the ledger raises InvalidInterval (400)
before touching storage, so API and service callers get the same error.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from app.schemas.waitlist import WaitlistEntryResponse

PaymentStatus = Literal["unpaid", "paid", "refunded", "waived"]


class BookingCreate(BaseModel):
    court_id: int
    player_id: int
    start_time: datetime
    end_time: datetime
    price_cents: int = Field(default=0, ge=0)


class BookingUpdate(BaseModel):
    """
    Enumerated booking patch. Price and payment fields are applied as-is;
    court or interval values that differ from the booking's current ones go
    through the conflict-checked move path.
    """

    price_cents: Optional[int] = Field(None, ge=0)
    payment_status: Optional[PaymentStatus] = None
    court_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class BookingResponse(BaseModel):
    id: int
    court_id: int
    player_id: int
    start_time: datetime
    end_time: datetime
    status: str
    price_cents: int
    payment_status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingConflictResponse(BaseModel):
    message: str = "Court is already booked at this time. Added to waitlist."
    conflicting_booking_ids: list[int]
    waitlist_entry: WaitlistEntryResponse
