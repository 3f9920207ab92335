"""
Pydantic schemas for waitlist request/response validation.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


class WaitlistEntryCreate(BaseModel):
    court_id: int
    player_id: int
    start_time: datetime
    end_time: datetime
    priority: int = 0
    price_cents: int = Field(default=0, ge=0)


class WaitlistEntryUpdate(BaseModel):
    priority: Optional[int] = None
    court_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    # Only waiting -> notified may be set by hand; other moves have their own endpoints
    status: Optional[Literal["notified"]] = None


class WaitlistEntryResponse(BaseModel):
    id: int
    court_id: int
    player_id: int
    start_time: datetime
    end_time: datetime
    priority: int
    status: str
    price_cents: int
    booking_id: Optional[int]
    created_at: datetime

    model_config = {"from_attributes": True}


class RecheckResponse(BaseModel):
    promoted: bool
    entry: WaitlistEntryResponse
    booking_id: Optional[int] = None


class ExpireResponse(BaseModel):
    expired: int
