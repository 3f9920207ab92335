"""
Pydantic schemas for court request/response validation.
"""

from datetime import date as date_type
from typing import Optional
from pydantic import BaseModel, Field

from app.schemas.booking import BookingResponse
from app.schemas.waitlist import WaitlistEntryResponse


class CourtCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    surface: Optional[str] = Field(None, max_length=50)
    indoor: bool = False
    lights: bool = False
    is_active: bool = True


class CourtUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    surface: Optional[str] = Field(None, max_length=50)
    indoor: Optional[bool] = None
    lights: Optional[bool] = None
    is_active: Optional[bool] = None


class CourtResponse(BaseModel):
    id: int
    name: str
    location: Optional[str]
    surface: Optional[str]
    indoor: bool
    lights: bool
    is_active: bool

    model_config = {"from_attributes": True}


class CourtScheduleResponse(BaseModel):
    court_id: int
    on_date: date_type
    bookings: list[BookingResponse]
    waitlist: list[WaitlistEntryResponse]
    cached: bool = False
