from app.schemas.player import PlayerCreate, PlayerUpdate, PlayerResponse
from app.schemas.waitlist import (
    WaitlistEntryCreate, WaitlistEntryUpdate, WaitlistEntryResponse, RecheckResponse, ExpireResponse,
)
from app.schemas.booking import BookingCreate, BookingUpdate, BookingResponse, BookingConflictResponse
from app.schemas.court import CourtCreate, CourtUpdate, CourtResponse, CourtScheduleResponse

__all__ = [
    "PlayerCreate", "PlayerUpdate", "PlayerResponse",
    "WaitlistEntryCreate", "WaitlistEntryUpdate", "WaitlistEntryResponse", "RecheckResponse", "ExpireResponse",
    "BookingCreate", "BookingUpdate", "BookingResponse", "BookingConflictResponse",
    "CourtCreate", "CourtUpdate", "CourtResponse", "CourtScheduleResponse",
]
