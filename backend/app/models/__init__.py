from app.models.player import Player
from app.models.court import Court
from app.models.booking import Booking
from app.models.waitlist import WaitlistEntry

__all__ = ["Player", "Court", "Booking", "WaitlistEntry"]
