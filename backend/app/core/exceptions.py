"""
Domain errors raised by the booking core.

They subclass HTTPException so routes can let them propagate and FastAPI
renders the matching status code. Services and tests can still catch them
by type.
"""

from fastapi import HTTPException, status


class BookingError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class InvalidInterval(BookingError):
    """start is not strictly before end."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidTransition(BookingError):
    """Illegal status change, e.g. cancelling a cancelled booking."""

    status_code = status.HTTP_400_BAD_REQUEST


class SlotUnavailable(BookingError):
    """A booking move would overlap an active booking."""

    status_code = status.HTTP_409_CONFLICT
