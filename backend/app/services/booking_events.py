"""
Booking and waitlist state-change events.

Payments and notifications react to what the ledger does; they never drive
it. Events are published after the ledger transaction commits:

- logged through structlog
- handed to in-process subscribers (registered with `subscribe`)
- published as JSON on the Redis channel BOOKING_EVENTS_CHANNEL when Redis
  is available

A failing subscriber or an unreachable Redis is logged and skipped. The
booking has already been committed at that point and stays committed.
"""

import inspect
import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Union

from app.core.config import get_settings
from app.core.logging import get_logger
from app.db.base import utcnow
from app.models.booking import Booking
from app.models.waitlist import WaitlistEntry
from app.services.cache_service import get_redis

logger = get_logger(__name__)

BOOKING_CREATED = "booking.created"
BOOKING_CANCELLED = "booking.cancelled"
BOOKING_COMPLETED = "booking.completed"
BOOKING_UPDATED = "booking.updated"
BOOKING_PROMOTED = "booking.promoted"
WAITLIST_ENQUEUED = "waitlist.enqueued"
WAITLIST_CANCELLED = "waitlist.cancelled"
WAITLIST_UPDATED = "waitlist.updated"
WAITLIST_EXPIRED = "waitlist.expired"


@dataclass
class BookingEvent:
    kind: str
    court_id: int
    player_id: int
    status: str
    booking_id: Optional[int] = None
    waitlist_entry_id: Optional[int] = None
    occurred_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["occurred_at"] = self.occurred_at.isoformat()
        return data


def booking_event(kind: str, booking: Booking, waitlist_entry_id: Optional[int] = None) -> BookingEvent:
    return BookingEvent(
        kind=kind,
        court_id=booking.court_id,
        player_id=booking.player_id,
        status=booking.status,
        booking_id=booking.id,
        waitlist_entry_id=waitlist_entry_id,
    )


def waitlist_event(kind: str, entry: WaitlistEntry) -> BookingEvent:
    return BookingEvent(
        kind=kind,
        court_id=entry.court_id,
        player_id=entry.player_id,
        status=entry.status,
        booking_id=entry.booking_id,
        waitlist_entry_id=entry.id,
    )


Subscriber = Callable[[BookingEvent], Union[None, Awaitable[None]]]
_subscribers: list[Subscriber] = []


def subscribe(handler: Subscriber) -> None:
    _subscribers.append(handler)


def unsubscribe(handler: Subscriber) -> None:
    if handler in _subscribers:
        _subscribers.remove(handler)


async def publish(*events: BookingEvent) -> None:
    for event in events:
        logger.info("booking_event", **event.to_dict())

        for handler in list(_subscribers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "booking_event_handler_failed",
                    kind=event.kind,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                )

        client = await get_redis()
        if not client:
            continue
        try:
            await client.publish(get_settings().BOOKING_EVENTS_CHANNEL, json.dumps(event.to_dict()))
        except Exception as e:
            logger.error("booking_event_publish_failed", kind=event.kind, error=str(e))
