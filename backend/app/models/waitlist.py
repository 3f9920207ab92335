"""
Waitlist entry: a request that could not be booked when it was made.

Key design decisions:
- "Waiting" is persisted state, not a suspended request; the promotion
  engine converts entries to bookings when their interval frees up
- booked, cancelled and expired are terminal
- Index on (court_id, status, priority) matches the candidate query
"""

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, Index

from app.db.base import Base, TimestampMixin, UTCDateTime
from app.domain.interval import Interval

WAITING = "waiting"
NOTIFIED = "notified"
BOOKED = "booked"
CANCELLED = "cancelled"
EXPIRED = "expired"

OPEN_STATUSES = (WAITING, NOTIFIED)


class WaitlistEntry(Base, TimestampMixin):
    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, index=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False, index=True)
    start_time = Column(UTCDateTime(), nullable=False)
    end_time = Column(UTCDateTime(), nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=WAITING)
    price_cents = Column(Integer, nullable=False, default=0)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_waitlist_interval"),
        CheckConstraint(
            "status IN ('waiting', 'notified', 'booked', 'cancelled', 'expired')",
            name="check_waitlist_status",
        ),
        Index("ix_waitlist_court_status_priority", "court_id", "status", "priority"),
    )

    @property
    def interval(self) -> Interval:
        return Interval(self.start_time, self.end_time)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def __repr__(self) -> str:
        return (
            f"<WaitlistEntry(id={self.id}, court={self.court_id}, player={self.player_id}, "
            f"priority={self.priority}, status={self.status})>"
        )
