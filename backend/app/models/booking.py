"""
Booking model representing a player's reservation of a court interval.

Key design decisions:
- Status field allows cancellation without deleting records; cancelled
  bookings are inert history, booked/completed ones occupy the court
- The no-overlap rule cannot be expressed as a portable constraint, so the
  ledger enforces it under the court lock; the DB only guards start < end
- Composite index on (court_id, status, start_time) serves the conflict scan
"""

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, Index

from app.db.base import Base, TimestampMixin, UTCDateTime
from app.domain.interval import Interval

BOOKED = "booked"
CANCELLED = "cancelled"
COMPLETED = "completed"

ACTIVE_STATUSES = (BOOKED, COMPLETED)
PAYMENT_STATUSES = ("unpaid", "paid", "refunded", "waived")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False, index=True)
    start_time = Column(UTCDateTime(), nullable=False)
    end_time = Column(UTCDateTime(), nullable=False)
    status = Column(String(20), nullable=False, default=BOOKED)
    price_cents = Column(Integer, nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default="unpaid")

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_booking_interval"),
        CheckConstraint("price_cents >= 0", name="check_booking_price_non_negative"),
        CheckConstraint("status IN ('booked', 'cancelled', 'completed')", name="check_booking_status"),
        CheckConstraint(
            "payment_status IN ('unpaid', 'paid', 'refunded', 'waived')",
            name="check_booking_payment_status",
        ),
        Index("ix_bookings_court_status_start", "court_id", "status", "start_time"),
    )

    @property
    def interval(self) -> Interval:
        return Interval(self.start_time, self.end_time)

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, court={self.court_id}, player={self.player_id}, "
            f"status={self.status})>"
        )
