"""
Court model: the bookable resource.

Key design decisions:
- `is_active` lets a court be taken out of service without deleting history;
  inactive courts accept no new bookings and promote nothing from the waitlist
- The ledger row-locks the court (SELECT ... FOR UPDATE) for every
  check-then-write, so this row is the cross-process serialization point
"""

from sqlalchemy import Boolean, Column, Integer, String

from app.db.base import Base


class Court(Base):
    __tablename__ = "courts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    location = Column(String(255), nullable=True)
    surface = Column(String(50), nullable=True)
    indoor = Column(Boolean, nullable=False, default=False)
    lights = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Court(id={self.id}, name={self.name}, active={self.is_active})>"
