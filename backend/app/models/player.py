"""
Player record. Owned by the directory; the booking core only checks existence.
"""

from sqlalchemy import Column, Integer, String

from app.db.base import Base, TimestampMixin


class Player(Base, TimestampMixin):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, name={self.name})>"
