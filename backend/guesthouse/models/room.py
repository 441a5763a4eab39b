"""
Room model used as the concurrency anchor for availability checks.

Key design decisions:
- `version` column enables optimistic locking: every booking write that
  claims a room bumps its version, so two overlapping submissions cannot
  both pass the availability check and commit
"""

from sqlalchemy import Column, Integer, String

from guesthouse.db.base import Base


class Room(Base):
    __tablename__ = "rooms"

    number = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(50), nullable=False)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<Room(number={self.number}, version={self.version})>"
