"""
Booking model representing a guest's reservation of one or more rooms.

Key design decisions:
- Rooms are a one-to-many child relation; the extra bed flag lives on the
  room assignment rather than in a parallel list
- Status is a plain string column guarded by a CHECK constraint
- Dates are native DATE columns, rendered as YYYY-MM-DD at the API boundary
"""

import uuid
from datetime import date

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from guesthouse.db.base import Base, TimestampMixin


class BookingStatus:
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

    ALL = (PENDING, CONFIRMED, REJECTED, CANCELLED)
    # Bookings in these states no longer hold their rooms
    INACTIVE = (REJECTED, CANCELLED)


def _new_id() -> str:
    return str(uuid.uuid4())


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=_new_id)
    full_name = Column(Text, nullable=False)
    id_number = Column(Text, nullable=False)
    phone_number = Column(Text, nullable=True)
    customer_notes = Column(Text, nullable=True)
    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    total_nights = Column(Integer, nullable=False)
    total_mvr = Column(Integer, nullable=False)
    total_usd = Column(String(20), nullable=False)
    id_photo = Column(Text, nullable=True)
    payment_slip = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING)
    admin_notes = Column(Text, nullable=True)
    booking_date = Column(Date, nullable=False, default=date.today)

    rooms = relationship(
        "BookingRoom",
        back_populates="booking",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="BookingRoom.room_number",
    )

    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="check_booking_dates_ordered"),
        CheckConstraint("total_nights > 0", name="check_booking_nights_positive"),
        CheckConstraint("total_mvr > 0", name="check_booking_total_positive"),
        CheckConstraint(
            "status IN ('Pending', 'Confirmed', 'Rejected', 'Cancelled')",
            name="check_booking_status",
        ),
        Index("ix_bookings_booking_date", "booking_date"),
        # Overlap scans filter on the stay window
        Index("ix_bookings_stay", "check_in_date", "check_out_date"),
    )

    @property
    def room_numbers(self) -> list[int]:
        return [r.room_number for r in self.rooms]

    @property
    def extra_beds(self) -> list[int]:
        return [r.room_number for r in self.rooms if r.extra_bed]

    @property
    def room_number(self) -> int:
        return self.room_numbers[0] if self.rooms else 0

    @property
    def is_active(self) -> bool:
        return self.status not in BookingStatus.INACTIVE

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, rooms={self.room_numbers}, status={self.status})>"


class BookingRoom(Base):
    __tablename__ = "booking_rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(String(36), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    room_number = Column(Integer, ForeignKey("rooms.number"), nullable=False)
    extra_bed = Column(Boolean, nullable=False, default=False)

    booking = relationship("Booking", back_populates="rooms")

    __table_args__ = (
        UniqueConstraint("booking_id", "room_number", name="uq_booking_room"),
        Index("ix_booking_rooms_room_number", "room_number"),
    )

    def __repr__(self) -> str:
        return f"<BookingRoom(booking={self.booking_id}, room={self.room_number}, extra_bed={self.extra_bed})>"
