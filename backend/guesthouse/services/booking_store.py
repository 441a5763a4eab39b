"""
Persistence and query operations over bookings.

These functions never raise for a missing row: lookups return None and
deletes return False, and the caller decides what that means. Datastore
failures propagate as SQLAlchemyError. No cross-row validation happens on
update; availability is only enforced through check_room_availability.
"""

from datetime import date
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.core.logging import get_logger
from guesthouse.models.booking import Booking, BookingRoom, BookingStatus

logger = get_logger(__name__)


async def get_all_bookings(db: AsyncSession) -> list[Booking]:
    """All bookings, newest booking_date first."""
    result = await db.execute(
        select(Booking).order_by(Booking.booking_date.desc(), Booking.created_at.desc())
    )
    return list(result.scalars().all())


async def get_booking(db: AsyncSession, booking_id: str) -> Optional[Booking]:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    return result.scalar_one_or_none()


async def create_booking(db: AsyncSession, data: dict) -> Booking:
    """
    Insert a booking with status Pending.

    `data` carries the Booking columns plus `room_numbers` and `extra_beds`
    lists; booking_date defaults to today.
    """
    values = dict(data)
    room_numbers = values.pop("room_numbers")
    extra_beds = set(values.pop("extra_beds", None) or [])
    values.pop("status", None)
    values["booking_date"] = values.get("booking_date") or date.today()

    booking = Booking(**values, status=BookingStatus.PENDING)
    booking.rooms = [
        BookingRoom(room_number=number, extra_bed=number in extra_beds)
        for number in room_numbers
    ]
    db.add(booking)
    await db.flush()

    logger.info(
        "booking_persisted",
        booking_id=booking.id,
        rooms=booking.room_numbers,
        check_in=str(booking.check_in_date),
        check_out=str(booking.check_out_date),
    )
    return booking


async def reload_booking(db: AsyncSession, booking_id: str) -> Optional[Booking]:
    """Re-read a booking from the database, overwriting the session's copy."""
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def update_booking_status(
    db: AsyncSession,
    booking_id: str,
    status: str,
    admin_notes: Optional[str] = None,
    expected_status: Optional[str] = None,
) -> Optional[Booking]:
    """
    Set the status (and admin_notes only when supplied).

    With expected_status the UPDATE only matches while the row still holds
    that status, so two concurrent transitions out of the same state cannot
    both apply. Returns None when no row matched.
    """
    values = {"status": status}
    if admin_notes is not None:
        values["admin_notes"] = admin_notes

    query = update(Booking).where(Booking.id == booking_id)
    if expected_status is not None:
        query = query.where(Booking.status == expected_status)

    result = await db.execute(query.values(**values).execution_options(synchronize_session=False))
    if result.rowcount == 0:
        return None
    return await reload_booking(db, booking_id)


async def update_booking_dates(
    db: AsyncSession,
    booking_id: str,
    check_in: date,
    check_out: date,
    nights: int,
    total_mvr: int,
    total_usd: str,
    active_only: bool = False,
) -> Optional[Booking]:
    """
    Overwrite the stay window and totals. With active_only the UPDATE skips
    Rejected/Cancelled rows. Returns None when no row matched.
    """
    query = update(Booking).where(Booking.id == booking_id)
    if active_only:
        query = query.where(Booking.status.notin_(BookingStatus.INACTIVE))

    result = await db.execute(
        query.values(
            check_in_date=check_in,
            check_out_date=check_out,
            total_nights=nights,
            total_mvr=total_mvr,
            total_usd=total_usd,
        ).execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None
    return await reload_booking(db, booking_id)


async def delete_booking(db: AsyncSession, booking_id: str) -> bool:
    booking = await get_booking(db, booking_id)
    if booking is None:
        return False

    await db.delete(booking)
    await db.flush()
    return True


def _overlapping(room_numbers: Iterable[int], check_in: date, check_out: date, exclude_booking_id: Optional[str]):
    # existing.check_in < new.check_out AND existing.check_out > new.check_in
    query = (
        select(BookingRoom.room_number)
        .join(Booking, Booking.id == BookingRoom.booking_id)
        .where(
            BookingRoom.room_number.in_(list(room_numbers)),
            Booking.check_in_date < check_out,
            Booking.check_out_date > check_in,
            Booking.status.notin_(BookingStatus.INACTIVE),
        )
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    return query


async def check_room_availability(
    db: AsyncSession,
    room_number: int,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[str] = None,
) -> bool:
    """True iff no other active booking holds the room for any night of the range."""
    result = await db.execute(
        _overlapping([room_number], check_in, check_out, exclude_booking_id).limit(1)
    )
    return result.first() is None


async def find_unavailable_rooms(
    db: AsyncSession,
    room_numbers: Iterable[int],
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[str] = None,
) -> list[int]:
    """Subset of room_numbers that already have an overlapping active booking."""
    result = await db.execute(
        _overlapping(room_numbers, check_in, check_out, exclude_booking_id).distinct()
    )
    return sorted(result.scalars().all())
