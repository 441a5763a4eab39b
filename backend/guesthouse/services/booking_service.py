"""
Booking lifecycle: availability-guarded creation, status transitions and
date edits.

STATE MACHINE
=============

    Pending ──confirm──> Confirmed ──cancel──> Cancelled
       └─────reject────> Rejected

  Rejected and Cancelled are terminal and no longer hold their rooms.
  Confirming an already Confirmed booking is a no-op. Every other
  transition outside the table is refused with 400. Telegram callbacks go
  through the same functions as the admin API.
  Status and date writes only apply while the row still holds the status
  that was checked, so when an approve and a reject race, the later one is
  refused with 400 instead of overwriting the first.

CONCURRENCY STRATEGY: Optimistic Locking on Rooms
=================================================

Problem:
  Two guests submit overlapping stays for the same room at the same time.
  Both availability checks pass, both inserts commit. Result: double booking.

Solution:
  Every write that claims a room (create, date edit) runs inside the
  request transaction as:

  1. Read the current `version` of each involved room
  2. Run the overlap check for each room
  3. UPDATE rooms SET version = version + 1
     WHERE number = :n AND version = :seen_version
  4. If any rowcount == 0, another transaction claimed the room in between:
     roll back and start again from step 1 (up to MAX_RETRY_ATTEMPTS)
  5. Insert / update the booking

  The losing transaction blocks on the row lock until the winner commits,
  then sees the bumped version, retries, and its fresh overlap check now
  finds the committed booking, so it fails with 409.
"""

from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.core.config import Settings
from guesthouse.core.logging import get_logger
from guesthouse.core.metrics import record_transition, room_lock_retries
from guesthouse.models.booking import Booking, BookingStatus
from guesthouse.models.room import Room
from guesthouse.schemas.booking import BookingCreate, BookingDatesUpdate
from guesthouse.services import booking_store
from guesthouse.services.pricing import quote_stay

logger = get_logger(__name__)

MAX_RETRY_ATTEMPTS = 3

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.REJECTED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED},
}

_VERBS = {
    BookingStatus.CONFIRMED: "confirm",
    BookingStatus.REJECTED: "reject",
    BookingStatus.CANCELLED: "cancel",
}


async def sync_rooms(db: AsyncSession, room_count: int) -> None:
    """Make sure rooms 1..room_count exist."""
    result = await db.execute(select(Room.number))
    existing = set(result.scalars().all())
    missing = [n for n in range(1, room_count + 1) if n not in existing]
    for number in missing:
        db.add(Room(number=number, name=f"Room {number}", version=1))
    if missing:
        await db.flush()
        logger.info("rooms_created", rooms=missing)


async def _read_room_versions(db: AsyncSession, room_numbers: list[int]) -> dict[int, int]:
    # Column query, not entities, so the versions come from the database
    # rather than the session identity map
    result = await db.execute(
        select(Room.number, Room.version).where(Room.number.in_(room_numbers))
    )
    versions = {number: version for number, version in result.all()}
    missing = [n for n in room_numbers if n not in versions]
    if missing:
        for number in missing:
            db.add(Room(number=number, name=f"Room {number}", version=1))
            versions[number] = 1
        await db.flush()
    return versions


async def _claim_rooms(db: AsyncSession, versions: dict[int, int]) -> bool:
    """Compare-and-set every room version, in room order. False on any lost race."""
    for number in sorted(versions):
        result = await db.execute(
            update(Room)
            .where(Room.number == number, Room.version == versions[number])
            .values(version=Room.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False
    return True


def _conflict(rooms: list[int]) -> HTTPException:
    label = "Room" if len(rooms) == 1 else "Rooms"
    joined = ", ".join(str(r) for r in rooms)
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f"{label} {joined} already booked for selected dates",
    )


async def place_booking(
    db: AsyncSession,
    data: BookingCreate,
    settings: Settings,
    id_photo: Optional[str] = None,
    payment_slip: Optional[str] = None,
) -> Booking:
    """
    Create a Pending booking after confirming every requested room is free.
    Raises 409 if any room overlaps an active booking.
    """
    quote = quote_stay(
        data.check_in_date,
        data.check_out_date,
        len(data.room_numbers),
        len(data.extra_beds),
        settings,
    )

    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        versions = await _read_room_versions(db, data.room_numbers)

        unavailable = await booking_store.find_unavailable_rooms(
            db, data.room_numbers, data.check_in_date, data.check_out_date
        )
        if unavailable:
            logger.warning(
                "booking_conflict",
                rooms=unavailable,
                check_in=str(data.check_in_date),
                check_out=str(data.check_out_date),
            )
            raise _conflict(unavailable)

        if not await _claim_rooms(db, versions):
            room_lock_retries.inc()
            logger.info("booking_retry", attempt=attempt, reason="room_version_conflict")
            await db.rollback()
            continue

        booking = await booking_store.create_booking(db, {
            "full_name": data.full_name,
            "id_number": data.id_number,
            "phone_number": data.phone_number,
            "customer_notes": data.customer_notes,
            "room_numbers": data.room_numbers,
            "extra_beds": data.extra_beds,
            "check_in_date": data.check_in_date,
            "check_out_date": data.check_out_date,
            "total_nights": quote.nights,
            "total_mvr": quote.total_mvr,
            "total_usd": quote.total_usd,
            "id_photo": id_photo,
            "payment_slip": payment_slip,
        })

        logger.info(
            "booking_created",
            booking_id=booking.id,
            rooms=data.room_numbers,
            nights=quote.nights,
            total_mvr=quote.total_mvr,
            attempt=attempt,
        )
        return booking

    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Booking failed due to high demand. Please try again.",
    )


async def get_booking_or_404(db: AsyncSession, booking_id: str) -> Booking:
    booking = await booking_store.get_booking(db, booking_id)
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    return booking


def _refused(booking_id: str, current: str, target: str, source: str) -> HTTPException:
    logger.warning(
        "booking_transition_refused",
        booking_id=booking_id,
        current=current,
        target=target,
        source=source,
    )
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Cannot {_VERBS[target]} a booking that is {current.lower()}",
    )


async def _transition(
    db: AsyncSession,
    booking_id: str,
    target: str,
    admin_notes: Optional[str] = None,
    source: str = "api",
) -> Booking:
    booking = await get_booking_or_404(db, booking_id)
    current = booking.status

    if current == target == BookingStatus.CONFIRMED:
        return booking

    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise _refused(booking_id, current, target, source)

    # Only applies while the row still holds the status checked above
    updated = await booking_store.update_booking_status(
        db, booking_id, target, admin_notes, expected_status=current
    )
    if updated is None:
        fresh = await booking_store.reload_booking(db, booking_id)
        if fresh is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Booking not found",
            )
        logger.info(
            "booking_transition_lost_race",
            booking_id=booking_id,
            expected=current,
            found=fresh.status,
            source=source,
        )
        if fresh.status == target == BookingStatus.CONFIRMED:
            return fresh
        raise _refused(booking_id, fresh.status, target, source)

    record_transition(target, source)
    logger.info(
        "booking_status_changed",
        booking_id=booking_id,
        previous=current,
        status=target,
        source=source,
    )
    return updated


async def confirm_booking(db: AsyncSession, booking_id: str, source: str = "api") -> Booking:
    return await _transition(db, booking_id, BookingStatus.CONFIRMED, source=source)


async def reject_booking(
    db: AsyncSession,
    booking_id: str,
    admin_notes: Optional[str] = None,
    source: str = "api",
) -> Booking:
    return await _transition(db, booking_id, BookingStatus.REJECTED, admin_notes, source=source)


async def cancel_booking(db: AsyncSession, booking_id: str, source: str = "api") -> Booking:
    """Cancel a confirmed booking, releasing its rooms."""
    return await _transition(db, booking_id, BookingStatus.CANCELLED, source=source)


def _dates_refused(current: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Cannot change dates of a {current.lower()} booking",
    )


async def reschedule_booking(
    db: AsyncSession,
    booking_id: str,
    window: BookingDatesUpdate,
    settings: Settings,
) -> Booking:
    """
    Move a booking to a new stay window and recompute its totals.
    Refused for Cancelled/Rejected bookings; 409 if the new window overlaps
    another active booking on any of its rooms.
    """
    for attempt in range(1, MAX_RETRY_ATTEMPTS + 1):
        booking = await get_booking_or_404(db, booking_id)
        if not booking.is_active:
            raise _dates_refused(booking.status)

        rooms = booking.room_numbers
        versions = await _read_room_versions(db, rooms)

        unavailable = await booking_store.find_unavailable_rooms(
            db, rooms, window.check_in_date, window.check_out_date, exclude_booking_id=booking_id
        )
        if unavailable:
            logger.warning(
                "booking_reschedule_conflict",
                booking_id=booking_id,
                rooms=unavailable,
            )
            raise _conflict(unavailable)

        if not await _claim_rooms(db, versions):
            room_lock_retries.inc()
            logger.info("booking_retry", booking_id=booking_id, attempt=attempt, reason="room_version_conflict")
            await db.rollback()
            continue

        quote = quote_stay(
            window.check_in_date,
            window.check_out_date,
            len(rooms),
            len(booking.extra_beds),
            settings,
        )
        updated = await booking_store.update_booking_dates(
            db,
            booking_id,
            window.check_in_date,
            window.check_out_date,
            quote.nights,
            quote.total_mvr,
            quote.total_usd,
            active_only=True,
        )
        if updated is None:
            # Cancelled or rejected after the status check above
            fresh = await booking_store.reload_booking(db, booking_id)
            if fresh is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Booking not found",
                )
            logger.info("booking_reschedule_lost_race", booking_id=booking_id, found=fresh.status)
            raise _dates_refused(fresh.status)

        logger.info(
            "booking_rescheduled",
            booking_id=booking_id,
            check_in=str(window.check_in_date),
            check_out=str(window.check_out_date),
            total_mvr=quote.total_mvr,
        )
        return updated

    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Date change failed due to high demand. Please try again.",
    )


async def remove_booking(db: AsyncSession, booking_id: str) -> None:
    if not await booking_store.delete_booking(db, booking_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    logger.info("booking_deleted", booking_id=booking_id)
