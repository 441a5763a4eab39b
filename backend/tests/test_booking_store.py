"""
Tests for the booking store: overlap rules and persistence helpers.
"""

from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import make_booking
from guesthouse.models.booking import BookingStatus
from guesthouse.services import booking_store


@pytest.mark.asyncio
async def test_free_room_is_available(db_session: AsyncSession):
    assert await booking_store.check_room_availability(
        db_session, 1, date(2025, 12, 24), date(2025, 12, 26)
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "check_in, check_out, expected",
    [
        (date(2025, 12, 20), date(2025, 12, 22), True),   # entirely before
        (date(2025, 12, 20), date(2025, 12, 24), True),   # ends on existing check-in
        (date(2025, 12, 20), date(2025, 12, 25), False),  # overlaps first night
        (date(2025, 12, 25), date(2025, 12, 26), False),  # inside
        (date(2025, 12, 23), date(2025, 12, 30), False),  # encloses
        (date(2025, 12, 26), date(2025, 12, 28), False),  # overlaps last night
        (date(2025, 12, 27), date(2025, 12, 29), True),   # starts on existing check-out
    ],
)
async def test_half_open_overlap(db_session: AsyncSession, check_in, check_out, expected):
    await make_booking(db_session, rooms=(4,), check_in=date(2025, 12, 24), check_out=date(2025, 12, 27))
    assert await booking_store.check_room_availability(db_session, 4, check_in, check_out) is expected


@pytest.mark.asyncio
async def test_other_rooms_unaffected(db_session: AsyncSession):
    await make_booking(db_session, rooms=(4,))
    assert await booking_store.check_room_availability(
        db_session, 5, date(2025, 12, 24), date(2025, 12, 25)
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("status, expected", [
    (BookingStatus.PENDING, False),
    (BookingStatus.CONFIRMED, False),
    (BookingStatus.REJECTED, True),
    (BookingStatus.CANCELLED, True),
])
async def test_only_active_bookings_hold_rooms(db_session: AsyncSession, status, expected):
    await make_booking(db_session, rooms=(2,), status=status)
    available = await booking_store.check_room_availability(
        db_session, 2, date(2025, 12, 24), date(2025, 12, 25)
    )
    assert available is expected


@pytest.mark.asyncio
async def test_exclude_booking_id(db_session: AsyncSession):
    booking = await make_booking(db_session, rooms=(2,))
    assert await booking_store.check_room_availability(
        db_session, 2, date(2025, 12, 24), date(2025, 12, 25), exclude_booking_id=booking.id
    )


@pytest.mark.asyncio
async def test_find_unavailable_rooms(db_session: AsyncSession):
    await make_booking(db_session, rooms=(1, 3))
    await make_booking(db_session, rooms=(3,), check_in=date(2025, 12, 23), check_out=date(2025, 12, 26))

    unavailable = await booking_store.find_unavailable_rooms(
        db_session, [1, 2, 3], date(2025, 12, 24), date(2025, 12, 25)
    )
    assert unavailable == [1, 3]


@pytest.mark.asyncio
async def test_create_booking_forces_pending(db_session: AsyncSession):
    booking = await booking_store.create_booking(db_session, {
        "full_name": "Mariyam Hassan",
        "id_number": "A998877",
        "room_numbers": [1, 2],
        "extra_beds": [2],
        "check_in_date": date(2026, 3, 1),
        "check_out_date": date(2026, 3, 4),
        "total_nights": 3,
        "total_mvr": 3900,
        "total_usd": "200.00",
        "status": BookingStatus.CONFIRMED,
    })
    assert booking.status == BookingStatus.PENDING
    assert booking.id
    assert booking.booking_date == date.today()
    assert booking.room_numbers == [1, 2]
    assert booking.room_number == 1
    assert booking.extra_beds == [2]


@pytest.mark.asyncio
async def test_get_booking_missing_returns_none(db_session: AsyncSession):
    assert await booking_store.get_booking(db_session, "nope") is None


@pytest.mark.asyncio
async def test_update_status_keeps_notes_unless_given(db_session: AsyncSession):
    booking = await make_booking(db_session)
    booking_id = booking.id

    updated = await booking_store.update_booking_status(
        db_session, booking_id, BookingStatus.REJECTED, "Dates unavailable"
    )
    assert updated.admin_notes == "Dates unavailable"

    updated = await booking_store.update_booking_status(db_session, booking_id, BookingStatus.REJECTED)
    assert updated.admin_notes == "Dates unavailable"


@pytest.mark.asyncio
async def test_update_missing_booking_returns_none(db_session: AsyncSession):
    assert await booking_store.update_booking_status(db_session, "nope", BookingStatus.CONFIRMED) is None
    assert await booking_store.update_booking_dates(
        db_session, "nope", date(2026, 1, 1), date(2026, 1, 2), 1, 600, "30.77"
    ) is None


@pytest.mark.asyncio
async def test_delete_booking(db_session: AsyncSession):
    booking = await make_booking(db_session)
    booking_id = booking.id

    assert await booking_store.delete_booking(db_session, booking_id) is True
    assert await booking_store.get_booking(db_session, booking_id) is None
    assert await booking_store.delete_booking(db_session, booking_id) is False


@pytest.mark.asyncio
async def test_get_all_bookings_ordered_by_booking_date(db_session: AsyncSession):
    older = await make_booking(db_session, rooms=(1,), full_name="Older Guest")
    older.booking_date = date(2025, 1, 1)
    await make_booking(db_session, rooms=(2,), full_name="Newer Guest")
    await db_session.commit()

    bookings = await booking_store.get_all_bookings(db_session)
    assert [b.full_name for b in bookings] == ["Newer Guest", "Older Guest"]
