"""
Tests for stay pricing and room list parsing.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from guesthouse.core.config import Settings
from guesthouse.schemas.booking import BookingCreate, parse_room_list
from guesthouse.services.pricing import count_nights, mvr_to_usd, quote_stay


def test_count_nights():
    assert count_nights(date(2025, 12, 24), date(2025, 12, 26)) == 2
    assert count_nights(date(2025, 12, 31), date(2026, 1, 1)) == 1


def test_single_room_quote(test_settings: Settings):
    quote = quote_stay(date(2025, 12, 24), date(2025, 12, 26), 1, 0, test_settings)
    assert quote.nights == 2
    assert quote.total_mvr == 1200
    assert quote.total_usd == "61.54"


def test_extra_beds_charged_per_night(test_settings: Settings):
    quote = quote_stay(date(2026, 1, 1), date(2026, 1, 4), 3, 2, test_settings)
    assert quote.total_mvr == 3 * (3 * 600 + 2 * 100)


def test_zero_nights_refused(test_settings: Settings):
    with pytest.raises(ValueError):
        quote_stay(date(2026, 1, 1), date(2026, 1, 1), 1, 0, test_settings)


@pytest.mark.parametrize("mvr, usd", [
    (600, "30.77"),
    (1950, "100.00"),
    (39, "2.00"),
    (19, "0.97"),
])
def test_mvr_to_usd(mvr, usd):
    assert mvr_to_usd(mvr, 19.50) == usd


def test_mvr_to_usd_half_cent():
    # 1 / 40 = 0.025 exactly; half-up, not banker's rounding
    assert mvr_to_usd(1, 40.0) == "0.03"


@pytest.mark.parametrize("value, expected", [
    (None, []),
    ("", []),
    ("   ", []),
    ("[1,3]", [1, 3]),
    ("[]", []),
    ("1, 3", [1, 3]),
    ("2", [2]),
    ([4, "5"], [4, 5]),
])
def test_parse_room_list(value, expected):
    assert parse_room_list(value) == expected


@pytest.mark.parametrize("value", ["[1,", '{"a": 1}', "[true]", "a,b", "[1.5]", list(range(21))])
def test_parse_room_list_rejects(value):
    with pytest.raises(ValueError):
        parse_room_list(value)


def _create(**overrides):
    values = {
        "full_name": "Jo",
        "id_number": "P12",
        "check_in_date": "2025-12-24",
        "check_out_date": "2025-12-26",
        "room_number": "2",
    }
    values.update(overrides)
    return BookingCreate.model_validate(values, context={"room_count": 5})


def test_booking_create_normalizes_rooms():
    data = _create(room_number=None, room_numbers="[3, 1, 3]", extra_beds="3")
    assert data.room_numbers == [1, 3]
    assert data.room_number == 1
    assert data.extra_beds == [3]


def test_booking_create_single_room_fallback():
    data = _create()
    assert data.room_numbers == [2]


def test_booking_create_blank_optional_fields():
    data = _create(phone_number="  ", customer_notes="")
    assert data.phone_number is None
    assert data.customer_notes is None


def test_booking_create_requires_a_room():
    with pytest.raises(ValidationError):
        _create(room_number=None)


def test_booking_create_room_range_uses_context():
    with pytest.raises(ValidationError):
        _create(room_number="6")
