"""
Stay pricing.

Totals are always computed here from the stay window and room selection;
amounts sent by the client are never trusted.

    total_mvr = nights * (nightly_rate * rooms + extra_bed_rate * extra_beds)
    total_usd = total_mvr / exchange_rate, rounded half-up to 2 places
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple

from guesthouse.core.config import Settings


class StayQuote(NamedTuple):
    nights: int
    total_mvr: int
    total_usd: str


def count_nights(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


def mvr_to_usd(amount_mvr: int, exchange_rate: float) -> str:
    usd = Decimal(amount_mvr) / Decimal(str(exchange_rate))
    return str(usd.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def quote_stay(
    check_in: date,
    check_out: date,
    room_count: int,
    extra_bed_count: int,
    settings: Settings,
) -> StayQuote:
    nights = count_nights(check_in, check_out)
    if nights < 1:
        raise ValueError("A stay must be at least one night")
    per_night = settings.NIGHTLY_RATE_MVR * room_count + settings.EXTRA_BED_RATE_MVR * extra_bed_count
    total_mvr = nights * per_night
    return StayQuote(nights, total_mvr, mvr_to_usd(total_mvr, settings.USD_EXCHANGE_RATE))


def invoice_lines(booking, settings: Settings) -> list[dict]:
    """Break a booking's total into room-night and extra-bed lines."""
    lines = []
    for number in booking.room_numbers:
        lines.append({
            "description": f"Room {number} ({booking.check_in_date.isoformat()} to {booking.check_out_date.isoformat()})",
            "quantity": booking.total_nights,
            "unit_price_mvr": settings.NIGHTLY_RATE_MVR,
            "amount_mvr": booking.total_nights * settings.NIGHTLY_RATE_MVR,
        })
    for number in booking.extra_beds:
        lines.append({
            "description": f"Extra bed, Room {number}",
            "quantity": booking.total_nights,
            "unit_price_mvr": settings.EXTRA_BED_RATE_MVR,
            "amount_mvr": booking.total_nights * settings.EXTRA_BED_RATE_MVR,
        })
    return lines
