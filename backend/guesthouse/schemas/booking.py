"""
Pydantic schemas for booking-related request/response validation.

Field names are camelCase on the wire (`fullName`, `checkInDate`) and
snake_case in Python.
"""

import json
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel

from guesthouse.core.config import BankAccount

camel_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

MAX_ROOMS_PER_BOOKING = 20


def parse_room_list(value: Any) -> list[int]:
    """
    Decode a small-integer room list.

    Accepts a list, a JSON array string ("[1,3]") or a comma separated
    string ("1,3"). Blank input means no rooms.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = list(value)
    else:
        text = str(value).strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                items = json.loads(text)
            except json.JSONDecodeError:
                raise ValueError("Room list must be a JSON array of room numbers")
            if not isinstance(items, list):
                raise ValueError("Room list must be a JSON array of room numbers")
        else:
            items = [part.strip() for part in text.split(",") if part.strip()]

    rooms = []
    for item in items:
        if isinstance(item, bool):
            raise ValueError("Room numbers must be integers")
        try:
            number = int(item)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid room number: {item!r}")
        if isinstance(item, float) and item != number:
            raise ValueError(f"Invalid room number: {item!r}")
        rooms.append(number)
    if len(rooms) > MAX_ROOMS_PER_BOOKING:
        raise ValueError("Too many rooms in one booking")
    return rooms


def _check_range(rooms: list[int], room_count: int, label: str) -> None:
    for number in rooms:
        if number < 1 or number > room_count:
            raise ValueError(f"{label} {number} is out of range (1-{room_count})")


class StayWindow(BaseModel):
    model_config = camel_config

    check_in_date: date
    check_out_date: date

    @field_validator("check_in_date", "check_out_date", mode="before")
    @classmethod
    def require_date(cls, value, info: ValidationInfo):
        if value is None or (isinstance(value, str) and not value.strip()):
            label = "Check-in" if info.field_name == "check_in_date" else "Check-out"
            raise ValueError(f"{label} date is required")
        return value

    @model_validator(mode="after")
    def check_out_after_check_in(self):
        if self.check_out_date <= self.check_in_date:
            raise ValueError("Check-out date must be after check-in date")
        return self


class BookingCreate(StayWindow):
    full_name: str = Field(..., min_length=2, max_length=200)
    id_number: str = Field(..., min_length=3, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=50)
    customer_notes: Optional[str] = Field(None, max_length=2000)
    room_number: Optional[int] = None
    room_numbers: list[int] = []
    extra_beds: list[int] = []

    @field_validator("full_name", "id_number", mode="before")
    @classmethod
    def strip_required(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("phone_number", "customer_notes", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("room_number", mode="before")
    @classmethod
    def parse_room_number(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("room_numbers", "extra_beds", mode="before")
    @classmethod
    def parse_rooms(cls, value):
        return parse_room_list(value)

    @model_validator(mode="after")
    def check_rooms(self, info: ValidationInfo):
        rooms = list(dict.fromkeys(self.room_numbers))
        if not rooms and self.room_number is not None:
            rooms = [self.room_number]
        if not rooms:
            raise ValueError("At least one room must be selected")

        room_count = (info.context or {}).get("room_count")
        if room_count:
            _check_range(rooms, room_count, "Room")
            _check_range(self.extra_beds, room_count, "Extra bed room")

        stray = sorted(set(self.extra_beds) - set(rooms))
        if stray:
            raise ValueError(f"Extra beds requested for unselected rooms: {stray}")

        self.room_numbers = sorted(rooms)
        self.room_number = self.room_numbers[0]
        self.extra_beds = sorted(set(self.extra_beds))
        return self


class BookingDatesUpdate(StayWindow):
    pass


class BookingReject(BaseModel):
    model_config = camel_config

    admin_notes: Optional[str] = Field(None, max_length=2000)


class BookingResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    full_name: str
    id_number: str
    phone_number: Optional[str]
    customer_notes: Optional[str]
    room_number: int
    room_numbers: list[int]
    extra_beds: list[int]
    check_in_date: date
    check_out_date: date
    total_nights: int
    total_mvr: int
    total_usd: str
    id_photo: Optional[str]
    payment_slip: Optional[str]
    status: str
    admin_notes: Optional[str]
    booking_date: date


class BookingDeleteResponse(BaseModel):
    model_config = camel_config

    message: str
    booking_id: str


class AvailabilityResponse(BaseModel):
    available: bool


class InvoiceLine(BaseModel):
    model_config = camel_config

    description: str
    quantity: int
    unit_price_mvr: int
    amount_mvr: int


class InvoiceResponse(BaseModel):
    model_config = camel_config

    invoice_number: str
    booking: BookingResponse
    lines: list[InvoiceLine]
    total_mvr: int
    total_usd: str
    bank_accounts: list[BankAccount]
