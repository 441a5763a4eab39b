"""
Booking endpoints: public submission and availability check, plus the admin
actions (confirm / reject / cancel / reschedule / delete).

Literal sub-paths are registered before the bare "/{booking_id}" routes so
that e.g. "check-availability" is never captured as a booking id.
"""

import time
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.api.errors import format_validation_errors
from guesthouse.core.config import Settings, get_settings
from guesthouse.core.logging import get_logger
from guesthouse.core.metrics import booking_latency, record_booking_attempt
from guesthouse.db.session import get_db
from guesthouse.schemas.booking import (
    AvailabilityResponse,
    BookingCreate,
    BookingDatesUpdate,
    BookingDeleteResponse,
    BookingReject,
    BookingResponse,
    InvoiceResponse,
)
from guesthouse.services import booking_service, booking_store
from guesthouse.services.notification_service import dispatch_booking_notification
from guesthouse.services.pricing import invoice_lines
from guesthouse.services.upload_service import DOCUMENT_TYPES, IMAGE_TYPES, delete_uploads, save_upload

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("", response_model=list[BookingResponse])
async def list_bookings(db: AsyncSession = Depends(get_db)):
    """All bookings, newest first. Used by the admin dashboard."""
    return await booking_store.get_all_bookings(db)


@router.get("/check-availability", response_model=AvailabilityResponse)
async def check_availability(
    room_number: Optional[str] = Query(None, alias="roomNumber"),
    check_in: Optional[str] = Query(None, alias="checkIn"),
    check_out: Optional[str] = Query(None, alias="checkOut"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    if not room_number or not check_in or not check_out:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required parameters",
        )

    try:
        room = int(room_number)
        check_in_date = date.fromisoformat(check_in)
        check_out_date = date.fromisoformat(check_out)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="roomNumber must be an integer and dates must be YYYY-MM-DD",
        )

    if room < 1 or room > settings.ROOM_COUNT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Room {room} is out of range (1-{settings.ROOM_COUNT})",
        )
    if check_out_date <= check_in_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Check-out date must be after check-in date",
        )

    available = await booking_store.check_room_availability(db, room, check_in_date, check_out_date)
    return AvailabilityResponse(available=available)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    background_tasks: BackgroundTasks,
    full_name: Optional[str] = Form(None, alias="fullName"),
    id_number: Optional[str] = Form(None, alias="idNumber"),
    phone_number: Optional[str] = Form(None, alias="phoneNumber"),
    customer_notes: Optional[str] = Form(None, alias="customerNotes"),
    room_number: Optional[str] = Form(None, alias="roomNumber"),
    room_numbers: Optional[str] = Form(None, alias="roomNumbers"),
    extra_beds: Optional[str] = Form(None, alias="extraBeds"),
    check_in_date: Optional[str] = Form(None, alias="checkInDate"),
    check_out_date: Optional[str] = Form(None, alias="checkOutDate"),
    id_photo: Optional[UploadFile] = File(None, alias="idPhoto"),
    payment_slip: Optional[UploadFile] = File(None, alias="paymentSlip"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Submit a booking (multipart form).

    Every requested room must be free for the whole stay, otherwise the
    submission fails with 409. Uploaded files are removed again whenever
    the booking is not created. The Telegram alert is sent in the
    background after the response.
    """
    start = time.perf_counter()

    try:
        data = BookingCreate.model_validate(
            {
                "full_name": full_name or "",
                "id_number": id_number or "",
                "phone_number": phone_number,
                "customer_notes": customer_notes,
                "room_number": room_number,
                "room_numbers": room_numbers,
                "extra_beds": extra_beds,
                "check_in_date": check_in_date,
                "check_out_date": check_out_date,
            },
            context={"room_count": settings.ROOM_COUNT},
        )
    except ValidationError as e:
        record_booking_attempt("invalid")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=format_validation_errors(e.errors()),
        )

    stored: list[Optional[str]] = []
    try:
        stored.append(await save_upload(id_photo, settings, IMAGE_TYPES))
        stored.append(await save_upload(payment_slip, settings, DOCUMENT_TYPES))
        booking = await booking_service.place_booking(db, data, settings, stored[0], stored[1])
        await db.commit()
    except HTTPException as e:
        delete_uploads(stored, settings)
        record_booking_attempt("conflict" if e.status_code == status.HTTP_409_CONFLICT else "invalid")
        raise
    except Exception:
        delete_uploads(stored, settings)
        record_booking_attempt("error")
        raise

    snapshot = BookingResponse.model_validate(booking)
    background_tasks.add_task(dispatch_booking_notification, snapshot, settings)

    record_booking_attempt("success")
    booking_latency.observe(time.perf_counter() - start)
    return snapshot


@router.get("/{booking_id}/invoice", response_model=InvoiceResponse)
async def get_invoice(
    booking_id: str,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Invoice data for the guest's confirmation page."""
    booking = await booking_service.get_booking_or_404(db, booking_id)
    return InvoiceResponse(
        invoice_number=booking.id[:8].upper(),
        booking=BookingResponse.model_validate(booking),
        lines=invoice_lines(booking, settings),
        total_mvr=booking.total_mvr,
        total_usd=booking.total_usd,
        bank_accounts=settings.BANK_ACCOUNTS,
    )


@router.patch("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(booking_id: str, db: AsyncSession = Depends(get_db)):
    return await booking_service.confirm_booking(db, booking_id)


@router.patch("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: str,
    payload: Optional[BookingReject] = Body(None),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending booking, optionally recording a note for the guest."""
    admin_notes = payload.admin_notes if payload else None
    return await booking_service.reject_booking(db, booking_id, admin_notes)


@router.patch("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(booking_id: str, db: AsyncSession = Depends(get_db)):
    return await booking_service.cancel_booking(db, booking_id)


@router.patch("/{booking_id}/dates", response_model=BookingResponse)
async def update_booking_dates(
    booking_id: str,
    window: BookingDatesUpdate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Move a booking to new dates; totals are recalculated."""
    return await booking_service.reschedule_booking(db, booking_id, window, settings)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str, db: AsyncSession = Depends(get_db)):
    return await booking_service.get_booking_or_404(db, booking_id)


@router.delete("/{booking_id}", response_model=BookingDeleteResponse)
async def delete_booking(booking_id: str, db: AsyncSession = Depends(get_db)):
    """Hard delete, whatever the booking's status."""
    await booking_service.remove_booking(db, booking_id)
    return BookingDeleteResponse(message="Booking deleted successfully", booking_id=booking_id)
