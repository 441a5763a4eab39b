"""
Telegram notifications for new bookings and the approve/reject callback flow.

Outbound messages are fire-and-forget: `dispatch_booking_notification` runs
as a background task after the booking response is sent, and no failure in
here ever reaches the guest. Inbound button presses are routed through the
same confirm/reject functions as the admin API, so the state machine rules
apply to both.
"""

import html
from datetime import date
from typing import Optional

import httpx
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.core.config import Settings
from guesthouse.core.logging import get_logger
from guesthouse.core.metrics import record_notification
from guesthouse.schemas.booking import BookingResponse
from guesthouse.schemas.telegram import TelegramCallbackQuery
from guesthouse.services import booking_service

logger = get_logger(__name__)

APPROVE = "approve"
REJECT = "reject"
MAX_MESSAGE_LENGTH = 4096


def _rooms_label(rooms: list[int]) -> str:
    return ", ".join(f"Room {r}" for r in rooms)


def format_booking_message(booking: BookingResponse, today: Optional[date] = None) -> str:
    """Render a booking as an HTML-formatted Telegram message."""
    e = html.escape
    today = today or date.today()

    if booking.extra_beds:
        plural = "s" if len(booking.extra_beds) > 1 else ""
        extra_beds = f"Room{plural} {', '.join(str(r) for r in booking.extra_beds)}"
    else:
        extra_beds = "None"

    lines = [
        "🏨 <b>NEW BOOKING RECEIVED</b>",
        "",
        "👤 <b>Guest Details</b>",
        f"Name: {e(booking.full_name)}",
        f"ID/Passport: {e(booking.id_number)}",
        f"Phone: {e(booking.phone_number or 'Not provided')}",
        "",
        "🛏️ <b>Room Information</b>",
        f"Rooms: {_rooms_label(booking.room_numbers)}",
        f"Extra Beds: {extra_beds}",
        f"Check-in: {booking.check_in_date.isoformat()}",
        f"Check-out: {booking.check_out_date.isoformat()}",
        f"Nights: {booking.total_nights}",
        "",
        "💰 <b>Payment</b>",
        f"Total: {booking.total_mvr:,} MVR",
        f"(USD {e(booking.total_usd)})",
        f"ID Photo: {'Uploaded' if booking.id_photo else 'Not uploaded'}",
        f"Payment Slip: {'Uploaded' if booking.payment_slip else 'Not uploaded'}",
        "",
    ]
    if booking.customer_notes:
        lines += ["📝 <b>Customer Notes</b>", e(booking.customer_notes), ""]
    lines.append(f"📅 Booked on: {today.isoformat()}")
    lines.append(f"🔖 Ref: <code>{e(booking.id)}</code>")

    return "\n".join(lines)[:MAX_MESSAGE_LENGTH]


def booking_keyboard(booking_id: str) -> dict:
    return {
        "inline_keyboard": [[
            {"text": "✅ Approve", "callback_data": f"{APPROVE}:{booking_id}"},
            {"text": "❌ Reject", "callback_data": f"{REJECT}:{booking_id}"},
        ]]
    }


def parse_callback_data(data: Optional[str]) -> Optional[tuple[str, str]]:
    """Split "approve:<id>" / "reject:<id>" into (action, booking_id)."""
    if not data or ":" not in data:
        return None
    action, booking_id = data.split(":", 1)
    if action not in (APPROVE, REJECT) or not booking_id:
        return None
    return action, booking_id


class TelegramNotifier:
    """Thin async wrapper over the Telegram Bot API for the configured admin chats."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.settings.TELEGRAM_BOT_TOKEN and self.settings.telegram_chat_ids)

    def _url(self, method: str) -> str:
        return f"{self.settings.TELEGRAM_API_URL}/bot{self.settings.TELEGRAM_BOT_TOKEN}/{method}"

    async def _call(self, method: str, payload: dict) -> bool:
        """POST one Bot API call. Returns False on any failure; never raises."""
        try:
            if self._client is not None:
                response = await self._client.post(self._url(method), json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.settings.TELEGRAM_TIMEOUT) as client:
                    response = await client.post(self._url(method), json=payload)
        except httpx.HTTPError as e:
            record_notification(method, "error")
            logger.error("telegram_request_failed", method=method, error=str(e))
            return False

        if response.status_code != 200:
            record_notification(method, "error")
            logger.error(
                "telegram_api_error",
                method=method,
                status_code=response.status_code,
                body=response.text[:500],
            )
            return False

        record_notification(method, "ok")
        return True

    async def send_message(self, chat_id: str, text: str, reply_markup: Optional[dict] = None) -> bool:
        payload = {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return await self._call("sendMessage", payload)

    async def send_photo(self, chat_id: str, photo_url: str, caption: str) -> bool:
        return await self._call("sendPhoto", {"chat_id": chat_id, "photo": photo_url, "caption": caption})

    async def answer_callback(self, callback_query_id: str, text: str) -> bool:
        return await self._call("answerCallbackQuery", {"callback_query_id": callback_query_id, "text": text})

    async def send_booking_alert(self, booking: BookingResponse) -> bool:
        """
        Send the booking summary (with approve/reject buttons) to every
        configured chat, followed by the uploaded documents when a public
        base URL is known. True if at least one chat received the summary.
        """
        if not self.enabled:
            record_notification("sendMessage", "skipped")
            logger.info("telegram_not_configured", booking_id=booking.id)
            return False

        text = format_booking_message(booking)
        keyboard = booking_keyboard(booking.id)

        delivered = 0
        for chat_id in self.settings.telegram_chat_ids:
            if await self.send_message(chat_id, text, keyboard):
                delivered += 1

        base_url = (self.settings.APP_BASE_URL or "").rstrip("/")
        if base_url:
            attachments = [
                (booking.id_photo, f"ID Card/Passport for {booking.full_name}"),
                (booking.payment_slip, f"Payment slip for {booking.full_name}"),
            ]
            for filename, caption in attachments:
                if not filename:
                    continue
                for chat_id in self.settings.telegram_chat_ids:
                    await self.send_photo(chat_id, f"{base_url}/uploads/{filename}", caption)

        logger.info(
            "telegram_notification_sent",
            booking_id=booking.id,
            chats=len(self.settings.telegram_chat_ids),
            delivered=delivered,
        )
        return delivered > 0


async def dispatch_booking_notification(booking: BookingResponse, settings: Settings) -> None:
    """Background-task entry point; logs and absorbs every failure."""
    try:
        await TelegramNotifier(settings).send_booking_alert(booking)
    except Exception as e:
        logger.error("notification_failed", booking_id=booking.id, error=str(e), exc_info=True)


async def handle_callback_query(
    db: AsyncSession,
    callback: TelegramCallbackQuery,
    notifier: TelegramNotifier,
) -> str:
    """
    Apply an approve/reject button press and answer it. Returns the text
    shown to the admin. Refused transitions are reported, not raised.
    """
    chat_id = str(callback.message.chat.id) if callback.message else None
    if chat_id not in notifier.settings.telegram_chat_ids:
        logger.warning("telegram_callback_unauthorized", chat_id=chat_id)
        text = "Not authorized"
        await notifier.answer_callback(callback.id, text)
        return text

    parsed = parse_callback_data(callback.data)
    if parsed is None:
        logger.warning("telegram_callback_unknown", data=callback.data)
        text = "Unknown action"
        await notifier.answer_callback(callback.id, text)
        return text

    action, booking_id = parsed
    try:
        if action == APPROVE:
            booking = await booking_service.confirm_booking(db, booking_id, source="telegram")
        else:
            booking = await booking_service.reject_booking(db, booking_id, source="telegram")
        text = f"Booking for {booking.full_name} is now {booking.status}"
    except HTTPException as e:
        text = str(e.detail)

    logger.info("telegram_callback_handled", action=action, booking_id=booking_id, result=text)
    await notifier.answer_callback(callback.id, text)
    await notifier.send_message(chat_id, html.escape(text))
    return text
