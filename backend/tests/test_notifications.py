"""
Tests for Telegram booking alerts and the approve/reject webhook.

Outbound Bot API calls go through an httpx.MockTransport that records
every request instead of reaching the network.
"""

import json
from datetime import date

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient

from guesthouse.api.routes.telegram import get_notifier
from guesthouse.core.config import get_settings
from guesthouse.main import app
from guesthouse.schemas.booking import BookingResponse
from guesthouse.services.notification_service import (
    TelegramNotifier,
    booking_keyboard,
    dispatch_booking_notification,
    format_booking_message,
    parse_callback_data,
)

ADMIN_CHAT = "100"
EXTRA_CHAT = "200"


def sample_booking(**overrides) -> BookingResponse:
    values = {
        "id": "b1a2c3d4-0000-0000-0000-000000000000",
        "full_name": "Aminath <Test>",
        "id_number": "A123456",
        "phone_number": None,
        "customer_notes": "Arriving & leaving late",
        "room_number": 1,
        "room_numbers": [1, 3],
        "extra_beds": [3],
        "check_in_date": date(2025, 12, 24),
        "check_out_date": date(2025, 12, 26),
        "total_nights": 2,
        "total_mvr": 2600,
        "total_usd": "133.33",
        "id_photo": "1700000000000-abc.png",
        "payment_slip": None,
        "status": "Pending",
        "admin_notes": None,
        "booking_date": date(2025, 12, 1),
    }
    values.update(overrides)
    return BookingResponse(**values)


class RecordingTransport:
    """Collects Bot API calls and answers them with a fixed status."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.calls: list[tuple[str, dict]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        self.calls.append((method, json.loads(request.content)))
        return httpx.Response(self.status_code, json={"ok": self.status_code == 200})

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]


@pytest.fixture
def telegram_settings(test_settings):
    return test_settings.model_copy(update={
        "TELEGRAM_BOT_TOKEN": "123:abc",
        "TELEGRAM_CHAT_ID": ADMIN_CHAT,
        "TELEGRAM_EXTRA_CHAT_IDS": [EXTRA_CHAT],
    })


@pytest.fixture
def recorder():
    return RecordingTransport()


@pytest_asyncio.fixture
async def notifier(telegram_settings, recorder):
    async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as http:
        yield TelegramNotifier(telegram_settings, client=http)


@pytest_asyncio.fixture
async def webhook_client(client: AsyncClient, notifier):
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield client


def callback_update(data: str, chat_id: str = ADMIN_CHAT) -> dict:
    return {
        "update_id": 1,
        "callback_query": {
            "id": "cb-1",
            "from": {"id": 42, "username": "owner"},
            "message": {"message_id": 7, "chat": {"id": int(chat_id)}},
            "data": data,
        },
    }


# ---------------------------------------------------------------------------
# Message formatting
# ---------------------------------------------------------------------------

def test_format_booking_message_escapes_guest_text():
    text = format_booking_message(sample_booking(), today=date(2025, 12, 1))

    assert "<b>NEW BOOKING RECEIVED</b>" in text
    assert "Name: Aminath &lt;Test&gt;" in text
    assert "Phone: Not provided" in text
    assert "Rooms: Room 1, Room 3" in text
    assert "Extra Beds: Room 3" in text
    assert "Check-in: 2025-12-24" in text
    assert "Nights: 2" in text
    assert "Total: 2,600 MVR" in text
    assert "(USD 133.33)" in text
    assert "ID Photo: Uploaded" in text
    assert "Payment Slip: Not uploaded" in text
    assert "Arriving &amp; leaving late" in text
    assert "Booked on: 2025-12-01" in text


def test_format_booking_message_without_extras():
    text = format_booking_message(sample_booking(extra_beds=[], customer_notes=None))
    assert "Extra Beds: None" in text
    assert "Customer Notes" not in text


def test_booking_keyboard_round_trips_through_parser():
    keyboard = booking_keyboard("abc-123")
    approve, reject = keyboard["inline_keyboard"][0]
    assert parse_callback_data(approve["callback_data"]) == ("approve", "abc-123")
    assert parse_callback_data(reject["callback_data"]) == ("reject", "abc-123")


@pytest.mark.parametrize("data", [None, "", "approve", "delete:abc", "approve:"])
def test_parse_callback_data_rejects_garbage(data):
    assert parse_callback_data(data) is None


# ---------------------------------------------------------------------------
# Outbound alerts
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_alert_sent_to_every_chat(notifier, recorder):
    assert await notifier.send_booking_alert(sample_booking()) is True

    assert recorder.methods() == ["sendMessage", "sendMessage"]
    chats = [payload["chat_id"] for _, payload in recorder.calls]
    assert chats == [ADMIN_CHAT, EXTRA_CHAT]

    payload = recorder.calls[0][1]
    assert payload["parse_mode"] == "HTML"
    buttons = payload["reply_markup"]["inline_keyboard"][0]
    assert [b["callback_data"] for b in buttons] == [
        "approve:b1a2c3d4-0000-0000-0000-000000000000",
        "reject:b1a2c3d4-0000-0000-0000-000000000000",
    ]


@pytest.mark.asyncio
async def test_alert_attaches_uploaded_documents(telegram_settings, recorder):
    settings = telegram_settings.model_copy(update={
        "APP_BASE_URL": "https://inn.example.com/",
        "TELEGRAM_EXTRA_CHAT_IDS": [],
    })
    async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as http:
        await TelegramNotifier(settings, client=http).send_booking_alert(sample_booking())

    assert recorder.methods() == ["sendMessage", "sendPhoto"]
    photo = recorder.calls[1][1]
    assert photo["photo"] == "https://inn.example.com/uploads/1700000000000-abc.png"
    assert "ID Card/Passport" in photo["caption"]


@pytest.mark.asyncio
async def test_alert_skipped_when_not_configured(test_settings, recorder):
    async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as http:
        sent = await TelegramNotifier(test_settings, client=http).send_booking_alert(sample_booking())

    assert sent is False
    assert recorder.calls == []


@pytest.mark.asyncio
async def test_alert_reports_api_failure(telegram_settings):
    failing = RecordingTransport(status_code=500)
    async with httpx.AsyncClient(transport=httpx.MockTransport(failing)) as http:
        sent = await TelegramNotifier(telegram_settings, client=http).send_booking_alert(sample_booking())

    assert sent is False
    assert len(failing.calls) == 2


@pytest.mark.asyncio
async def test_alert_survives_network_error(telegram_settings):
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(unreachable)) as http:
        sent = await TelegramNotifier(telegram_settings, client=http).send_booking_alert(sample_booking())

    assert sent is False


@pytest.mark.asyncio
async def test_dispatch_never_raises(test_settings):
    # Telegram disabled: the dispatcher just returns
    await dispatch_booking_notification(sample_booking(), test_settings)


# ---------------------------------------------------------------------------
# Webhook callbacks
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_approve_button_confirms_booking(webhook_client, pending_booking, recorder):
    booking_id = pending_booking.id
    response = await webhook_client.post(
        "/api/telegram/webhook", json=callback_update(f"approve:{booking_id}")
    )
    assert response.status_code == 200
    assert response.json()["result"] == "Booking for Ahmed Ali is now Confirmed"

    booking = await webhook_client.get(f"/api/bookings/{booking_id}")
    assert booking.json()["status"] == "Confirmed"

    assert recorder.methods() == ["answerCallbackQuery", "sendMessage"]
    assert recorder.calls[1][1]["chat_id"] == ADMIN_CHAT


@pytest.mark.asyncio
async def test_reject_button_rejects_booking(webhook_client, pending_booking):
    booking_id = pending_booking.id
    response = await webhook_client.post(
        "/api/telegram/webhook", json=callback_update(f"reject:{booking_id}")
    )
    assert response.status_code == 200

    booking = await webhook_client.get(f"/api/bookings/{booking_id}")
    assert booking.json()["status"] == "Rejected"


@pytest.mark.asyncio
async def test_refused_transition_is_reported(webhook_client, confirmed_booking):
    response = await webhook_client.post(
        "/api/telegram/webhook", json=callback_update(f"reject:{confirmed_booking.id}")
    )
    assert response.status_code == 200
    assert response.json()["result"] == "Cannot reject a booking that is confirmed"


@pytest.mark.asyncio
async def test_unknown_booking_is_reported(webhook_client):
    response = await webhook_client.post(
        "/api/telegram/webhook", json=callback_update("approve:missing")
    )
    assert response.json()["result"] == "Booking not found"


@pytest.mark.asyncio
async def test_callback_from_unknown_chat_ignored(webhook_client, pending_booking, recorder):
    booking_id = pending_booking.id
    response = await webhook_client.post(
        "/api/telegram/webhook", json=callback_update(f"approve:{booking_id}", chat_id="999")
    )
    assert response.json()["result"] == "Not authorized"

    booking = await webhook_client.get(f"/api/bookings/{booking_id}")
    assert booking.json()["status"] == "Pending"
    assert recorder.methods() == ["answerCallbackQuery"]


@pytest.mark.asyncio
async def test_plain_message_update_ignored(webhook_client):
    response = await webhook_client.post(
        "/api/telegram/webhook",
        json={"update_id": 2, "message": {"message_id": 1, "chat": {"id": 100}, "text": "hi"}},
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_webhook_secret_enforced(client: AsyncClient, test_settings, notifier):
    secured = test_settings.model_copy(update={"TELEGRAM_WEBHOOK_SECRET": "s3cret"})

    app.dependency_overrides[get_settings] = lambda: secured
    app.dependency_overrides[get_notifier] = lambda: notifier

    denied = await client.post("/api/telegram/webhook", json={"update_id": 3})
    assert denied.status_code == 403

    allowed = await client.post(
        "/api/telegram/webhook",
        json={"update_id": 3},
        headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
    )
    assert allowed.status_code == 200
