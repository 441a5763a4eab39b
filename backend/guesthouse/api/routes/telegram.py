"""
Telegram webhook receiving approve/reject button presses from admin chats.
"""

import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.core.config import Settings, get_settings
from guesthouse.core.logging import get_logger
from guesthouse.db.session import get_db
from guesthouse.schemas.telegram import TelegramUpdate
from guesthouse.services.notification_service import TelegramNotifier, handle_callback_query

logger = get_logger(__name__)
router = APIRouter(prefix="/telegram", tags=["Telegram"])


def get_notifier(settings: Settings = Depends(get_settings)) -> TelegramNotifier:
    return TelegramNotifier(settings)


@router.post("/webhook")
async def telegram_webhook(
    update: TelegramUpdate,
    secret_token: Optional[str] = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    expected = settings.TELEGRAM_WEBHOOK_SECRET
    if expected and not secrets.compare_digest(secret_token or "", expected):
        logger.warning("telegram_webhook_bad_secret", update_id=update.update_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid webhook secret")

    if update.callback_query is None:
        logger.debug("telegram_update_ignored", update_id=update.update_id)
        return {"ok": True}

    result = await handle_callback_query(db, update.callback_query, notifier)
    return {"ok": True, "result": result}
