"""
Public booking-form configuration and uploaded file serving.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from guesthouse.core.config import Settings, get_settings
from guesthouse.schemas.site import RoomInfo, SiteConfigResponse
from guesthouse.services.upload_service import resolve_upload

router = APIRouter(tags=["Site"])
uploads_router = APIRouter(tags=["Uploads"])


@router.get("/config", response_model=SiteConfigResponse)
async def site_config(settings: Settings = Depends(get_settings)):
    """Rooms, rates and bank accounts shown on the booking form."""
    return SiteConfigResponse(
        rooms=[RoomInfo(number=n, name=f"Room {n}") for n in range(1, settings.ROOM_COUNT + 1)],
        nightly_rate_mvr=settings.NIGHTLY_RATE_MVR,
        extra_bed_rate_mvr=settings.EXTRA_BED_RATE_MVR,
        usd_exchange_rate=settings.USD_EXCHANGE_RATE,
        bank_accounts=settings.BANK_ACCOUNTS,
    )


@uploads_router.get("/uploads/{filename:path}")
async def serve_upload(filename: str, settings: Settings = Depends(get_settings)):
    path = resolve_upload(filename, settings)
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(path)
