"""
Gallery endpoints. Listing is public and cached; add/delete are admin actions.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.api.errors import format_validation_errors
from guesthouse.core.config import Settings, get_settings
from guesthouse.db.session import get_db
from guesthouse.schemas.gallery import GalleryPhotoCreate, GalleryPhotoResponse
from guesthouse.services import gallery_service
from guesthouse.services.upload_service import IMAGE_TYPES, delete_uploads, save_upload

router = APIRouter(prefix="/gallery", tags=["Gallery"])

UPLOADS_PREFIX = "/uploads/"


@router.get("", response_model=list[GalleryPhotoResponse])
async def list_gallery(db: AsyncSession = Depends(get_db)):
    """Gallery photos by display order; a default set when none are stored."""
    return await gallery_service.list_gallery(db)


@router.post("", response_model=GalleryPhotoResponse, status_code=status.HTTP_201_CREATED)
async def add_gallery_photo(
    alt_text: Optional[str] = Form(None, alias="altText"),
    display_order: Optional[str] = Form(None, alias="displayOrder"),
    image_url: Optional[str] = Form(None, alias="imageUrl"),
    photo: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Add a photo, either uploaded as `photo` or referenced by `imageUrl`."""
    stored = await save_upload(photo, settings, IMAGE_TYPES)
    if stored:
        image_url = UPLOADS_PREFIX + stored
    if not image_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either a photo file or imageUrl is required",
        )

    try:
        data = GalleryPhotoCreate.model_validate({
            "image_url": image_url,
            "alt_text": alt_text or "",
            "display_order": display_order or 0,
        })
        row = await gallery_service.add_photo(db, data)
        await db.commit()
    except ValidationError as e:
        delete_uploads([stored], settings)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=format_validation_errors(e.errors()),
        )
    except Exception:
        delete_uploads([stored], settings)
        raise

    await gallery_service.invalidate_gallery_cache()
    return row


@router.delete("/{photo_id}")
async def delete_gallery_photo(
    photo_id: str,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    photo = await gallery_service.get_photo(db, photo_id)
    if photo is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Photo not found",
        )

    image_url = photo.image_url
    await gallery_service.delete_photo(db, photo_id)
    await db.commit()
    await gallery_service.invalidate_gallery_cache()

    if image_url.startswith(UPLOADS_PREFIX):
        delete_uploads([image_url[len(UPLOADS_PREFIX):]], settings)

    return {"message": "Photo deleted successfully", "photoId": photo_id}
