"""
Gallery photo CRUD.

The listing falls back to a fixed set of default photos when nothing has
been uploaded yet, so the landing page never shows an empty gallery. The
defaults are not persisted.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from guesthouse.core.logging import get_logger
from guesthouse.models.gallery import GalleryPhoto
from guesthouse.schemas.gallery import GalleryPhotoCreate, GalleryPhotoResponse
from guesthouse.services.cache_service import get_cached, invalidate_prefix, set_cached

logger = get_logger(__name__)

GALLERY_CACHE_PREFIX = "gallery:"
GALLERY_LIST_KEY = GALLERY_CACHE_PREFIX + "list"

DEFAULT_PHOTOS = [
    ("/images/gallery/front-view.jpg", "Front view of the guest house"),
    ("/images/gallery/room-double.jpg", "Double room"),
    ("/images/gallery/room-twin.jpg", "Twin room"),
    ("/images/gallery/bathroom.jpg", "Private bathroom"),
    ("/images/gallery/beach.jpg", "Beach a short walk away"),
]


def default_gallery() -> list[GalleryPhotoResponse]:
    return [
        GalleryPhotoResponse(id=f"default-{i}", image_url=url, alt_text=alt, display_order=i)
        for i, (url, alt) in enumerate(DEFAULT_PHOTOS)
    ]


async def get_all_photos(db: AsyncSession) -> list[GalleryPhoto]:
    result = await db.execute(
        select(GalleryPhoto).order_by(GalleryPhoto.display_order.asc(), GalleryPhoto.created_at.asc())
    )
    return list(result.scalars().all())


async def add_photo(db: AsyncSession, photo: GalleryPhotoCreate) -> GalleryPhoto:
    row = GalleryPhoto(
        image_url=photo.image_url,
        alt_text=photo.alt_text,
        display_order=photo.display_order,
    )
    db.add(row)
    await db.flush()

    logger.info("gallery_photo_added", photo_id=row.id, order=row.display_order)
    return row


async def get_photo(db: AsyncSession, photo_id: str) -> Optional[GalleryPhoto]:
    result = await db.execute(select(GalleryPhoto).where(GalleryPhoto.id == photo_id))
    return result.scalar_one_or_none()


async def delete_photo(db: AsyncSession, photo_id: str) -> bool:
    row = await get_photo(db, photo_id)
    if row is None:
        return False

    await db.delete(row)
    await db.flush()

    logger.info("gallery_photo_deleted", photo_id=photo_id)
    return True


async def invalidate_gallery_cache() -> None:
    """Drop the cached listing. Call after the add/delete has been committed."""
    await invalidate_prefix(GALLERY_CACHE_PREFIX)


async def list_gallery(db: AsyncSession) -> list[GalleryPhotoResponse]:
    """Persisted photos (or the defaults), served from cache when possible."""
    cached = await get_cached(GALLERY_LIST_KEY)
    if cached is not None:
        return [GalleryPhotoResponse.model_validate(item) for item in cached]

    rows = await get_all_photos(db)
    photos = [GalleryPhotoResponse.model_validate(row) for row in rows] or default_gallery()

    await set_cached(GALLERY_LIST_KEY, [p.model_dump() for p in photos])
    return photos
