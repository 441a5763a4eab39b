from guesthouse.schemas.booking import (
    AvailabilityResponse,
    BookingCreate,
    BookingDatesUpdate,
    BookingDeleteResponse,
    BookingReject,
    BookingResponse,
    InvoiceResponse,
)
from guesthouse.schemas.gallery import GalleryPhotoCreate, GalleryPhotoResponse
from guesthouse.schemas.site import SiteConfigResponse
from guesthouse.schemas.telegram import TelegramUpdate

__all__ = [
    "AvailabilityResponse", "BookingCreate", "BookingDatesUpdate",
    "BookingDeleteResponse", "BookingReject", "BookingResponse", "InvoiceResponse",
    "GalleryPhotoCreate", "GalleryPhotoResponse",
    "SiteConfigResponse",
    "TelegramUpdate",
]
