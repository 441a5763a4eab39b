from guesthouse.models.booking import Booking, BookingRoom, BookingStatus
from guesthouse.models.gallery import GalleryPhoto
from guesthouse.models.room import Room

__all__ = ["Booking", "BookingRoom", "BookingStatus", "GalleryPhoto", "Room"]
