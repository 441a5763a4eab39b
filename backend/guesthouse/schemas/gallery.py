"""
Pydantic schemas for gallery photos.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GalleryPhotoCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    image_url: str = Field(..., min_length=1, max_length=2000)
    alt_text: str = Field(..., min_length=1, max_length=300)
    display_order: int = 0


class GalleryPhotoResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    image_url: str
    alt_text: str
    display_order: int
