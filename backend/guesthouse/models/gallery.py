"""
Gallery photo model shown on the public landing page.
"""

import uuid

from sqlalchemy import Column, Integer, String, Text

from guesthouse.db.base import Base, TimestampMixin


class GalleryPhoto(Base, TimestampMixin):
    __tablename__ = "gallery_photos"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    image_url = Column(Text, nullable=False)
    alt_text = Column(Text, nullable=False)
    display_order = Column(Integer, nullable=False, default=0, index=True)

    def __repr__(self) -> str:
        return f"<GalleryPhoto(id={self.id}, order={self.display_order})>"
