"""Podcast episode model."""

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Text, JSON, Uuid
from datetime import datetime
from typing import Optional
import re
import uuid

from throwback.database import Base
from throwback.models.enums import PodcastCategory

VIMEO_URL_PATTERN = re.compile(r"^https?://(www\.)?(vimeo\.com|player\.vimeo\.com)/.+", re.IGNORECASE)
VIMEO_ID_PATTERN = re.compile(r"vimeo\.com/(?:video/)?(\d+)")

DEFAULT_HOST = "Mike Levis"


def extract_vimeo_id(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    match = VIMEO_ID_PATTERN.search(url)
    return match.group(1) if match else None


class Podcast(Base):
    """A Vimeo-hosted podcast episode."""

    __tablename__ = "podcasts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False, index=True)
    episode = Column(Integer, nullable=False)
    season = Column(Integer, default=1, nullable=False, index=True)
    vimeo_url = Column(String(500), nullable=False)
    duration = Column(Integer, default=0, nullable=False)  # seconds
    cover_image = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    guest_name = Column(String(255), nullable=True)
    host_name = Column(String(255), default=DEFAULT_HOST, nullable=False)
    publish_date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    topics = Column(JSON, default=list, nullable=False)
    category = Column(String(30), default=PodcastCategory.OTHER.value, nullable=False, index=True)

    is_published = Column(Boolean, default=True, nullable=False)
    is_highlighted = Column(Boolean, default=False, nullable=False)
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    view_count = Column(Integer, default=0, nullable=False)
    like_count = Column(Integer, default=0, nullable=False)
    comment_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def formatted_episode(self) -> str:
        return f"EP.{self.episode:02d}"

    @property
    def vimeo_id(self) -> Optional[str]:
        return extract_vimeo_id(self.vimeo_url)

    def __repr__(self):
        return f"<Podcast(id={self.id}, title={self.title}, episode={self.episode})>"
