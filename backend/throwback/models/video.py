"""Video catalog model."""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, JSON, Uuid
from datetime import datetime
from typing import List, Optional
import re
import uuid

from throwback.database import Base

GENRES = [
    "Pop", "Rock", "Hip-Hop", "Rap", "R&B", "Soul", "Jazz", "Blues",
    "Electronic", "Dance", "House", "Techno", "Country", "Folk",
    "Classical", "Opera", "Reggae", "Reggaeton", "Latin", "World",
    "Alternative", "Indie", "Metal", "Punk", "Funk", "Disco", "Gospel",
    "Soundtrack", "Other"
]

DECADES = ["60s", "70s", "80s", "90s", "2000s", "2010s", "2020s"]

SHORT_MIN_DURATION = 10
SHORT_MAX_DURATION = 45


def decade_for_year(year: Optional[int]) -> Optional[str]:
    """Map a release year to its decade label (None outside 1960-2029)."""
    if year is None or year < 1960 or year >= 2030:
        return None
    if year < 2000:
        return f"{(year // 10) % 10}0s"
    return f"{(year // 10) * 10}s"


def generate_tags(title: str, artist: Optional[str], genre: Optional[str]) -> List[str]:
    """Build search tags from title and artist words plus the genre."""
    words = re.split(r"\s+", f"{title or ''} {artist or ''}".lower())
    tags = []
    for word in words:
        if len(word) > 2 and word not in tags:
            tags.append(word)
    if genre and genre.lower() not in tags:
        tags.append(genre.lower())
    return tags


class Video(Base):
    """A YouTube-hosted catalog entry (short, music clip or podcast clip)."""

    __tablename__ = "videos"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False, index=True)
    youtube_url = Column(String(500), nullable=False)
    type = Column(String(20), nullable=False, index=True)
    genre = Column(String(30), nullable=True, index=True)
    duration = Column(Integer, nullable=True)  # seconds
    description = Column(Text, nullable=True)
    artist = Column(String(255), nullable=True, index=True)
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    year = Column(Integer, nullable=True)
    decade = Column(String(10), nullable=True, index=True)

    views = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    dislikes = Column(Integer, default=0, nullable=False)
    comment_count = Column(Integer, default=0, nullable=False)
    tags = Column(JSON, default=list, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def refresh_derived_fields(self):
        """Recompute year default, decade and tags after an edit."""
        if self.year is None:
            self.year = (self.created_at or datetime.utcnow()).year
        self.decade = decade_for_year(self.year)
        self.tags = generate_tags(self.title, self.artist, self.genre)

    def __repr__(self):
        return f"<Video(id={self.id}, title={self.title}, type={self.type})>"
