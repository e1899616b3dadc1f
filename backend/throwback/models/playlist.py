"""Playlist models: items, collaborators, favourites and analytics."""

from sqlalchemy import (
    Column, String, Integer, Float, DateTime, ForeignKey, Text, JSON, Uuid, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from throwback.database import Base
from throwback.models.enums import PlaylistVisibility, PlaylistType


class Playlist(Base):
    """An ordered, user-owned list of videos."""

    __tablename__ = "playlists"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=True)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    visibility = Column(String(10), default=PlaylistVisibility.PUBLIC.value, nullable=False, index=True)
    cover_image = Column(String(500), nullable=True)
    play_count = Column(Integer, default=0, nullable=False)
    favorite_count = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    tags = Column(JSON, default=list, nullable=False)

    type = Column(String(20), default=PlaylistType.MANUAL.value, nullable=False)
    auto_genre = Column(String(30), nullable=True)
    auto_decade = Column(String(10), nullable=True)
    auto_artist = Column(String(255), nullable=True)
    auto_limit = Column(Integer, default=50, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    owner = relationship("User")
    items = relationship(
        "PlaylistItem",
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistItem.position"
    )
    collaborators = relationship("PlaylistCollaborator", back_populates="playlist", cascade="all, delete-orphan")
    favorites = relationship("PlaylistFavorite", back_populates="playlist", cascade="all, delete-orphan")
    analytics = relationship("PlaylistAnalytics", back_populates="playlist", uselist=False, cascade="all, delete-orphan")

    @property
    def video_count(self) -> int:
        return len(self.items)

    @property
    def total_duration(self) -> int:
        return sum(item.duration for item in self.items)

    def __repr__(self):
        return f"<Playlist(id={self.id}, name={self.name}, owner_id={self.owner_id})>"


class PlaylistItem(Base):
    """A video or podcast episode at a 1-based position in a playlist."""

    __tablename__ = "playlist_items"
    __table_args__ = (
        UniqueConstraint("playlist_id", "video_id", name="uq_playlist_item_video"),
        UniqueConstraint("playlist_id", "podcast_id", name="uq_playlist_item_podcast"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    playlist_id = Column(Uuid, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=True)
    podcast_id = Column(Uuid, ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=True)
    position = Column(Integer, nullable=False)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    added_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    playlist = relationship("Playlist", back_populates="items")
    video = relationship("Video")
    podcast = relationship("Podcast")

    @property
    def duration(self) -> int:
        target = self.video or self.podcast
        return (target.duration or 0) if target else 0


class PlaylistCollaborator(Base):
    """A user allowed to read or edit someone else's playlist."""

    __tablename__ = "playlist_collaborators"
    __table_args__ = (
        UniqueConstraint("playlist_id", "user_id", name="uq_playlist_collaborator"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    playlist_id = Column(Uuid, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = Column(String(10), nullable=False)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    playlist = relationship("Playlist", back_populates="collaborators")
    user = relationship("User")


class PlaylistFavorite(Base):
    __tablename__ = "playlist_favorites"
    __table_args__ = (
        UniqueConstraint("playlist_id", "user_id", name="uq_playlist_favorite"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    playlist_id = Column(Uuid, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    playlist = relationship("Playlist", back_populates="favorites")


class PlaylistAnalytics(Base):
    """Rolling view and favourite windows used for trending."""

    __tablename__ = "playlist_analytics"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    playlist_id = Column(Uuid, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False, unique=True)

    views_total = Column(Integer, default=0, nullable=False)
    views_daily = Column(Integer, default=0, nullable=False)
    views_weekly = Column(Integer, default=0, nullable=False)
    views_monthly = Column(Integer, default=0, nullable=False)

    unique_viewers_total = Column(Integer, default=0, nullable=False)
    unique_viewers_daily = Column(Integer, default=0, nullable=False)
    unique_viewers_weekly = Column(Integer, default=0, nullable=False)
    unique_viewers_monthly = Column(Integer, default=0, nullable=False)

    favorites_total = Column(Integer, default=0, nullable=False)
    favorites_daily = Column(Integer, default=0, nullable=False)
    favorites_weekly = Column(Integer, default=0, nullable=False)
    favorites_monthly = Column(Integer, default=0, nullable=False)

    trending_score = Column(Float, default=0.0, nullable=False, index=True)
    last_updated = Column(DateTime, default=datetime.utcnow, nullable=False)

    playlist = relationship("Playlist", back_populates="analytics")

    def __repr__(self):
        return f"<PlaylistAnalytics(playlist_id={self.playlist_id}, trending_score={self.trending_score})>"
