"""Likes and bookmarks shared across content types."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from throwback.database import Base


class Like(Base):
    """A user's like or dislike on any likeable entity."""

    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "user_id", name="uq_like_entity_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type = Column(String(20), nullable=False)
    entity_id = Column(Uuid, nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(10), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Like(entity={self.entity_type}:{self.entity_id}, user_id={self.user_id}, action={self.action})>"


class Bookmark(Base):
    """A saved video or podcast."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_bookmark_user_video"),
        UniqueConstraint("user_id", "podcast_id", name="uq_bookmark_user_podcast"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=True)
    podcast_id = Column(Uuid, ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(10), nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    video = relationship("Video")
    podcast = relationship("Podcast")

    def __repr__(self):
        return f"<Bookmark(id={self.id}, user_id={self.user_id}, type={self.type})>"
