"""Memories: comments on videos and podcasts."""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from throwback.database import Base
from throwback.models.enums import CommentStatus, MemoryType

MAX_MEMORY_LENGTH = 500


class Comment(Base):
    """A memory posted under a video, optionally replying to another one."""

    __tablename__ = "comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    content = Column(Text, nullable=False)
    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)

    likes = Column(Integer, default=0, nullable=False)
    dislikes = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=CommentStatus.ACTIVE.value, nullable=False, index=True)

    moderated_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    moderated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    author = relationship("User", foreign_keys=[author_id])
    video = relationship("Video")
    reports = relationship("CommentReport", back_populates="comment", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Comment(id={self.id}, video_id={self.video_id}, status={self.status})>"


class CommentReport(Base):
    """A user's report on a memory."""

    __tablename__ = "comment_reports"
    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_report_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    comment_id = Column(Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    comment = relationship("Comment", back_populates="reports")


class PodcastMemory(Base):
    """A memory posted under (or shared from) a podcast episode."""

    __tablename__ = "podcast_memories"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    content = Column(Text, nullable=False)
    podcast_id = Column(Uuid, ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(10), default=MemoryType.POSTED.value, nullable=False)
    likes = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    author = relationship("User")

    def __repr__(self):
        return f"<PodcastMemory(id={self.id}, podcast_id={self.podcast_id}, type={self.type})>"
