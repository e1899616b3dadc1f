"""Live stream, compilation, ban and chat models."""

from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, ForeignKey, Text, JSON, Uuid, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime, timedelta
from typing import Optional
import secrets
import string
import uuid

from throwback.database import Base
from throwback.models.enums import (
    StreamStatus, StreamCategory, StreamProvider, CompilationType, TransitionEffect, StreamResolution
)

STREAM_KEY_ALPHABET = string.ascii_letters + string.digits
STARTING_SOON_MINUTES = 30

STREAM_URL_TEMPLATES = {
    StreamProvider.VIMEO.value: "rtmp://live.vimeo.com/app/{key}",
    StreamProvider.YOUTUBE.value: "rtmp://a.rtmp.youtube.com/live2/{key}",
    StreamProvider.CUSTOM.value: "rtmp://stream.throwback.com/live/{key}",
}


def generate_stream_key() -> str:
    return "live_" + "".join(secrets.choice(STREAM_KEY_ALPHABET) for _ in range(16))


def build_stream_url(provider: Optional[str], stream_key: str) -> str:
    template = STREAM_URL_TEMPLATES.get(provider, STREAM_URL_TEMPLATES[StreamProvider.CUSTOM.value])
    return template.format(key=stream_key)


class LiveStream(Base):
    """A scheduled broadcast, either direct or a compilation of existing videos."""

    __tablename__ = "livestreams"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)

    scheduled_start = Column(DateTime, nullable=False, index=True)
    scheduled_end = Column(DateTime, nullable=False, index=True)
    actual_start = Column(DateTime, nullable=True)
    actual_end = Column(DateTime, nullable=True)
    status = Column(String(20), default=StreamStatus.SCHEDULED.value, nullable=False, index=True)

    stream_key = Column(String(50), unique=True, nullable=False, default=generate_stream_key)
    stream_url = Column(String(500), nullable=True)
    playback_url = Column(String(500), nullable=True)
    embed_code = Column(Text, nullable=True)
    thumbnail = Column(String(500), nullable=True)

    category = Column(String(30), default=StreamCategory.OTHER.value, nullable=False, index=True)
    is_public = Column(Boolean, default=True, nullable=False)
    is_recurring = Column(Boolean, default=False, nullable=False)
    # {"frequency", "days_of_week", "interval", "end_date"}
    recurrence = Column(JSON, nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    host_name = Column(String(255), default="ThrowBack Host", nullable=False)
    guests = Column(JSON, default=list, nullable=False)

    chat_enabled = Column(Boolean, default=True, nullable=False)
    moderation_enabled = Column(Boolean, default=True, nullable=False)
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Statistics
    max_concurrent_viewers = Column(Integer, default=0, nullable=False)
    unique_viewers = Column(Integer, default=0, nullable=False)
    total_view_duration = Column(Integer, default=0, nullable=False)
    average_view_duration = Column(Integer, default=0, nullable=False)
    chat_messages_count = Column(Integer, default=0, nullable=False)
    likes_count = Column(Integer, default=0, nullable=False)

    # Provider and encoding
    provider = Column(String(10), default=StreamProvider.YOUTUBE.value, nullable=False)
    resolution = Column(String(10), default=StreamResolution.FULL_HD.value, nullable=False)
    frame_rate = Column(Integer, default=30, nullable=False)
    bitrate = Column(Integer, default=6000, nullable=False)
    record_after_stream = Column(Boolean, default=True, nullable=False)
    recorded_video_id = Column(String(100), nullable=True)

    # Compilation playback
    compilation_type = Column(String(20), default=CompilationType.DIRECT.value, nullable=False)
    loop = Column(Boolean, default=True, nullable=False)
    autoplay = Column(Boolean, default=True, nullable=False)
    shuffle = Column(Boolean, default=False, nullable=False)
    transition_effect = Column(String(10), default=TransitionEffect.FADE.value, nullable=False)
    current_video_index = Column(Integer, default=0, nullable=False)
    current_video_start = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    author = relationship("User")
    compilation_videos = relationship(
        "CompilationVideo",
        back_populates="stream",
        cascade="all, delete-orphan",
        order_by="CompilationVideo.position"
    )
    bans = relationship("LiveStreamBan", back_populates="stream", cascade="all, delete-orphan")
    chat_messages = relationship("LiveChatMessage", back_populates="stream", cascade="all, delete-orphan")

    @property
    def scheduled_duration(self) -> int:
        """Scheduled duration in minutes."""
        return int((self.scheduled_end - self.scheduled_start).total_seconds() // 60)

    @property
    def actual_duration(self) -> Optional[int]:
        """Actual duration in minutes, up to now while the stream is live."""
        if not self.actual_start:
            return None
        end = self.actual_end or datetime.utcnow()
        return int((end - self.actual_start).total_seconds() // 60)

    @property
    def is_starting_soon(self) -> bool:
        if self.status != StreamStatus.SCHEDULED.value:
            return False
        now = datetime.utcnow()
        return now <= self.scheduled_start <= now + timedelta(minutes=STARTING_SOON_MINUTES)

    @property
    def total_compilation_duration(self) -> int:
        """Total compilation length in seconds."""
        return sum(video.duration or 0 for video in self.compilation_videos)

    @property
    def banned_user_ids(self):
        return {ban.user_id for ban in self.bans}

    def __repr__(self):
        return f"<LiveStream(id={self.id}, title={self.title}, status={self.status})>"


class CompilationVideo(Base):
    """An existing video played as part of a compilation stream."""

    __tablename__ = "compilation_videos"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    stream_id = Column(Uuid, ForeignKey("livestreams.id", ondelete="CASCADE"), nullable=False, index=True)
    source_id = Column(String(100), nullable=False)
    source_type = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    thumbnail = Column(String(500), nullable=True)
    duration = Column(Integer, nullable=True)  # seconds
    channel_title = Column(String(255), nullable=True)
    published_at = Column(DateTime, nullable=True)
    position = Column(Integer, default=0, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    like_count = Column(Integer, default=0, nullable=False)
    original_url = Column(String(500), nullable=True)

    stream = relationship("LiveStream", back_populates="compilation_videos")


class LiveStreamBan(Base):
    __tablename__ = "livestream_bans"
    __table_args__ = (
        UniqueConstraint("stream_id", "user_id", name="uq_livestream_ban_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    stream_id = Column(Uuid, ForeignKey("livestreams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    banned_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    stream = relationship("LiveStream", back_populates="bans")


class LiveChatMessage(Base):
    """A chat message (or reply) posted while a stream is live."""

    __tablename__ = "livechat_messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    stream_id = Column(Uuid, ForeignKey("livestreams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_id = Column(Uuid, ForeignKey("livechat_messages.id", ondelete="CASCADE"), nullable=True, index=True)
    content = Column(Text, nullable=False)

    is_deleted = Column(Boolean, default=False, nullable=False)
    is_moderated = Column(Boolean, default=False, nullable=False)
    moderation_reason = Column(String(255), nullable=True)
    moderated_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    likes = Column(Integer, default=0, nullable=False)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    stream = relationship("LiveStream", back_populates="chat_messages")
    user = relationship("User", foreign_keys=[user_id])

    def __repr__(self):
        return f"<LiveChatMessage(id={self.id}, stream_id={self.stream_id}, user_id={self.user_id})>"
