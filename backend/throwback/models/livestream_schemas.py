"""Pydantic schemas for live streams and live chat."""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional, Union
from datetime import datetime, timezone
from uuid import UUID

from throwback.models.enums import (
    StreamStatus, StreamCategory, StreamProvider, RecurrenceFrequency, CompilationType,
    VideoSource, TransitionEffect, StreamResolution
)
from throwback.models.schemas import PaginationMeta, UserSummary

MAX_CHAT_MESSAGE_LENGTH = 500


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ============================================
# Live Stream Schemas
# ============================================

class RecurrencePattern(BaseModel):
    frequency: RecurrenceFrequency
    days_of_week: List[int] = []
    interval: int = Field(default=1, ge=1)
    end_date: Optional[datetime] = None

    @field_validator('days_of_week')
    @classmethod
    def check_days(cls, v):
        if any(day < 0 or day > 6 for day in v):
            raise ValueError('Days of week must be between 0 (Sunday) and 6 (Saturday)')
        return sorted(set(v))

    @model_validator(mode='after')
    def weekly_needs_days(self):
        if self.frequency == RecurrenceFrequency.WEEKLY and not self.days_of_week:
            raise ValueError('Weekly recurrence requires at least one day of the week')
        return self


class CompilationVideoCreate(BaseModel):
    """
    A video of a compilation stream.

    The duration may be given in seconds or as "h:mm:ss", "mm:ss" or "ss".
    """
    source_id: str = Field(..., min_length=1, max_length=100)
    source_type: VideoSource
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    thumbnail: Optional[str] = Field(None, max_length=500)
    duration: Optional[Union[int, str]] = None
    channel_title: Optional[str] = Field(None, max_length=255)
    published_at: Optional[datetime] = None
    view_count: int = Field(default=0, ge=0)
    like_count: int = Field(default=0, ge=0)
    original_url: Optional[str] = Field(None, max_length=500)

    @field_validator('source_type', mode='before')
    @classmethod
    def upper_source_type(cls, v):
        return v.upper() if isinstance(v, str) else v


class LiveStreamCreate(BaseModel):
    """
    Schema for scheduling a live stream.

    Streams whose start is already past, or created with start_now by an
    admin, go LIVE immediately.
    """
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    scheduled_start: datetime
    scheduled_end: datetime
    playback_url: Optional[str] = Field(None, max_length=500)
    embed_code: Optional[str] = None
    thumbnail: Optional[str] = Field(None, max_length=500)
    category: StreamCategory = StreamCategory.OTHER
    is_public: bool = True
    is_recurring: bool = False
    recurrence: Optional[RecurrencePattern] = None
    tags: List[str] = []
    host_name: Optional[str] = Field(None, max_length=255)
    guests: List[str] = []
    chat_enabled: bool = True
    moderation_enabled: bool = True
    provider: StreamProvider = StreamProvider.YOUTUBE
    stream_url: Optional[str] = Field(None, max_length=500, description="Only used by CUSTOM providers")
    resolution: StreamResolution = StreamResolution.FULL_HD
    frame_rate: int = Field(default=30, ge=1, le=120)
    bitrate: int = Field(default=6000, ge=100)
    record_after_stream: bool = True
    compilation_type: CompilationType = CompilationType.DIRECT
    compilation_videos: List[CompilationVideoCreate] = []
    loop: bool = True
    autoplay: bool = True
    shuffle: bool = False
    transition_effect: TransitionEffect = TransitionEffect.FADE
    start_now: bool = False

    @field_validator('scheduled_start', 'scheduled_end')
    @classmethod
    def naive_dates(cls, v):
        return to_naive_utc(v)

    @field_validator('tags')
    @classmethod
    def clean_tags(cls, v):
        return list(dict.fromkeys(tag.strip() for tag in v if tag and tag.strip()))

    @model_validator(mode='after')
    def recurrence_when_recurring(self):
        if self.is_recurring and self.recurrence is None:
            raise ValueError('Recurring streams need a recurrence pattern')
        return self


class LiveStreamUpdate(BaseModel):
    """Schema for updating a live stream. Omitted fields are unchanged."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    scheduled_start: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    status: Optional[StreamStatus] = None
    playback_url: Optional[str] = Field(None, max_length=500)
    embed_code: Optional[str] = None
    thumbnail: Optional[str] = Field(None, max_length=500)
    category: Optional[StreamCategory] = None
    is_public: Optional[bool] = None
    is_recurring: Optional[bool] = None
    recurrence: Optional[RecurrencePattern] = None
    tags: Optional[List[str]] = None
    host_name: Optional[str] = Field(None, max_length=255)
    guests: Optional[List[str]] = None
    chat_enabled: Optional[bool] = None
    moderation_enabled: Optional[bool] = None
    provider: Optional[StreamProvider] = None
    resolution: Optional[StreamResolution] = None
    frame_rate: Optional[int] = Field(None, ge=1, le=120)
    bitrate: Optional[int] = Field(None, ge=100)
    record_after_stream: Optional[bool] = None
    compilation_videos: Optional[List[CompilationVideoCreate]] = None
    loop: Optional[bool] = None
    autoplay: Optional[bool] = None
    shuffle: Optional[bool] = None
    transition_effect: Optional[TransitionEffect] = None

    @field_validator('scheduled_start', 'scheduled_end')
    @classmethod
    def naive_dates(cls, v):
        return to_naive_utc(v)


class CompilationVideoResponse(BaseModel):
    id: UUID
    source_id: str
    source_type: str
    title: str
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[int] = None
    channel_title: Optional[str] = None
    published_at: Optional[datetime] = None
    position: int
    view_count: int
    like_count: int
    original_url: Optional[str] = None

    class Config:
        from_attributes = True


class CompilationProgress(BaseModel):
    """Where a compilation stream currently is."""
    index: int
    video: Optional[CompilationVideoResponse] = None
    offset: int
    remaining: int
    loop_count: int


class LiveStreamResponse(BaseModel):
    """Live stream as seen by viewers."""
    id: UUID
    title: str
    description: Optional[str] = None
    scheduled_start: datetime
    scheduled_end: datetime
    actual_start: Optional[datetime] = None
    actual_end: Optional[datetime] = None
    status: str
    playback_url: Optional[str] = None
    embed_code: Optional[str] = None
    thumbnail: Optional[str] = None
    category: str
    is_public: bool
    is_recurring: bool
    recurrence: Optional[Dict[str, Any]] = None
    tags: List[str] = []
    host_name: str
    guests: List[str] = []
    chat_enabled: bool
    author: Optional[UserSummary] = None
    provider: str
    max_concurrent_viewers: int
    unique_viewers: int
    chat_messages_count: int
    likes_count: int
    recorded_video_id: Optional[str] = None
    compilation_type: str
    compilation_videos: List[CompilationVideoResponse] = []
    loop: bool
    autoplay: bool
    shuffle: bool
    transition_effect: str
    current_video_index: int
    current_video_start: Optional[datetime] = None
    scheduled_duration: int
    actual_duration: Optional[int] = None
    is_starting_soon: bool
    total_compilation_duration: int
    created_at: datetime
    progress: Optional[CompilationProgress] = None
    liked: bool = False

    class Config:
        from_attributes = True


class AdminLiveStreamResponse(LiveStreamResponse):
    """Live stream with its broadcast settings."""
    stream_key: str
    stream_url: Optional[str] = None
    moderation_enabled: bool
    resolution: str
    frame_rate: int
    bitrate: int
    record_after_stream: bool
    total_view_duration: int
    average_view_duration: int
    updated_at: datetime


class LiveStreamListResponse(BaseModel):
    items: List[LiveStreamResponse]
    pagination: PaginationMeta


class AdminLiveStreamListResponse(BaseModel):
    items: List[AdminLiveStreamResponse]
    pagination: PaginationMeta


class DurationStats(BaseModel):
    average_minutes: float
    max_minutes: float
    min_minutes: float
    total_streams: int


class LiveStreamStats(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_category: Dict[str, int]
    by_compilation_type: Dict[str, int]
    most_viewed: List[LiveStreamResponse]
    duration_stats: DurationStats
    upcoming: List[LiveStreamResponse]
    total_unique_viewers: int


class BanRequest(BaseModel):
    user_id: UUID
    reason: Optional[str] = Field(None, max_length=255)


class UnbanRequest(BaseModel):
    user_id: UUID


# ============================================
# Live Chat Schemas
# ============================================

class ChatMessageCreate(BaseModel):
    content: str = Field(..., max_length=MAX_CHAT_MESSAGE_LENGTH)
    parent_id: Optional[UUID] = None

    @field_validator('content')
    @classmethod
    def clean_content(cls, v):
        content = v.strip()
        if not content:
            raise ValueError('Message cannot be empty')
        return content


class ChatMessageDelete(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class ChatMessageReport(BaseModel):
    reason: str = Field(..., min_length=1, max_length=255)


class ChatMessageResponse(BaseModel):
    id: UUID
    stream_id: UUID
    parent_id: Optional[UUID] = None
    content: str
    user: Optional[UserSummary] = None
    is_deleted: bool
    is_moderated: bool
    moderation_reason: Optional[str] = None
    likes: int
    created_at: datetime
    liked: bool = False
    reply_count: int = 0
    replies: List["ChatMessageResponse"] = []

    class Config:
        from_attributes = True


class ChatMessageListResponse(BaseModel):
    items: List[ChatMessageResponse]
    pagination: PaginationMeta


class ChatModerationStats(BaseModel):
    total: int
    deleted: int
    moderated: int
    banned_users: int
