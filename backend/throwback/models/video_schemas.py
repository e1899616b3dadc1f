"""Pydantic schemas for videos and memories."""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime
from uuid import UUID

from throwback.models.enums import VideoType, CommentStatus
from throwback.models.schemas import PaginationMeta, UserSummary
from throwback.models.video import GENRES
from throwback.models.comment import MAX_MEMORY_LENGTH
from throwback.utils.validators import validate_youtube_url


def _check_genre(value):
    if value is not None and value not in GENRES:
        raise ValueError(f"Genre must be one of: {', '.join(GENRES)}")
    return value


# ============================================
# Video Schemas
# ============================================

class VideoCreate(BaseModel):
    """Schema for adding a video to the catalog."""
    title: str = Field(..., min_length=1, max_length=255)
    youtube_url: str = Field(..., max_length=500)
    type: VideoType
    genre: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="Duration in seconds")
    description: Optional[str] = Field(None, max_length=5000)
    artist: Optional[str] = Field(None, max_length=255)
    year: Optional[int] = Field(None, ge=1900, le=2100)

    @field_validator('title')
    @classmethod
    def clean_title(cls, v):
        title = v.strip()
        if not title:
            raise ValueError('Title cannot be empty')
        return title

    @field_validator('youtube_url')
    @classmethod
    def check_youtube_url(cls, v):
        is_valid, error = validate_youtube_url(v)
        if not is_valid:
            raise ValueError(error)
        return v

    @field_validator('genre')
    @classmethod
    def check_genre(cls, v):
        return _check_genre(v)


class VideoUpdate(BaseModel):
    """Schema for patching a video. Omitted fields are unchanged."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    youtube_url: Optional[str] = Field(None, max_length=500)
    type: Optional[VideoType] = None
    genre: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=5000)
    artist: Optional[str] = Field(None, max_length=255)
    year: Optional[int] = Field(None, ge=1900, le=2100)

    @field_validator('youtube_url')
    @classmethod
    def check_youtube_url(cls, v):
        if v is None:
            return v
        is_valid, error = validate_youtube_url(v)
        if not is_valid:
            raise ValueError(error)
        return v

    @field_validator('genre')
    @classmethod
    def check_genre(cls, v):
        return _check_genre(v)


class VideoResponse(BaseModel):
    """Schema for video response."""
    id: UUID
    title: str
    youtube_url: str
    type: str
    genre: Optional[str] = None
    duration: Optional[int] = None
    description: Optional[str] = None
    artist: Optional[str] = None
    author_id: Optional[UUID] = None
    year: Optional[int] = None
    decade: Optional[str] = None
    views: int
    likes: int
    dislikes: int
    comment_count: int
    tags: List[str] = []
    created_at: datetime
    updated_at: datetime
    user_interaction: Optional[str] = None

    class Config:
        from_attributes = True


class VideoListResponse(BaseModel):
    items: List[VideoResponse]
    pagination: PaginationMeta
    filters: Dict[str, List[str]] = {}


class VideoDetailResponse(BaseModel):
    video: VideoResponse
    related: List[VideoResponse]
    bookmarked: bool = False


class VideoStats(BaseModel):
    """Catalog statistics for the admin console."""
    total: int
    total_views: int
    total_likes: int
    by_type: Dict[str, int]
    by_decade: Dict[str, int]
    top_viewed: List[VideoResponse]


class ShareRequest(BaseModel):
    platform: Optional[str] = Field(None, max_length=50)


# ============================================
# Memory (Comment) Schemas
# ============================================

class MemoryCreate(BaseModel):
    """Schema for posting a memory or a reply."""
    content: str = Field(..., max_length=MAX_MEMORY_LENGTH)

    @field_validator('content')
    @classmethod
    def clean_content(cls, v):
        content = v.strip()
        if not content:
            raise ValueError('Memory cannot be empty')
        return content


class MemoryReport(BaseModel):
    reason: str = Field(..., min_length=3, max_length=255)


class MemoryModerate(BaseModel):
    status: CommentStatus = CommentStatus.MODERATED
    reason: Optional[str] = Field(None, max_length=255)


class MemoryResponse(BaseModel):
    """Schema for memory response."""
    id: UUID
    content: str
    video_id: UUID
    parent_id: Optional[UUID] = None
    author: Optional[UserSummary] = None
    likes: int
    dislikes: int
    status: str
    reply_count: int = 0
    created_at: datetime
    updated_at: datetime
    user_interaction: Optional[str] = None

    class Config:
        from_attributes = True


class MemoryListResponse(BaseModel):
    items: List[MemoryResponse]
    pagination: PaginationMeta


class ReportResponse(BaseModel):
    user_id: UUID
    reason: str
    created_at: datetime

    class Config:
        from_attributes = True


class AdminMemoryResponse(MemoryResponse):
    """Memory with moderation details."""
    moderated_by: Optional[UUID] = None
    moderated_at: Optional[datetime] = None
    reports: List[ReportResponse] = []


class AdminMemoryListResponse(BaseModel):
    items: List[AdminMemoryResponse]
    pagination: PaginationMeta
