"""Pydantic schemas for podcasts, podcast memories and bookmarks."""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime
from uuid import UUID

from throwback.models.enums import PodcastCategory
from throwback.models.schemas import PaginationMeta, UserSummary
from throwback.models.video_schemas import VideoResponse
from throwback.models.comment import MAX_MEMORY_LENGTH
from throwback.utils.validators import validate_vimeo_url


class PodcastCreate(BaseModel):
    """Schema for publishing a podcast episode."""
    title: str = Field(..., min_length=1, max_length=255)
    episode: int = Field(..., ge=1)
    season: int = Field(default=1, ge=1)
    vimeo_url: str = Field(..., max_length=500)
    duration: int = Field(default=0, ge=0, description="Duration in seconds")
    cover_image: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    guest_name: Optional[str] = Field(None, max_length=255)
    host_name: Optional[str] = Field(None, max_length=255)
    publish_date: Optional[datetime] = None
    topics: List[str] = []
    category: PodcastCategory = PodcastCategory.OTHER
    is_published: bool = True
    is_highlighted: bool = False

    @field_validator('vimeo_url')
    @classmethod
    def check_vimeo_url(cls, v):
        is_valid, error = validate_vimeo_url(v)
        if not is_valid:
            raise ValueError(error)
        return v

    @field_validator('topics')
    @classmethod
    def clean_topics(cls, v):
        return [topic.strip() for topic in v if topic and topic.strip()]


class PodcastUpdate(BaseModel):
    """Schema for updating a podcast. Omitted fields are unchanged."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    episode: Optional[int] = Field(None, ge=1)
    season: Optional[int] = Field(None, ge=1)
    vimeo_url: Optional[str] = Field(None, max_length=500)
    duration: Optional[int] = Field(None, ge=0)
    cover_image: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    guest_name: Optional[str] = Field(None, max_length=255)
    host_name: Optional[str] = Field(None, max_length=255)
    publish_date: Optional[datetime] = None
    topics: Optional[List[str]] = None
    category: Optional[PodcastCategory] = None
    is_published: Optional[bool] = None
    is_highlighted: Optional[bool] = None

    @field_validator('vimeo_url')
    @classmethod
    def check_vimeo_url(cls, v):
        if v is None:
            return v
        is_valid, error = validate_vimeo_url(v)
        if not is_valid:
            raise ValueError(error)
        return v


class PodcastResponse(BaseModel):
    """Schema for podcast response."""
    id: UUID
    title: str
    episode: int
    formatted_episode: str
    season: int
    vimeo_url: str
    vimeo_id: Optional[str] = None
    duration: int
    cover_image: Optional[str] = None
    description: Optional[str] = None
    guest_name: Optional[str] = None
    host_name: str
    publish_date: datetime
    topics: List[str] = []
    category: str
    is_published: bool
    is_highlighted: bool
    view_count: int
    like_count: int
    comment_count: int
    created_at: datetime
    liked: bool = False
    bookmarked: bool = False

    class Config:
        from_attributes = True


class PodcastListResponse(BaseModel):
    items: List[PodcastResponse]
    pagination: PaginationMeta


class PodcastStats(BaseModel):
    total: int
    published: int
    highlighted: int
    total_views: int
    total_likes: int
    by_category: Dict[str, int]
    by_season: Dict[int, int]
    most_viewed: List[PodcastResponse]


class SeasonSummary(BaseModel):
    season: int
    episodes: int


class PodcastMemoryCreate(BaseModel):
    content: str = Field(..., max_length=MAX_MEMORY_LENGTH)

    @field_validator('content')
    @classmethod
    def clean_content(cls, v):
        content = v.strip()
        if not content:
            raise ValueError('Memory cannot be empty')
        return content


class PodcastShareRequest(BaseModel):
    message: Optional[str] = Field(None, max_length=MAX_MEMORY_LENGTH)


class PodcastMemoryResponse(BaseModel):
    id: UUID
    content: str
    podcast_id: UUID
    type: str
    likes: int
    author: Optional[UserSummary] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PodcastMemoryListResponse(BaseModel):
    items: List[PodcastMemoryResponse]
    pagination: PaginationMeta


class AddToPlaylistRequest(BaseModel):
    playlist_id: UUID


# ============================================
# Bookmark Schemas
# ============================================

class BookmarkResponse(BaseModel):
    id: UUID
    type: str
    notes: Optional[str] = None
    video: Optional[VideoResponse] = None
    podcast: Optional[PodcastResponse] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BookmarkListResponse(BaseModel):
    items: List[BookmarkResponse]
    pagination: PaginationMeta


class LikeRecordResponse(BaseModel):
    entity_type: str
    entity_id: UUID
    action: str
    created_at: datetime

    class Config:
        from_attributes = True


class LikeRecordListResponse(BaseModel):
    items: List[LikeRecordResponse]
    pagination: PaginationMeta
