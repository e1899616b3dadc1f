"""Pydantic schemas for playlists."""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime
from uuid import UUID

from throwback.models.enums import PlaylistVisibility, PlaylistType, CollaboratorPermission
from throwback.models.schemas import PaginationMeta, UserSummary
from throwback.models.video_schemas import VideoResponse
from throwback.models.podcast_schemas import PodcastResponse


class PlaylistCreate(BaseModel):
    """
    Schema for creating a playlist.

    Auto playlists are filled from the catalog with their criteria.
    """
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    visibility: PlaylistVisibility = PlaylistVisibility.PUBLIC
    cover_image: Optional[str] = Field(None, max_length=500)
    tags: List[str] = Field(default=[], max_length=20)
    type: PlaylistType = PlaylistType.MANUAL
    auto_genre: Optional[str] = Field(None, max_length=30)
    auto_decade: Optional[str] = Field(None, max_length=10)
    auto_artist: Optional[str] = Field(None, max_length=255)
    auto_limit: int = Field(default=50, ge=1, le=200)

    @field_validator('name')
    @classmethod
    def clean_name(cls, v):
        name = v.strip()
        if not name:
            raise ValueError('Playlist name cannot be empty')
        return name

    @field_validator('tags')
    @classmethod
    def clean_tags(cls, v):
        return list(dict.fromkeys(tag.strip().lower() for tag in v if tag and tag.strip()))


class PlaylistUpdate(BaseModel):
    """Schema for updating a playlist. Omitted fields are unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    visibility: Optional[PlaylistVisibility] = None
    cover_image: Optional[str] = Field(None, max_length=500)
    tags: Optional[List[str]] = Field(None, max_length=20)
    auto_genre: Optional[str] = Field(None, max_length=30)
    auto_decade: Optional[str] = Field(None, max_length=10)
    auto_artist: Optional[str] = Field(None, max_length=255)
    auto_limit: Optional[int] = Field(None, ge=1, le=200)


class PlaylistItemResponse(BaseModel):
    id: UUID
    position: int
    added_at: datetime
    added_by: Optional[UUID] = None
    video: Optional[VideoResponse] = None
    podcast: Optional[PodcastResponse] = None

    class Config:
        from_attributes = True


class CollaboratorResponse(BaseModel):
    user: UserSummary
    permission: str
    added_at: datetime

    class Config:
        from_attributes = True


class PlaylistResponse(BaseModel):
    """Schema for playlist response."""
    id: UUID
    name: str
    description: Optional[str] = None
    owner: Optional[UserSummary] = None
    visibility: str
    cover_image: Optional[str] = None
    play_count: int
    favorite_count: int
    likes: int
    tags: List[str] = []
    type: str
    auto_genre: Optional[str] = None
    auto_decade: Optional[str] = None
    auto_artist: Optional[str] = None
    auto_limit: int
    video_count: int
    total_duration: int
    created_at: datetime
    updated_at: datetime
    is_favorited: bool = False
    user_interaction: Optional[str] = None

    class Config:
        from_attributes = True


class PlaylistDetailResponse(PlaylistResponse):
    items: List[PlaylistItemResponse] = []
    collaborators: List[CollaboratorResponse] = []


class PlaylistListResponse(BaseModel):
    items: List[PlaylistResponse]
    pagination: PaginationMeta


class AddVideoRequest(BaseModel):
    video_id: UUID


class ReorderRequest(BaseModel):
    """Ids of videos (or podcast episodes) in their new order."""
    video_ids: List[UUID] = Field(..., min_length=1)


class CollaboratorCreate(BaseModel):
    user_id: UUID
    permission: CollaboratorPermission = CollaboratorPermission.READ


class PlaylistAnalyticsResponse(BaseModel):
    views_total: int
    views_daily: int
    views_weekly: int
    views_monthly: int
    unique_viewers_total: int
    unique_viewers_daily: int
    unique_viewers_weekly: int
    unique_viewers_monthly: int
    favorites_total: int
    favorites_daily: int
    favorites_weekly: int
    favorites_monthly: int
    trending_score: float
    last_updated: datetime

    class Config:
        from_attributes = True


class TrendingPlaylistResponse(PlaylistResponse):
    trending_score: float = 0.0


class PlaylistStats(BaseModel):
    total: int
    total_plays: int
    total_favorites: int
    by_visibility: Dict[str, int]
    by_type: Dict[str, int]
    most_played: List[PlaylistResponse]
