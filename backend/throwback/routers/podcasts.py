"""Podcast endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from uuid import UUID

from throwback.database import get_db
from throwback.models.user import User
from throwback.models.podcast import Podcast
from throwback.models.enums import PodcastCategory
from throwback.models.schemas import ToggleResponse, MessageResponse
from throwback.models.podcast_schemas import (
    PodcastCreate,
    PodcastUpdate,
    PodcastResponse,
    PodcastListResponse,
    PodcastStats,
    SeasonSummary,
    PodcastMemoryCreate,
    PodcastShareRequest,
    PodcastMemoryResponse,
    PodcastMemoryListResponse,
    AddToPlaylistRequest
)
from throwback.models.playlist_schemas import PlaylistDetailResponse
from throwback.middleware.auth import get_current_user, get_current_admin, get_optional_user
from throwback.services.podcast_service import PodcastService, SORT_PATTERN
from throwback.utils.pagination import MAX_PAGE_SIZE

router = APIRouter()


def to_podcast_responses(db: Session, podcasts: List[Podcast], user: Optional[User]) -> List[PodcastResponse]:
    flags = PodcastService.user_flags(db, podcasts, user)
    return [
        PodcastResponse.model_validate(podcast).model_copy(update=flags.get(podcast.id, {}))
        for podcast in podcasts
    ]


def get_podcast_or_404(db: Session, podcast_id: UUID, include_unpublished: bool = False) -> Podcast:
    podcast = PodcastService.get_podcast(db, podcast_id, include_unpublished)
    if not podcast:
        raise HTTPException(status_code=404, detail="Podcast not found")
    return podcast


# ============================================
# Public browsing
# ============================================

@router.get("", response_model=PodcastListResponse)
def list_podcasts(
    category: Optional[str] = Query(None),
    season: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("recent", pattern=SORT_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Published episodes.

    - **category**: Podcast category ("all" disables the filter)
    - **season**: Season number
    - **search**: Matches title, description, guest and topics
    - **sort_by**: recent, oldest, popular or episode
    """
    podcasts, meta = PodcastService.list_published(db, category, season, search, sort_by, page, limit)
    return PodcastListResponse(items=to_podcast_responses(db, podcasts, current_user), pagination=meta)


@router.get("/popular", response_model=List[PodcastResponse])
def popular_podcasts(
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    return to_podcast_responses(db, PodcastService.popular(db, limit), current_user)


@router.get("/seasons", response_model=List[SeasonSummary])
def list_seasons(db: Session = Depends(get_db)):
    """Seasons with their number of published episodes."""
    return PodcastService.seasons(db)


@router.get("/categories", response_model=Dict[str, int])
def list_categories(db: Session = Depends(get_db)):
    """Categories with their number of published episodes."""
    return PodcastService.categories(db)


@router.get("/category/{category}", response_model=PodcastListResponse)
def podcasts_by_category(
    category: PodcastCategory,
    sort_by: str = Query("recent", pattern=SORT_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    podcasts, meta = PodcastService.list_published(db, category=category.value, sort_by=sort_by, page=page, limit=limit)
    return PodcastListResponse(items=to_podcast_responses(db, podcasts, current_user), pagination=meta)


@router.get("/season/{season}", response_model=PodcastListResponse)
def podcasts_by_season(
    season: int,
    sort_by: str = Query("episode", pattern=SORT_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    podcasts, meta = PodcastService.list_published(db, season=season, sort_by=sort_by, page=page, limit=limit)
    return PodcastListResponse(items=to_podcast_responses(db, podcasts, current_user), pagination=meta)


# ============================================
# Admin management
# ============================================

@router.get("/admin/all", response_model=PodcastListResponse)
def admin_list_podcasts(
    category: Optional[PodcastCategory] = Query(None),
    is_published: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Every episode, unpublished included."""
    podcasts, meta = PodcastService.admin_list(
        db, category.value if category else None, is_published, search, page, limit
    )
    return PodcastListResponse(items=[PodcastResponse.model_validate(p) for p in podcasts], pagination=meta)


@router.get("/admin/stats", response_model=PodcastStats)
def admin_podcast_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    return PodcastService.stats(db)


@router.post("", response_model=PodcastResponse, status_code=201)
def create_podcast(
    podcast_data: PodcastCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """
    Publish a podcast episode.

    - **title**: Episode title
    - **episode** / **season**: Numbering (season defaults to 1)
    - **vimeo_url**: vimeo.com or player.vimeo.com URL
    - **category**: One of the podcast categories
    """
    return PodcastService.create(db, podcast_data, admin, request)


@router.put("/{podcast_id}", response_model=PodcastResponse)
def update_podcast(
    podcast_id: UUID,
    podcast_data: PodcastUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    podcast = get_podcast_or_404(db, podcast_id, include_unpublished=True)
    return PodcastService.update(db, podcast, podcast_data, admin, request)


@router.delete("/{podcast_id}", response_model=MessageResponse)
def delete_podcast(
    podcast_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    podcast = get_podcast_or_404(db, podcast_id, include_unpublished=True)
    PodcastService.delete(db, podcast, admin, request)
    return MessageResponse(message="Podcast deleted")


# ============================================
# Episode detail and interactions
# ============================================

@router.get("/{podcast_id}", response_model=PodcastResponse)
def get_podcast(
    podcast_id: UUID,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Published episode detail. Every call counts a view."""
    podcast = get_podcast_or_404(db, podcast_id)
    PodcastService.record_view(db, podcast)
    return to_podcast_responses(db, [podcast], current_user)[0]


@router.get("/{podcast_id}/memories", response_model=PodcastMemoryListResponse)
def list_podcast_memories(
    podcast_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    podcast = get_podcast_or_404(db, podcast_id)
    memories, meta = PodcastService.list_memories(db, podcast, page, limit)
    return PodcastMemoryListResponse(items=memories, pagination=meta)


@router.post("/{podcast_id}/memories", response_model=PodcastMemoryResponse, status_code=201)
def add_podcast_memory(
    podcast_id: UUID,
    memory_data: PodcastMemoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Share a memory about an episode.

    - **content**: 1-500 characters
    """
    podcast = get_podcast_or_404(db, podcast_id)
    return PodcastService.add_memory(db, podcast, current_user, memory_data.content, request=request)


@router.post("/{podcast_id}/like", response_model=ToggleResponse)
def like_podcast(
    podcast_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Like an episode. Liking again removes the like."""
    podcast = get_podcast_or_404(db, podcast_id)
    liked = PodcastService.toggle_like(db, podcast, current_user, request)
    return ToggleResponse(active=liked, likes=podcast.like_count)


@router.post("/{podcast_id}/bookmark", response_model=ToggleResponse)
def bookmark_podcast(
    podcast_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    podcast = get_podcast_or_404(db, podcast_id)
    bookmarked = PodcastService.toggle_bookmark(db, podcast, current_user, request=request)
    return ToggleResponse(active=bookmarked)


@router.post("/{podcast_id}/share", response_model=PodcastMemoryResponse, status_code=201)
def share_podcast(
    podcast_id: UUID,
    request: Request,
    payload: Optional[PodcastShareRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Share an episode with an optional message.

    The share is listed among the episode memories with type "shared".
    """
    podcast = get_podcast_or_404(db, podcast_id)
    return PodcastService.share(db, podcast, current_user, payload.message if payload else None, request)


@router.post("/{podcast_id}/playlist", response_model=PlaylistDetailResponse)
def add_podcast_to_playlist(
    podcast_id: UUID,
    payload: AddToPlaylistRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Append the episode to one of the caller's playlists."""
    podcast = get_podcast_or_404(db, podcast_id)
    return PodcastService.add_to_playlist(db, podcast, payload.playlist_id, current_user, request)
