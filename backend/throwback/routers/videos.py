"""Video catalog endpoints (public browsing and admin management)."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from throwback.database import get_db
from throwback.models.user import User
from throwback.models.video import Video, GENRES, DECADES
from throwback.models.activity import ActionType
from throwback.models.enums import VideoType, VideoSort, TrendingPeriod, LikeEntity, LikeAction
from throwback.models.schemas import ToggleResponse, MessageResponse
from throwback.models.video_schemas import (
    VideoCreate,
    VideoUpdate,
    VideoResponse,
    VideoListResponse,
    VideoDetailResponse,
    VideoStats,
    ShareRequest
)
from throwback.middleware.auth import get_current_user, get_current_admin, get_optional_user
from throwback.services.video_service import VideoService
from throwback.services.interaction_service import get_user_reactions, toggle_bookmark, is_bookmarked
from throwback.services.activity_service import log_action
from throwback.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter()
admin_router = APIRouter()


def to_video_responses(db: Session, videos: List[Video], user: Optional[User]) -> List[VideoResponse]:
    """Serialize videos with the caller's like/dislike state."""
    reactions = get_user_reactions(db, LikeEntity.VIDEO, [video.id for video in videos], user.id if user else None)
    return [
        VideoResponse.model_validate(video).model_copy(update={"user_interaction": reactions.get(video.id)})
        for video in videos
    ]


def get_video_or_404(db: Session, video_id: UUID) -> Video:
    video = VideoService.get_video(db, video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    return video


# ============================================
# Public catalog
# ============================================

@router.get("", response_model=VideoListResponse)
def list_videos(
    type: Optional[str] = Query(None, description="short, music, podcast or all"),
    genre: Optional[str] = Query(None),
    decade: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: VideoSort = Query(VideoSort.RECENT),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Browse the catalog.

    - **type** / **genre** / **decade**: Filters ("all" disables a filter)
    - **search**: Matches title, artist, description and tags
    - **sort_by**: recent, popular, mostLiked, oldest or alphabetical
    """
    videos, meta = VideoService.list_videos(db, type, genre, decade, search, sort_by, page, limit)

    return VideoListResponse(
        items=to_video_responses(db, videos, current_user),
        pagination=meta,
        filters=VideoService.available_filters()
    )


@router.get("/trending", response_model=List[VideoResponse])
def trending_videos(
    period: TrendingPeriod = Query(TrendingPeriod.WEEK),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Videos added during the period, ranked by views and likes.

    - **period**: day, week or month
    """
    videos = VideoService.trending(db, period, limit)
    return to_video_responses(db, videos, current_user)


@router.get("/genres", response_model=List[str])
def list_genres():
    """List the catalog genres."""
    return GENRES


@router.get("/search", response_model=VideoListResponse)
def search_videos(
    q: str = Query(..., min_length=1, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    videos, meta = VideoService.list_videos(db, search=q, sort_by=VideoSort.POPULAR, page=page, limit=limit)
    return VideoListResponse(items=to_video_responses(db, videos, current_user), pagination=meta)


@router.get("/genre/{genre}", response_model=VideoListResponse)
def videos_by_genre(
    genre: str,
    sort_by: VideoSort = Query(VideoSort.RECENT),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    if genre not in GENRES:
        raise HTTPException(status_code=404, detail=f"Unknown genre: {genre}")

    videos, meta = VideoService.list_videos(db, genre=genre, sort_by=sort_by, page=page, limit=limit)
    return VideoListResponse(items=to_video_responses(db, videos, current_user), pagination=meta)


@router.get("/decade/{decade}", response_model=VideoListResponse)
def videos_by_decade(
    decade: str,
    sort_by: str = Query("recent", pattern="^(recent|alphabetical|year|popular)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Videos released during a decade.

    - **decade**: 60s, 70s, 80s, 90s, 2000s, 2010s or 2020s
    - **sort_by**: recent, alphabetical, year or popular
    """
    if decade not in DECADES:
        raise HTTPException(status_code=404, detail=f"Unknown decade: {decade}")

    videos, meta = VideoService.by_decade(db, decade, sort_by, page, limit)
    return VideoListResponse(items=to_video_responses(db, videos, current_user), pagination=meta)


@router.get("/{video_id}", response_model=VideoDetailResponse)
def get_video(
    video_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Video detail with related videos.

    Authenticated users count one view per day; anonymous views always count.
    """
    video = get_video_or_404(db, video_id)
    VideoService.record_view(db, video, current_user, request)
    db.refresh(video)

    related = VideoService.related(db, video)

    return VideoDetailResponse(
        video=to_video_responses(db, [video], current_user)[0],
        related=to_video_responses(db, related, current_user),
        bookmarked=is_bookmarked(db, current_user.id if current_user else None, video_id=video.id)
    )


@router.post("/{video_id}/like", response_model=ToggleResponse)
def like_video(
    video_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Like a video. Liking again removes the like; a previous dislike is replaced."""
    video = get_video_or_404(db, video_id)
    result = VideoService.react(db, video, current_user, LikeAction.LIKE, request)
    return ToggleResponse(active=result is not None, action=result, likes=video.likes, dislikes=video.dislikes)


@router.post("/{video_id}/dislike", response_model=ToggleResponse)
def dislike_video(
    video_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Dislike a video. Disliking again removes the dislike; a previous like is replaced."""
    video = get_video_or_404(db, video_id)
    result = VideoService.react(db, video, current_user, LikeAction.DISLIKE, request)
    return ToggleResponse(active=result is not None, action=result, likes=video.likes, dislikes=video.dislikes)


@router.post("/{video_id}/share", response_model=MessageResponse)
def share_video(
    video_id: UUID,
    request: Request,
    payload: Optional[ShareRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    video = get_video_or_404(db, video_id)
    VideoService.share(db, video, current_user, payload.platform if payload else None, request)
    return MessageResponse(message="Video shared")


@router.post("/{video_id}/bookmark", response_model=ToggleResponse)
def bookmark_video(
    video_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Add or remove the video from the caller's bookmarks."""
    video = get_video_or_404(db, video_id)
    bookmarked, _ = toggle_bookmark(db, current_user.id, video_id=video.id)

    if bookmarked:
        log_action(
            db, ActionType.VIDEO_BOOKMARKED, f"Bookmarked video: {video.title}",
            user_id=current_user.id, request=request,
            entity_type=LikeEntity.VIDEO.value, entity_id=video.id
        )

    return ToggleResponse(active=bookmarked)


# ============================================
# Admin management
# ============================================

@admin_router.get("", response_model=VideoListResponse)
def admin_list_videos(
    type: Optional[VideoType] = Query(None),
    genre: Optional[str] = Query(None),
    decade: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: VideoSort = Query(VideoSort.RECENT),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    videos, meta = VideoService.list_videos(
        db, type.value if type else None, genre, decade, search, sort_by, page, limit
    )
    return VideoListResponse(
        items=[VideoResponse.model_validate(video) for video in videos],
        pagination=meta,
        filters=VideoService.available_filters()
    )


@admin_router.get("/stats", response_model=VideoStats)
def admin_video_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Counts per type and decade, totals and the most viewed videos."""
    return VideoService.stats(db)


@admin_router.get("/genres", response_model=List[str])
def admin_list_genres(admin: User = Depends(get_current_admin)):
    return GENRES


@admin_router.post("", response_model=VideoResponse, status_code=201)
def admin_create_video(
    video_data: VideoCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """
    Add a video to the catalog.

    - **title**: Video title
    - **youtube_url**: YouTube watch, embed, shorts or youtu.be URL
    - **type**: short, music or podcast (shorts last 10-45 seconds)
    - **genre**: One of the catalog genres
    - **year**: Release year (defaults to the current year; sets the decade)
    """
    video, error = VideoService.create_video(db, video_data, admin, request)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return video


@admin_router.get("/{video_id}", response_model=VideoResponse)
def admin_get_video(
    video_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    return get_video_or_404(db, video_id)


@admin_router.patch("/{video_id}", response_model=VideoResponse)
def admin_update_video(
    video_id: UUID,
    video_data: VideoUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Update a video. Decade and tags are recomputed."""
    video = get_video_or_404(db, video_id)
    video, error = VideoService.update_video(db, video, video_data, admin, request)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return video


@admin_router.delete("/{video_id}", status_code=204)
def admin_delete_video(
    video_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    video = get_video_or_404(db, video_id)
    VideoService.delete_video(db, video, admin, request)
    return None
