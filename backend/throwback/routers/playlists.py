"""Playlist endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from throwback.database import get_db
from throwback.models.user import User
from throwback.models.playlist import Playlist
from throwback.models.enums import PlaylistVisibility, PlaylistType, LikeEntity
from throwback.models.schemas import ToggleResponse, MessageResponse
from throwback.models.video_schemas import ShareRequest
from throwback.models.playlist_schemas import (
    PlaylistCreate,
    PlaylistUpdate,
    PlaylistResponse,
    PlaylistDetailResponse,
    PlaylistListResponse,
    AddVideoRequest,
    ReorderRequest,
    CollaboratorCreate,
    CollaboratorResponse,
    PlaylistAnalyticsResponse,
    TrendingPlaylistResponse,
    PlaylistStats
)
from throwback.middleware.auth import get_current_user, get_current_admin, get_optional_user
from throwback.services.playlist_service import PlaylistService
from throwback.services.video_service import VideoService
from throwback.services.interaction_service import get_user_reactions
from throwback.utils.pagination import MAX_PAGE_SIZE

router = APIRouter()
admin_router = APIRouter()


def to_playlist_responses(db: Session, playlists: List[Playlist], user: Optional[User]) -> List[PlaylistResponse]:
    reactions = get_user_reactions(db, LikeEntity.PLAYLIST, [playlist.id for playlist in playlists], user.id if user else None)
    return [
        PlaylistResponse.model_validate(playlist).model_copy(update={
            "is_favorited": PlaylistService.is_favorited(db, playlist, user),
            "user_interaction": reactions.get(playlist.id)
        })
        for playlist in playlists
    ]


def to_playlist_detail(db: Session, playlist: Playlist, user: Optional[User]) -> PlaylistDetailResponse:
    reactions = get_user_reactions(db, LikeEntity.PLAYLIST, [playlist.id], user.id if user else None)
    return PlaylistDetailResponse.model_validate(playlist).model_copy(update={
        "is_favorited": PlaylistService.is_favorited(db, playlist, user),
        "user_interaction": reactions.get(playlist.id)
    })


def get_playlist_or_404(db: Session, playlist_id: UUID) -> Playlist:
    playlist = PlaylistService.get_playlist(db, playlist_id)
    if not playlist:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return playlist


# ============================================
# Playlist CRUD
# ============================================

@router.post("", response_model=PlaylistDetailResponse, status_code=201)
def create_playlist(
    playlist_data: PlaylistCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Create a playlist.

    - **name**: Up to 100 characters
    - **visibility**: PUBLIC, PRIVATE or FRIENDS
    - **type**: MANUAL, AUTO_GENRE, AUTO_DECADE or AUTO_ARTIST
    - **auto_genre** / **auto_decade** / **auto_artist**: Criteria of auto playlists
    - **auto_limit**: Maximum number of videos of auto playlists
    """
    playlist = PlaylistService.create(db, playlist_data, current_user, request)
    return to_playlist_detail(db, playlist, current_user)


@router.get("/me", response_model=PlaylistListResponse)
def list_my_playlists(
    include_shared: bool = Query(False, description="Include playlists shared with me"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    playlists, meta = PlaylistService.list_mine(db, current_user, include_shared, page, limit)
    return PlaylistListResponse(items=to_playlist_responses(db, playlists, current_user), pagination=meta)


@router.get("/public", response_model=PlaylistListResponse)
def list_public_playlists(
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    playlists, meta = PlaylistService.public_list(db, search, page, limit)
    return PlaylistListResponse(items=to_playlist_responses(db, playlists, current_user), pagination=meta)


@router.get("/popular", response_model=List[PlaylistResponse])
def popular_playlists(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Public playlists by play count, then favourites."""
    return to_playlist_responses(db, PlaylistService.popular(db, limit), current_user)


@router.get("/trending", response_model=List[TrendingPlaylistResponse])
def trending_playlists(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db)
):
    """Public playlists by trending score (recomputed every few hours)."""
    return [
        TrendingPlaylistResponse.model_validate(playlist).model_copy(update={"trending_score": score})
        for playlist, score in PlaylistService.trending(db, limit)
    ]


@router.get("/{playlist_id}", response_model=PlaylistDetailResponse)
def get_playlist(
    playlist_id: UUID,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Playlist with its items. Private playlists are visible to owner, collaborators and admins."""
    playlist = PlaylistService.get_viewable(db, playlist_id, current_user)
    return to_playlist_detail(db, playlist, current_user)


@router.put("/{playlist_id}", response_model=PlaylistDetailResponse)
def update_playlist(
    playlist_id: UUID,
    playlist_data: PlaylistUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    playlist = get_playlist_or_404(db, playlist_id)
    playlist = PlaylistService.update(db, playlist, playlist_data, current_user, request)
    return to_playlist_detail(db, playlist, current_user)


@router.delete("/{playlist_id}", response_model=MessageResponse)
def delete_playlist(
    playlist_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    playlist = get_playlist_or_404(db, playlist_id)
    PlaylistService.delete(db, playlist, current_user, request)
    return MessageResponse(message="Playlist deleted")


# ============================================
# Items
# ============================================

@router.post("/{playlist_id}/videos", response_model=PlaylistDetailResponse, status_code=201)
def add_video_to_playlist(
    playlist_id: UUID,
    payload: AddVideoRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Append a video to the playlist.

    Allowed for the owner, collaborators with ADD or EDIT permission and admins.
    """
    playlist = get_playlist_or_404(db, playlist_id)
    video = VideoService.get_video(db, payload.video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")

    playlist = PlaylistService.add_video(db, playlist, video, current_user, request)
    return to_playlist_detail(db, playlist, current_user)


@router.delete("/{playlist_id}/videos/{video_id}", response_model=PlaylistDetailResponse)
def remove_video_from_playlist(
    playlist_id: UUID,
    video_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Remove a video (or podcast episode); positions are renumbered."""
    playlist = get_playlist_or_404(db, playlist_id)
    playlist = PlaylistService.remove_item(db, playlist, video_id, current_user, request)
    return to_playlist_detail(db, playlist, current_user)


@router.put("/{playlist_id}/reorder", response_model=PlaylistDetailResponse)
def reorder_playlist(
    playlist_id: UUID,
    payload: ReorderRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Reorder the playlist.

    - **video_ids**: Videos in their new order; unlisted videos keep their relative order after them
    """
    playlist = get_playlist_or_404(db, playlist_id)
    playlist = PlaylistService.reorder(db, playlist, payload.video_ids, current_user, request)
    return to_playlist_detail(db, playlist, current_user)


# ============================================
# Interactions
# ============================================

@router.post("/{playlist_id}/favorite", response_model=ToggleResponse)
def favorite_playlist(
    playlist_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    playlist = PlaylistService.get_viewable(db, playlist_id, current_user)
    favorited = PlaylistService.toggle_favorite(db, playlist, current_user, request)
    return ToggleResponse(active=favorited, count=playlist.favorite_count)


@router.post("/{playlist_id}/like", response_model=ToggleResponse)
def like_playlist(
    playlist_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    playlist = PlaylistService.get_viewable(db, playlist_id, current_user)
    result = PlaylistService.toggle_like(db, playlist, current_user, request)
    return ToggleResponse(active=result is not None, action=result, likes=playlist.likes)


@router.post("/{playlist_id}/share", response_model=MessageResponse)
def share_playlist(
    playlist_id: UUID,
    request: Request,
    payload: Optional[ShareRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    playlist = PlaylistService.get_viewable(db, playlist_id, current_user)
    PlaylistService.share(db, playlist, current_user, payload.platform if payload else None, request)
    return MessageResponse(message="Playlist shared")


@router.post("/{playlist_id}/view", response_model=ToggleResponse)
def view_playlist(
    playlist_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Count a play of the playlist. Anonymous plays are counted too."""
    playlist = PlaylistService.get_viewable(db, playlist_id, current_user)
    play_count = PlaylistService.record_view(db, playlist, current_user, request)
    return ToggleResponse(active=True, count=play_count)


@router.get("/{playlist_id}/analytics", response_model=PlaylistAnalyticsResponse)
def playlist_analytics(
    playlist_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    playlist = get_playlist_or_404(db, playlist_id)
    if playlist.owner_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Only the owner can see playlist analytics")
    if not playlist.analytics:
        raise HTTPException(status_code=404, detail="No analytics recorded yet")
    return playlist.analytics


# ============================================
# Collaborators
# ============================================

@router.post("/{playlist_id}/collaborators", response_model=CollaboratorResponse, status_code=201)
def add_collaborator(
    playlist_id: UUID,
    payload: CollaboratorCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Invite a collaborator or change their permission.

    - **permission**: READ, ADD or EDIT
    """
    playlist = get_playlist_or_404(db, playlist_id)
    return PlaylistService.add_collaborator(db, playlist, payload.user_id, payload.permission, current_user, request)


@router.delete("/{playlist_id}/collaborators/{user_id}", response_model=MessageResponse)
def remove_collaborator(
    playlist_id: UUID,
    user_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    playlist = get_playlist_or_404(db, playlist_id)
    PlaylistService.remove_collaborator(db, playlist, user_id, current_user, request)
    return MessageResponse(message="Collaborator removed")


# ============================================
# Admin
# ============================================

@admin_router.get("", response_model=PlaylistListResponse)
def admin_list_playlists(
    visibility: Optional[PlaylistVisibility] = Query(None),
    type: Optional[PlaylistType] = Query(None),
    owner_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    playlists, meta = PlaylistService.admin_list(db, visibility, type, owner_id, search, page, limit)
    return PlaylistListResponse(items=[PlaylistResponse.model_validate(p) for p in playlists], pagination=meta)


@admin_router.get("/stats", response_model=PlaylistStats)
def admin_playlist_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    return PlaylistService.stats(db)


@admin_router.put("/{playlist_id}", response_model=PlaylistDetailResponse)
def admin_update_playlist(
    playlist_id: UUID,
    playlist_data: PlaylistUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    playlist = get_playlist_or_404(db, playlist_id)
    return PlaylistService.update(db, playlist, playlist_data, admin, request)


@admin_router.delete("/{playlist_id}", response_model=MessageResponse)
def admin_delete_playlist(
    playlist_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    playlist = get_playlist_or_404(db, playlist_id)
    PlaylistService.delete(db, playlist, admin, request)
    return MessageResponse(message="Playlist deleted")


@admin_router.post("/{playlist_id}/collaborators", response_model=CollaboratorResponse, status_code=201)
def admin_add_collaborator(
    playlist_id: UUID,
    payload: CollaboratorCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    playlist = get_playlist_or_404(db, playlist_id)
    return PlaylistService.add_collaborator(db, playlist, payload.user_id, payload.permission, admin, request)


@admin_router.delete("/{playlist_id}/collaborators/{user_id}", response_model=MessageResponse)
def admin_remove_collaborator(
    playlist_id: UUID,
    user_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    playlist = get_playlist_or_404(db, playlist_id)
    PlaylistService.remove_collaborator(db, playlist, user_id, admin, request)
    return MessageResponse(message="Collaborator removed")
