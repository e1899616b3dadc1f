"""Catalog search endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from throwback.database import get_db
from throwback.models.user import User
from throwback.models.video_schemas import VideoListResponse
from throwback.models.playlist_schemas import PlaylistListResponse
from throwback.models.podcast_schemas import PodcastListResponse
from throwback.models.livestream_schemas import LiveStreamResponse, LiveStreamListResponse
from throwback.models.search_schemas import SearchResponse, SuggestionsResponse
from throwback.middleware.auth import get_optional_user
from throwback.services.search_service import SearchService, TYPE_PATTERN
from throwback.routers.videos import to_video_responses
from throwback.routers.playlists import to_playlist_responses
from throwback.routers.podcasts import to_podcast_responses
from throwback.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter()


@router.get("", response_model=SearchResponse)
def search(
    q: str = Query(..., min_length=1, max_length=100),
    type: str = Query("all", pattern=TYPE_PATTERN),
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Search every catalog at once.

    - **q**: Search term
    - **type**: all, videos, playlists, podcasts or livestreams
    - **limit**: Results per catalog

    Only public playlists, published podcasts and public live streams that
    were not cancelled are returned.
    """
    results = SearchService.search(db, q, type, limit)
    return SearchResponse(
        query=results["query"],
        videos=to_video_responses(db, results["videos"], current_user),
        playlists=to_playlist_responses(db, results["playlists"], current_user),
        podcasts=to_podcast_responses(db, results["podcasts"], current_user),
        livestreams=[LiveStreamResponse.model_validate(stream) for stream in results["livestreams"]],
        totals=results["totals"]
    )


@router.get("/suggestions", response_model=SuggestionsResponse)
def suggestions(
    q: str = Query("", max_length=100),
    db: Session = Depends(get_db)
):
    """Up to 10 titles, artists and names starting with `q` (2 characters minimum)."""
    return SuggestionsResponse(query=q.strip(), suggestions=SearchService.suggestions(db, q))


@router.get("/videos", response_model=VideoListResponse)
def search_videos(
    q: str = Query(..., min_length=1, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    videos, meta = SearchService.search_catalog(db, "videos", q, page, limit)
    return VideoListResponse(items=to_video_responses(db, videos, current_user), pagination=meta)


@router.get("/playlists", response_model=PlaylistListResponse)
def search_playlists(
    q: str = Query(..., min_length=1, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    playlists, meta = SearchService.search_catalog(db, "playlists", q, page, limit)
    return PlaylistListResponse(items=to_playlist_responses(db, playlists, current_user), pagination=meta)


@router.get("/podcasts", response_model=PodcastListResponse)
def search_podcasts(
    q: str = Query(..., min_length=1, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    podcasts, meta = SearchService.search_catalog(db, "podcasts", q, page, limit)
    return PodcastListResponse(items=to_podcast_responses(db, podcasts, current_user), pagination=meta)


@router.get("/livestreams", response_model=LiveStreamListResponse)
def search_livestreams(
    q: str = Query(..., min_length=1, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    streams, meta = SearchService.search_catalog(db, "livestreams", q, page, limit)
    return LiveStreamListResponse(
        items=[LiveStreamResponse.model_validate(stream) for stream in streams],
        pagination=meta
    )
