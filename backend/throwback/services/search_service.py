"""Search across the video, playlist, podcast and live stream catalogs."""

from sqlalchemy.orm import Session, Query
from sqlalchemy import or_, cast, String
from typing import Any, Dict, List, Optional, Tuple

from throwback.models.video import Video
from throwback.models.playlist import Playlist
from throwback.models.podcast import Podcast
from throwback.models.livestream import LiveStream
from throwback.models.enums import PlaylistVisibility, StreamStatus
from throwback.services.errors import ServiceError
from throwback.services.video_service import apply_search
from throwback.utils.pagination import paginate

CATALOGS = ("videos", "playlists", "podcasts", "livestreams")
TYPE_PATTERN = "^(all|videos|playlists|podcasts|livestreams)$"
MIN_SUGGESTION_LENGTH = 2
MAX_SUGGESTIONS = 10


def _clean(q: Optional[str]) -> str:
    term = (q or "").strip()
    if not term:
        raise ServiceError("Search query cannot be empty")
    return term


def video_query(db: Session, term: str) -> Query:
    return apply_search(db.query(Video), term).order_by(Video.views.desc(), Video.created_at.desc())


def playlist_query(db: Session, term: str) -> Query:
    pattern = f"%{term}%"
    return db.query(Playlist).filter(
        Playlist.visibility == PlaylistVisibility.PUBLIC.value,
        or_(
            Playlist.name.ilike(pattern),
            Playlist.description.ilike(pattern),
            cast(Playlist.tags, String).ilike(pattern)
        )
    ).order_by(Playlist.play_count.desc(), Playlist.created_at.desc())


def podcast_query(db: Session, term: str) -> Query:
    pattern = f"%{term}%"
    return db.query(Podcast).filter(
        Podcast.is_published.is_(True),
        or_(
            Podcast.title.ilike(pattern),
            Podcast.description.ilike(pattern),
            Podcast.guest_name.ilike(pattern),
            Podcast.host_name.ilike(pattern),
            cast(Podcast.topics, String).ilike(pattern)
        )
    ).order_by(Podcast.publish_date.desc())


def livestream_query(db: Session, term: str) -> Query:
    pattern = f"%{term}%"
    return db.query(LiveStream).filter(
        LiveStream.is_public.is_(True),
        LiveStream.status != StreamStatus.CANCELLED.value,
        or_(
            LiveStream.title.ilike(pattern),
            LiveStream.description.ilike(pattern),
            LiveStream.host_name.ilike(pattern),
            cast(LiveStream.tags, String).ilike(pattern)
        )
    ).order_by(LiveStream.scheduled_start.desc())


QUERIES = {
    "videos": video_query,
    "playlists": playlist_query,
    "podcasts": podcast_query,
    "livestreams": livestream_query,
}


class SearchService:
    """Service for catalog search."""

    @staticmethod
    def search(db: Session, q: str, catalog: str = "all", limit: int = 5) -> Dict[str, Any]:
        """
        Search one catalog or all of them.

        Args:
            db: Database session
            q: Search term, matched case-insensitively anywhere in the text fields
            catalog: "all" or one of CATALOGS
            limit: Maximum results returned per catalog

        Returns:
            Dict with the results per catalog and their totals
        """
        term = _clean(q)
        selected = CATALOGS if catalog == "all" else (catalog,)

        results: Dict[str, Any] = {"query": term, "totals": {}}
        for name in CATALOGS:
            if name not in selected:
                results[name] = []
                results["totals"][name] = 0
                continue
            query = QUERIES[name](db, term)
            results["totals"][name] = query.order_by(None).count()
            results[name] = query.limit(limit).all()
        return results

    @staticmethod
    def search_catalog(
        db: Session,
        catalog: str,
        q: str,
        page: int = 1,
        limit: int = 12
    ) -> Tuple[List[Any], Dict[str, Any]]:
        return paginate(QUERIES[catalog](db, _clean(q)), page, limit)

    @staticmethod
    def suggestions(db: Session, q: str, limit: int = MAX_SUGGESTIONS) -> List[str]:
        """
        Distinct titles, artists and names starting with `q`.

        Terms shorter than two characters return nothing.
        """
        term = (q or "").strip()
        if len(term) < MIN_SUGGESTION_LENGTH:
            return []

        pattern = f"{term}%"
        columns = (
            (Video.title, None),
            (Video.artist, None),
            (Playlist.name, Playlist.visibility == PlaylistVisibility.PUBLIC.value),
            (Podcast.title, Podcast.is_published.is_(True)),
            (LiveStream.title, LiveStream.is_public.is_(True)),
        )

        suggestions: List[str] = []
        seen = set()
        for column, visible in columns:
            query = db.query(column).filter(column.ilike(pattern))
            if visible is not None:
                query = query.filter(visible)
            for (value,) in query.distinct().order_by(column).limit(limit).all():
                key = value.lower()
                if key not in seen:
                    seen.add(key)
                    suggestions.append(value)
                if len(suggestions) >= limit:
                    return suggestions
        return suggestions
