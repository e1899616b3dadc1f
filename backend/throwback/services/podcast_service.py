"""Podcast episodes: browsing, interactions, memories and admin operations."""

from sqlalchemy.orm import Session
from sqlalchemy import func, or_, cast, String
from fastapi import Request
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from throwback.models.user import User
from throwback.models.podcast import Podcast, DEFAULT_HOST
from throwback.models.comment import PodcastMemory
from throwback.models.playlist import Playlist
from throwback.models.interaction import Bookmark
from throwback.models.activity import ActionType
from throwback.models.enums import LikeEntity, LikeAction, MemoryType
from throwback.models.podcast_schemas import PodcastCreate, PodcastUpdate
from throwback.services.activity_service import log_action
from throwback.services.errors import NotFoundError
from throwback.services.interaction_service import toggle_reaction, toggle_bookmark, get_user_reactions
from throwback.services.playlist_service import PlaylistService, remove_content_everywhere
from throwback.services.redis_service import invalidate_catalog_cache
from throwback.utils.pagination import paginate

SORT_ORDERS = {
    "recent": (Podcast.publish_date.desc(),),
    "oldest": (Podcast.publish_date.asc(),),
    "popular": (Podcast.view_count.desc(), Podcast.like_count.desc()),
    "episode": (Podcast.season.asc(), Podcast.episode.asc()),
}
SORT_PATTERN = "^(" + "|".join(SORT_ORDERS) + ")$"

DEFAULT_SHARE_MESSAGE = "Shared this episode"


def published(db: Session):
    return db.query(Podcast).filter(Podcast.is_published.is_(True))


def apply_search(query, search: Optional[str]):
    """Filter on title, description, guest and topics."""
    if not search or not search.strip():
        return query
    pattern = f"%{search.strip()}%"
    return query.filter(or_(
        Podcast.title.ilike(pattern),
        Podcast.description.ilike(pattern),
        Podcast.guest_name.ilike(pattern),
        cast(Podcast.topics, String).ilike(pattern)
    ))


class PodcastService:
    """Service for podcast episodes."""

    @staticmethod
    def get_podcast(db: Session, podcast_id: UUID, include_unpublished: bool = False) -> Optional[Podcast]:
        query = db.query(Podcast) if include_unpublished else published(db)
        return query.filter(Podcast.id == podcast_id).first()

    @staticmethod
    def list_published(
        db: Session,
        category: Optional[str] = None,
        season: Optional[int] = None,
        search: Optional[str] = None,
        sort_by: str = "recent",
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[Podcast], Dict[str, Any]]:
        """
        List published episodes with filters, sorting and pagination.

        Returns:
            Tuple of (podcasts, pagination)
        """
        query = published(db)
        if category and category != "all":
            query = query.filter(Podcast.category == category)
        if season is not None:
            query = query.filter(Podcast.season == season)

        query = apply_search(query, search)
        return paginate(query.order_by(*SORT_ORDERS[sort_by]), page, limit)

    @staticmethod
    def popular(db: Session, limit: int = 10) -> List[Podcast]:
        return published(db).order_by(
            Podcast.view_count.desc(), Podcast.like_count.desc()
        ).limit(limit).all()

    @staticmethod
    def seasons(db: Session) -> List[Dict[str, int]]:
        rows = db.query(Podcast.season, func.count(Podcast.id)).filter(
            Podcast.is_published.is_(True)
        ).group_by(Podcast.season).order_by(Podcast.season.asc()).all()
        return [{"season": season, "episodes": count} for season, count in rows]

    @staticmethod
    def categories(db: Session) -> Dict[str, int]:
        rows = db.query(Podcast.category, func.count(Podcast.id)).filter(
            Podcast.is_published.is_(True)
        ).group_by(Podcast.category).order_by(Podcast.category.asc()).all()
        return dict(rows)

    @staticmethod
    def record_view(db: Session, podcast: Podcast) -> int:
        podcast.view_count = (podcast.view_count or 0) + 1
        db.commit()
        return podcast.view_count

    @staticmethod
    def user_flags(db: Session, podcasts: List[Podcast], user: Optional[User]) -> Dict[UUID, Dict[str, bool]]:
        """Map podcast id to the caller's liked/bookmarked state."""
        if user is None or not podcasts:
            return {}
        ids = [podcast.id for podcast in podcasts]
        liked = get_user_reactions(db, LikeEntity.PODCAST, ids, user.id)
        bookmarked = {
            row[0] for row in db.query(Bookmark.podcast_id).filter(
                Bookmark.user_id == user.id,
                Bookmark.podcast_id.in_(ids)
            ).all()
        }
        return {
            podcast_id: {"liked": podcast_id in liked, "bookmarked": podcast_id in bookmarked}
            for podcast_id in ids
        }

    # ============================================
    # Interactions
    # ============================================

    @staticmethod
    def toggle_like(db: Session, podcast: Podcast, user: User, request: Optional[Request] = None) -> bool:
        result = toggle_reaction(
            db, podcast, LikeEntity.PODCAST, user.id, LikeAction.LIKE,
            likes_attr="like_count", dislikes_attr=None
        )
        db.commit()

        if result:
            log_action(
                db, ActionType.PODCAST_LIKED, f"Liked podcast {podcast.formatted_episode}: {podcast.title}",
                user_id=user.id, request=request,
                entity_type=LikeEntity.PODCAST.value, entity_id=podcast.id
            )
        return result is not None

    @staticmethod
    def toggle_bookmark(
        db: Session,
        podcast: Podcast,
        user: User,
        notes: Optional[str] = None,
        request: Optional[Request] = None
    ) -> bool:
        bookmarked, _ = toggle_bookmark(db, user.id, podcast_id=podcast.id, notes=notes)
        if bookmarked:
            log_action(
                db, ActionType.PODCAST_BOOKMARKED, f"Bookmarked podcast {podcast.formatted_episode}",
                user_id=user.id, request=request,
                entity_type=LikeEntity.PODCAST.value, entity_id=podcast.id
            )
        return bookmarked

    @staticmethod
    def list_memories(db: Session, podcast: Podcast, page: int = 1, limit: int = 20) -> Tuple[List[PodcastMemory], Dict[str, Any]]:
        query = db.query(PodcastMemory).filter(
            PodcastMemory.podcast_id == podcast.id
        ).order_by(PodcastMemory.created_at.desc())
        return paginate(query, page, limit)

    @staticmethod
    def add_memory(
        db: Session,
        podcast: Podcast,
        author: User,
        content: str,
        memory_type: MemoryType = MemoryType.POSTED,
        request: Optional[Request] = None
    ) -> PodcastMemory:
        memory = PodcastMemory(
            content=content,
            podcast_id=podcast.id,
            author_id=author.id,
            type=memory_type.value
        )
        db.add(memory)
        podcast.comment_count = (podcast.comment_count or 0) + 1
        db.commit()
        db.refresh(memory)

        log_action(
            db, ActionType.PODCAST_MEMORY_ADDED, f"Memory on podcast {podcast.formatted_episode}",
            user_id=author.id, request=request,
            entity_type=LikeEntity.PODCAST.value, entity_id=podcast.id,
            extra_data={"memory_id": str(memory.id), "type": memory_type.value}
        )
        return memory

    @staticmethod
    def share(
        db: Session,
        podcast: Podcast,
        user: User,
        message: Optional[str] = None,
        request: Optional[Request] = None
    ) -> PodcastMemory:
        """Share an episode: the share shows up as a `shared` memory."""
        memory = PodcastService.add_memory(
            db, podcast, user, (message or "").strip() or DEFAULT_SHARE_MESSAGE,
            memory_type=MemoryType.SHARED, request=request
        )
        log_action(
            db, ActionType.PODCAST_SHARED, f"Shared podcast {podcast.formatted_episode}: {podcast.title}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.PODCAST.value, entity_id=podcast.id
        )
        return memory

    @staticmethod
    def add_to_playlist(
        db: Session,
        podcast: Podcast,
        playlist_id: UUID,
        user: User,
        request: Optional[Request] = None
    ) -> Playlist:
        playlist = PlaylistService.get_playlist(db, playlist_id)
        if not playlist:
            raise NotFoundError("Playlist not found")
        return PlaylistService.add_podcast(db, playlist, podcast, user, request)

    # ============================================
    # Admin operations
    # ============================================

    @staticmethod
    def admin_list(
        db: Session,
        category: Optional[str] = None,
        is_published: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Podcast], Dict[str, Any]]:
        query = db.query(Podcast)
        if category:
            query = query.filter(Podcast.category == category)
        if is_published is not None:
            query = query.filter(Podcast.is_published.is_(is_published))
        query = apply_search(query, search)
        return paginate(query.order_by(Podcast.season.desc(), Podcast.episode.desc()), page, limit)

    @staticmethod
    def create(db: Session, data: PodcastCreate, author: User, request: Optional[Request] = None) -> Podcast:
        values = data.model_dump(exclude_none=True)
        values["category"] = data.category.value
        values.setdefault("host_name", DEFAULT_HOST)

        podcast = Podcast(author_id=author.id, **values)
        db.add(podcast)
        db.commit()
        db.refresh(podcast)

        invalidate_catalog_cache()
        log_action(
            db, ActionType.CREATE_PODCAST, f"Created podcast {podcast.formatted_episode}: {podcast.title}",
            user_id=author.id, request=request,
            entity_type=LikeEntity.PODCAST.value, entity_id=podcast.id
        )
        return podcast

    @staticmethod
    def update(db: Session, podcast: Podcast, data: PodcastUpdate, admin: User, request: Optional[Request] = None) -> Podcast:
        changes = data.model_dump(exclude_unset=True)
        # Columns without a usable null are left untouched
        for field in ("title", "episode", "season", "vimeo_url", "duration", "host_name",
                      "publish_date", "topics", "category", "is_published", "is_highlighted"):
            if field in changes and changes[field] is None:
                changes.pop(field)
        if "category" in changes:
            changes["category"] = changes["category"].value

        for field, value in changes.items():
            setattr(podcast, field, value)

        db.commit()
        db.refresh(podcast)

        invalidate_catalog_cache()
        log_action(
            db, ActionType.UPDATE_PODCAST, f"Updated podcast {podcast.formatted_episode}: {podcast.title}",
            user_id=admin.id, request=request,
            entity_type=LikeEntity.PODCAST.value, entity_id=podcast.id,
            extra_data={"fields": sorted(changes)}
        )
        return podcast

    @staticmethod
    def delete(db: Session, podcast: Podcast, admin: User, request: Optional[Request] = None):
        title, podcast_id = podcast.title, podcast.id
        db.query(PodcastMemory).filter(PodcastMemory.podcast_id == podcast_id).delete(synchronize_session=False)
        db.query(Bookmark).filter(Bookmark.podcast_id == podcast_id).delete(synchronize_session=False)
        remove_content_everywhere(db, podcast_id=podcast_id)
        db.delete(podcast)
        db.commit()

        invalidate_catalog_cache()
        log_action(
            db, ActionType.DELETE_PODCAST, f"Deleted podcast: {title}",
            user_id=admin.id, request=request,
            entity_type=LikeEntity.PODCAST.value, entity_id=podcast_id
        )

    @staticmethod
    def stats(db: Session, top: int = 5) -> Dict[str, Any]:
        totals = db.query(
            func.count(Podcast.id),
            func.coalesce(func.sum(Podcast.view_count), 0),
            func.coalesce(func.sum(Podcast.like_count), 0)
        ).one()
        return {
            "total": totals[0],
            "published": db.query(func.count(Podcast.id)).filter(Podcast.is_published.is_(True)).scalar(),
            "highlighted": db.query(func.count(Podcast.id)).filter(Podcast.is_highlighted.is_(True)).scalar(),
            "total_views": int(totals[1]),
            "total_likes": int(totals[2]),
            "by_category": dict(db.query(Podcast.category, func.count(Podcast.id)).group_by(Podcast.category).all()),
            "by_season": dict(db.query(Podcast.season, func.count(Podcast.id)).group_by(Podcast.season).all()),
            "most_viewed": db.query(Podcast).order_by(Podcast.view_count.desc()).limit(top).all(),
        }
