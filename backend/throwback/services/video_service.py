"""Video catalog queries, interactions and admin operations."""

from sqlalchemy.orm import Session
from sqlalchemy import func, or_, cast, String
from fastapi import Request
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from throwback.models.user import User
from throwback.models.video import Video, GENRES, DECADES, SHORT_MIN_DURATION, SHORT_MAX_DURATION
from throwback.models.activity import ActionType
from throwback.models.enums import VideoType, VideoSort, TrendingPeriod, LikeEntity, LikeAction
from throwback.models.video_schemas import VideoCreate, VideoUpdate
from throwback.services.activity_service import log_action, has_logged_since
from throwback.services.interaction_service import toggle_reaction
from throwback.services.playlist_service import remove_content_everywhere
from throwback.services.redis_service import invalidate_catalog_cache
from throwback.utils.pagination import paginate, DEFAULT_PAGE_SIZE

RELATED_LIMIT = 6

TRENDING_PERIODS = {
    TrendingPeriod.DAY: timedelta(days=1),
    TrendingPeriod.WEEK: timedelta(weeks=1),
    TrendingPeriod.MONTH: timedelta(days=30),
}

SORT_ORDERS = {
    VideoSort.RECENT: (Video.created_at.desc(),),
    VideoSort.POPULAR: (Video.views.desc(), Video.created_at.desc()),
    VideoSort.MOST_LIKED: (Video.likes.desc(), Video.created_at.desc()),
    VideoSort.OLDEST: (Video.created_at.asc(),),
    VideoSort.ALPHABETICAL: (Video.title.asc(),),
}


def trending_score():
    """SQL expression ranking videos by views and likes."""
    return Video.views + 2 * Video.likes + 1.5 * (Video.likes - Video.dislikes)


def apply_search(query, search: Optional[str]):
    """Filter on title, artist, description and tags."""
    if not search or not search.strip():
        return query
    pattern = f"%{search.strip()}%"
    return query.filter(or_(
        Video.title.ilike(pattern),
        Video.artist.ilike(pattern),
        Video.description.ilike(pattern),
        cast(Video.tags, String).ilike(pattern)
    ))


def _is_set(value: Optional[str]) -> bool:
    return bool(value) and value != "all"


def check_short_duration(video_type: str, duration: Optional[int]) -> Optional[str]:
    """Shorts must last between SHORT_MIN_DURATION and SHORT_MAX_DURATION seconds."""
    if video_type != VideoType.SHORT.value:
        return None
    if duration is None or not SHORT_MIN_DURATION <= duration <= SHORT_MAX_DURATION:
        return f"Shorts must be between {SHORT_MIN_DURATION} and {SHORT_MAX_DURATION} seconds long"
    return None


class VideoService:
    """Service for the video catalog."""

    @staticmethod
    def list_videos(
        db: Session,
        video_type: Optional[str] = None,
        genre: Optional[str] = None,
        decade: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: VideoSort = VideoSort.RECENT,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[List[Video], Dict[str, Any]]:
        """
        List catalog videos with filters, sorting and pagination.

        Filters whose value is empty or "all" are ignored.

        Returns:
            Tuple of (videos, pagination)
        """
        query = db.query(Video)

        if _is_set(video_type):
            query = query.filter(Video.type == video_type)
        if _is_set(genre):
            query = query.filter(Video.genre == genre)
        if _is_set(decade):
            query = query.filter(Video.decade == decade)

        query = apply_search(query, search)
        query = query.order_by(*SORT_ORDERS[sort_by])

        return paginate(query, page, limit)

    @staticmethod
    def available_filters() -> Dict[str, List[str]]:
        return {
            "types": [video_type.value for video_type in VideoType],
            "genres": list(GENRES),
            "decades": list(DECADES),
            "sorts": [sort.value for sort in VideoSort],
        }

    @staticmethod
    def trending(db: Session, period: TrendingPeriod = TrendingPeriod.WEEK, limit: int = 10) -> List[Video]:
        since = datetime.utcnow() - TRENDING_PERIODS[period]
        return db.query(Video).filter(
            Video.created_at >= since
        ).order_by(
            trending_score().desc(), Video.created_at.desc()
        ).limit(limit).all()

    @staticmethod
    def by_decade(
        db: Session,
        decade: str,
        sort_by: str = "recent",
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[List[Video], Dict[str, Any]]:
        orders = {
            "recent": (Video.created_at.desc(),),
            "alphabetical": (Video.title.asc(),),
            "year": (Video.year.asc(), Video.title.asc()),
            "popular": (Video.views.desc(), Video.created_at.desc()),
        }
        query = db.query(Video).filter(Video.decade == decade).order_by(*orders[sort_by])
        return paginate(query, page, limit)

    @staticmethod
    def get_video(db: Session, video_id: UUID) -> Optional[Video]:
        return db.query(Video).filter(Video.id == video_id).first()

    @staticmethod
    def record_view(db: Session, video: Video, user: Optional[User], request: Optional[Request] = None) -> bool:
        """
        Count a view. Authenticated users count once per day, anonymous views always count.

        Returns:
            True if the view counter was incremented
        """
        if user is not None:
            today = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
            if has_logged_since(db, ActionType.VIDEO_VIEW, user.id, video.id, since=today):
                return False

        video.views = (video.views or 0) + 1
        db.commit()

        log_action(
            db, ActionType.VIDEO_VIEW, f"Viewed video: {video.title}",
            user_id=user.id if user else None, request=request,
            entity_type=LikeEntity.VIDEO.value, entity_id=video.id
        )
        return True

    @staticmethod
    def related(db: Session, video: Video, limit: int = RELATED_LIMIT) -> List[Video]:
        """Videos of the same genre, else the same artist, else the same type."""
        candidates = [
            (Video.genre, video.genre),
            (Video.artist, video.artist),
            (Video.type, video.type),
        ]
        for column, value in candidates:
            if not value:
                continue
            related = db.query(Video).filter(
                column == value,
                Video.id != video.id
            ).order_by(Video.views.desc(), Video.created_at.desc()).limit(limit).all()
            if related:
                return related
        return []

    @staticmethod
    def react(
        db: Session,
        video: Video,
        user: User,
        action: LikeAction,
        request: Optional[Request] = None
    ) -> Optional[str]:
        """Toggle the user's like or dislike on a video."""
        result = toggle_reaction(db, video, LikeEntity.VIDEO, user.id, action)
        db.commit()

        if result:
            log_action(
                db, ActionType.VIDEO_LIKED, f"{result.title()} on video: {video.title}",
                user_id=user.id, request=request,
                entity_type=LikeEntity.VIDEO.value, entity_id=video.id,
                extra_data={"action": result}
            )
        return result

    @staticmethod
    def share(db: Session, video: Video, user: User, platform: Optional[str], request: Optional[Request] = None):
        log_action(
            db, ActionType.VIDEO_SHARED, f"Shared video: {video.title}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.VIDEO.value, entity_id=video.id,
            extra_data={"platform": platform}
        )

    # ============================================
    # Admin operations
    # ============================================

    @staticmethod
    def create_video(
        db: Session,
        data: VideoCreate,
        author: User,
        request: Optional[Request] = None
    ) -> Tuple[Optional[Video], Optional[str]]:
        error = check_short_duration(data.type.value, data.duration)
        if error:
            return None, error

        video = Video(
            title=data.title,
            youtube_url=data.youtube_url,
            type=data.type.value,
            genre=data.genre,
            duration=data.duration,
            description=data.description,
            artist=data.artist,
            year=data.year,
            author_id=author.id
        )
        video.refresh_derived_fields()

        db.add(video)
        db.commit()
        db.refresh(video)

        invalidate_catalog_cache()
        log_action(
            db, ActionType.CREATE_VIDEO, f"Created video: {video.title}",
            user_id=author.id, request=request,
            entity_type=LikeEntity.VIDEO.value, entity_id=video.id
        )
        return video, None

    @staticmethod
    def update_video(
        db: Session,
        video: Video,
        data: VideoUpdate,
        admin: User,
        request: Optional[Request] = None
    ) -> Tuple[Optional[Video], Optional[str]]:
        changes = data.model_dump(exclude_unset=True)
        for required in ("title", "youtube_url", "type"):
            if changes.get(required) is None:
                changes.pop(required, None)
        if "type" in changes:
            changes["type"] = changes["type"].value

        new_type = changes.get("type") or video.type
        new_duration = changes["duration"] if "duration" in changes else video.duration
        error = check_short_duration(new_type, new_duration)
        if error:
            return None, error

        for field, value in changes.items():
            setattr(video, field, value)
        video.refresh_derived_fields()

        db.commit()
        db.refresh(video)

        invalidate_catalog_cache()
        log_action(
            db, ActionType.UPDATE_VIDEO, f"Updated video: {video.title}",
            user_id=admin.id, request=request,
            entity_type=LikeEntity.VIDEO.value, entity_id=video.id,
            extra_data={"fields": sorted(changes)}
        )
        return video, None

    @staticmethod
    def delete_video(db: Session, video: Video, admin: User, request: Optional[Request] = None):
        title, video_id = video.title, video.id
        remove_content_everywhere(db, video_id=video_id)
        db.delete(video)
        db.commit()

        invalidate_catalog_cache()
        log_action(
            db, ActionType.DELETE_VIDEO, f"Deleted video: {title}",
            user_id=admin.id, request=request,
            entity_type=LikeEntity.VIDEO.value, entity_id=video_id
        )

    @staticmethod
    def stats(db: Session, top: int = 5) -> Dict[str, Any]:
        by_type = dict(db.query(Video.type, func.count(Video.id)).group_by(Video.type).all())
        by_decade = dict(
            db.query(Video.decade, func.count(Video.id))
            .filter(Video.decade.isnot(None))
            .group_by(Video.decade).all()
        )
        totals = db.query(
            func.count(Video.id),
            func.coalesce(func.sum(Video.views), 0),
            func.coalesce(func.sum(Video.likes), 0)
        ).one()

        return {
            "total": totals[0],
            "total_views": int(totals[1]),
            "total_likes": int(totals[2]),
            "by_type": by_type,
            "by_decade": by_decade,
            "top_viewed": db.query(Video).order_by(Video.views.desc()).limit(top).all(),
        }
