"""Live streams: scheduling, lifecycle, compilation playback and status transitions."""

from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from fastapi import Request
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from throwback.config import settings
from throwback.models.user import User
from throwback.models.livestream import LiveStream, CompilationVideo, LiveStreamBan, build_stream_url, generate_stream_key
from throwback.models.activity import ActionType
from throwback.models.enums import (
    StreamStatus, StreamProvider, CompilationType, VideoSource, LikeEntity, LikeAction, AccountStatus
)
from throwback.models.livestream_schemas import LiveStreamCreate, LiveStreamUpdate, CompilationVideoCreate
from throwback.services.activity_service import log_action, has_logged_since
from throwback.services.errors import ServiceError, NotFoundError, PermissionDeniedError, ConflictError
from throwback.services.interaction_service import toggle_reaction
from throwback.services.logging_service import app_logger
from throwback.services.error_tracking import error_tracker
from throwback.utils.pagination import paginate
from throwback.utils.validators import parse_duration

MIN_COMPILATION_DURATION = 30
MAX_RECENT_ERRORS = 10

# Seconds assumed for compilation videos without a usable duration
FALLBACK_DURATIONS = {
    VideoSource.YOUTUBE.value: 240,
    VideoSource.VIMEO.value: 300,
}
DEFAULT_FALLBACK_DURATION = 180

ADMIN_SORT_ORDERS = {
    "recent": (LiveStream.scheduled_start.desc(),),
    "oldest": (LiveStream.scheduled_start.asc(),),
    "title": (LiveStream.title.asc(),),
    "viewers": (LiveStream.unique_viewers.desc(), LiveStream.scheduled_start.desc()),
}
ADMIN_SORT_PATTERN = "^(" + "|".join(ADMIN_SORT_ORDERS) + ")$"


def normalize_duration(value, source_type: str) -> int:
    """Seconds for a compilation video; short or unknown durations use the per-source fallback."""
    seconds = parse_duration(value)
    if seconds is None or seconds < MIN_COMPILATION_DURATION:
        return FALLBACK_DURATIONS.get(source_type, DEFAULT_FALLBACK_DURATION)
    return seconds


def build_compilation_videos(videos: List[CompilationVideoCreate]) -> List[CompilationVideo]:
    return [
        CompilationVideo(
            source_id=video.source_id,
            source_type=video.source_type.value,
            title=video.title,
            description=video.description,
            thumbnail=video.thumbnail,
            duration=normalize_duration(video.duration, video.source_type.value),
            channel_title=video.channel_title,
            published_at=video.published_at,
            position=position,
            view_count=video.view_count,
            like_count=video.like_count,
            original_url=video.original_url
        )
        for position, video in enumerate(videos)
    ]


def compilation_progress(stream: LiveStream, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """
    Locate the playing video of a compilation stream.

    Walks the stored durations from the actual (else scheduled) start.
    Looping streams wrap around; otherwise the last video stays current
    with nothing remaining.

    Returns:
        Dict with index, video, offset, remaining and loop_count, or None
        when the stream has no videos
    """
    videos = list(stream.compilation_videos)
    if not videos:
        return None

    now = now or datetime.utcnow()
    slot = settings.COMPILATION_SLOT_MINUTES * 60
    durations = [video.duration or slot for video in videos]
    total = sum(durations)

    started = stream.actual_start or stream.scheduled_start
    elapsed = max(0, int((now - started).total_seconds()))

    loop_count = 0
    if elapsed >= total:
        if not stream.loop:
            return {
                "index": len(videos) - 1,
                "video": videos[-1],
                "offset": durations[-1],
                "remaining": 0,
                "loop_count": 0,
            }
        loop_count, elapsed = divmod(elapsed, total)

    for index, duration in enumerate(durations):
        if elapsed < duration:
            return {
                "index": index,
                "video": videos[index],
                "offset": elapsed,
                "remaining": duration - elapsed,
                "loop_count": loop_count,
            }
        elapsed -= duration

    # Unreachable with positive durations
    return None


def can_see(stream: LiveStream, user: Optional[User]) -> bool:
    if stream.is_public:
        return True
    return user is not None and (stream.author_id == user.id or user.is_admin)


class LiveStreamService:
    """Service for live streams."""

    @staticmethod
    def get_stream(db: Session, stream_id: UUID) -> Optional[LiveStream]:
        return db.query(LiveStream).filter(LiveStream.id == stream_id).first()

    @staticmethod
    def get_visible(db: Session, stream_id: UUID, user: Optional[User]) -> LiveStream:
        """
        Raises:
            NotFoundError: If missing
            PermissionDeniedError: If private and the caller is not its author
        """
        stream = LiveStreamService.get_stream(db, stream_id)
        if not stream:
            raise NotFoundError("Live stream not found")
        if not can_see(stream, user):
            raise PermissionDeniedError("This live stream is not public")
        return stream

    @staticmethod
    def sync_progress(db: Session, stream: LiveStream, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """Store the current compilation index so the player resumes in place."""
        if stream.compilation_type != CompilationType.VIDEO_COLLECTION.value or stream.status != StreamStatus.LIVE.value:
            return None

        now = now or datetime.utcnow()
        progress = compilation_progress(stream, now)
        if progress and progress["index"] != stream.current_video_index:
            stream.current_video_index = progress["index"]
            stream.current_video_start = now - timedelta(seconds=progress["offset"])
            db.commit()
        return progress

    # ============================================
    # Viewer operations
    # ============================================

    @staticmethod
    def active(db: Session, user: Optional[User]) -> List[LiveStream]:
        """LIVE streams not past their scheduled end, public or owned by the caller."""
        now = datetime.utcnow()
        query = db.query(LiveStream).filter(
            LiveStream.status == StreamStatus.LIVE.value,
            LiveStream.scheduled_end > now
        )
        if user is not None:
            query = query.filter(or_(LiveStream.is_public.is_(True), LiveStream.author_id == user.id))
        else:
            query = query.filter(LiveStream.is_public.is_(True))
        return query.order_by(LiveStream.actual_start.desc(), LiveStream.scheduled_start.desc()).all()

    @staticmethod
    def scheduled(db: Session, user: Optional[User], limit: int = 20) -> List[LiveStream]:
        now = datetime.utcnow()
        query = db.query(LiveStream).filter(
            LiveStream.status == StreamStatus.SCHEDULED.value,
            LiveStream.scheduled_start > now
        )
        if user is None or not user.is_admin:
            criterion = LiveStream.is_public.is_(True)
            if user is not None:
                criterion = or_(criterion, LiveStream.author_id == user.id)
            query = query.filter(criterion)
        return query.order_by(LiveStream.scheduled_start.asc()).limit(limit).all()

    @staticmethod
    def record_view(db: Session, stream: LiveStream, user: User, request: Optional[Request] = None) -> bool:
        """Count the user as a unique viewer on their first visit."""
        first_visit = not has_logged_since(db, ActionType.VIEW_LIVESTREAM, user.id, stream.id)
        if first_visit:
            stream.unique_viewers = (stream.unique_viewers or 0) + 1
            db.commit()

        log_action(
            db, ActionType.VIEW_LIVESTREAM, f"Viewed live stream: {stream.title}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id
        )
        return first_visit

    @staticmethod
    def toggle_like(db: Session, stream: LiveStream, user: User, request: Optional[Request] = None) -> bool:
        if stream.status != StreamStatus.LIVE.value or stream.scheduled_end <= datetime.utcnow():
            raise ServiceError("This live stream is no longer active")

        result = toggle_reaction(
            db, stream, LikeEntity.LIVESTREAM, user.id, LikeAction.LIKE,
            likes_attr="likes_count", dislikes_attr=None
        )
        db.commit()

        if result:
            log_action(
                db, ActionType.LIKE_LIVESTREAM, f"Liked live stream: {stream.title}",
                user_id=user.id, request=request,
                entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id
            )
        return result is not None

    # ============================================
    # Admin lifecycle
    # ============================================

    @staticmethod
    def create(db: Session, data: LiveStreamCreate, author: User, request: Optional[Request] = None) -> LiveStream:
        """
        Schedule a stream.

        Raises:
            ServiceError: If the end is not after the start or already past
        """
        now = datetime.utcnow()
        if data.scheduled_end <= data.scheduled_start:
            raise ServiceError("The end date must be after the start date")
        if data.scheduled_end <= now:
            raise ServiceError("The end date must be in the future")

        go_live = (data.start_now and author.is_admin) or data.scheduled_start <= now

        stream = LiveStream(
            title=data.title,
            description=data.description,
            scheduled_start=data.scheduled_start,
            scheduled_end=data.scheduled_end,
            status=StreamStatus.LIVE.value if go_live else StreamStatus.SCHEDULED.value,
            playback_url=data.playback_url,
            embed_code=data.embed_code,
            thumbnail=data.thumbnail,
            category=data.category.value,
            is_public=data.is_public,
            is_recurring=data.is_recurring,
            recurrence=data.recurrence.model_dump(mode="json") if data.recurrence else None,
            tags=data.tags,
            host_name=data.host_name or "ThrowBack Host",
            guests=data.guests,
            chat_enabled=data.chat_enabled,
            moderation_enabled=data.moderation_enabled,
            author_id=author.id,
            provider=data.provider.value,
            resolution=data.resolution.value,
            frame_rate=data.frame_rate,
            bitrate=data.bitrate,
            record_after_stream=data.record_after_stream,
            compilation_type=data.compilation_type.value,
            loop=data.loop,
            autoplay=data.autoplay,
            shuffle=data.shuffle,
            transition_effect=data.transition_effect.value,
            actual_start=now if go_live else None,
            current_video_index=0,
            current_video_start=now if go_live else None
        )
        stream.stream_key = generate_stream_key()
        if data.provider == StreamProvider.CUSTOM and data.stream_url:
            stream.stream_url = data.stream_url
        else:
            stream.stream_url = build_stream_url(stream.provider, stream.stream_key)
        stream.compilation_videos = build_compilation_videos(data.compilation_videos)

        db.add(stream)
        db.commit()
        db.refresh(stream)

        suffix = " (compilation)" if stream.compilation_type == CompilationType.VIDEO_COLLECTION.value else ""
        log_action(
            db, ActionType.CREATE_LIVESTREAM, f"Created live stream: {stream.title}{suffix}",
            user_id=author.id, request=request, created_by=author.id,
            entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id
        )
        return stream

    @staticmethod
    def _check_owner(stream: LiveStream, user: User, action: str):
        if stream.author_id != user.id and not user.is_admin:
            raise PermissionDeniedError(f"You are not allowed to {action} this live stream")

    @staticmethod
    def update(db: Session, stream: LiveStream, data: LiveStreamUpdate, user: User, request: Optional[Request] = None) -> LiveStream:
        LiveStreamService._check_owner(stream, user, "update")
        finished = (StreamStatus.COMPLETED.value, StreamStatus.CANCELLED.value)
        if stream.status in finished and not user.is_admin:
            raise ServiceError("Finished or cancelled live streams cannot be modified")

        changes = data.model_dump(exclude_unset=True, exclude={"compilation_videos", "recurrence"})
        changes = {field: value for field, value in changes.items() if value is not None}

        start = changes.get("scheduled_start", stream.scheduled_start)
        end = changes.get("scheduled_end", stream.scheduled_end)
        if end <= start:
            raise ServiceError("The end date must be after the start date")

        new_status = changes.pop("status", None)
        for field, value in changes.items():
            setattr(stream, field, value.value if hasattr(value, "value") else value)

        if "recurrence" in data.model_fields_set:
            stream.recurrence = data.recurrence.model_dump(mode="json") if data.recurrence else None
        if data.compilation_videos is not None:
            stream.compilation_videos = build_compilation_videos(data.compilation_videos)
        if "provider" in changes:
            stream.stream_url = build_stream_url(stream.provider, stream.stream_key)

        now = datetime.utcnow()
        if new_status is not None and new_status.value != stream.status:
            if new_status == StreamStatus.LIVE:
                stream.actual_start = now
                stream.current_video_index = 0
                stream.current_video_start = now
            elif new_status == StreamStatus.COMPLETED:
                stream.actual_end = now
            stream.status = new_status.value

        db.commit()
        db.refresh(stream)

        log_action(
            db, ActionType.UPDATE_LIVESTREAM, f"Updated live stream: {stream.title}",
            user_id=user.id, request=request, created_by=user.id,
            entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id,
            extra_data={"fields": sorted(data.model_fields_set)}
        )
        return stream

    @staticmethod
    def delete(db: Session, stream: LiveStream, user: User, request: Optional[Request] = None):
        LiveStreamService._check_owner(stream, user, "delete")
        if stream.status == StreamStatus.LIVE.value and not user.is_admin:
            raise ServiceError("End the live stream before deleting it")

        title, stream_id = stream.title, stream.id
        db.delete(stream)
        db.commit()

        log_action(
            db, ActionType.DELETE_LIVESTREAM, f"Deleted live stream: {title}",
            user_id=user.id, request=request, created_by=user.id,
            entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream_id
        )

    @staticmethod
    def start(db: Session, stream: LiveStream, user: User, request: Optional[Request] = None) -> LiveStream:
        LiveStreamService._check_owner(stream, user, "start")
        if stream.status != StreamStatus.SCHEDULED.value and not user.is_admin:
            raise ServiceError(f"A {stream.status} live stream cannot be started")

        now = datetime.utcnow()
        if stream.scheduled_end <= now:
            raise ServiceError("This live stream is past its scheduled end")

        stream.status = StreamStatus.LIVE.value
        stream.actual_start = now
        stream.actual_end = None
        stream.current_video_index = 0
        stream.current_video_start = now
        db.commit()
        db.refresh(stream)

        log_action(
            db, ActionType.START_LIVESTREAM, f"Started live stream: {stream.title}",
            user_id=user.id, request=request, created_by=user.id,
            entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id
        )
        return stream

    @staticmethod
    def complete(stream: LiveStream, now: datetime):
        """Mark a stream COMPLETED and reference its recording."""
        stream.status = StreamStatus.COMPLETED.value
        stream.actual_end = now
        if stream.record_after_stream:
            stream.recorded_video_id = f"rec_{int(now.replace(tzinfo=timezone.utc).timestamp() * 1000)}_{stream.id}"

    @staticmethod
    def end(db: Session, stream: LiveStream, user: User, request: Optional[Request] = None) -> LiveStream:
        LiveStreamService._check_owner(stream, user, "end")
        if stream.status != StreamStatus.LIVE.value and not user.is_admin:
            raise ServiceError(f"A {stream.status} live stream cannot be ended")

        LiveStreamService.complete(stream, datetime.utcnow())
        db.commit()
        db.refresh(stream)

        log_action(
            db, ActionType.END_LIVESTREAM, f"Ended live stream: {stream.title}",
            user_id=user.id, request=request, created_by=user.id,
            entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id
        )
        return stream

    @staticmethod
    def cancel(db: Session, stream: LiveStream, user: User, request: Optional[Request] = None) -> LiveStream:
        LiveStreamService._check_owner(stream, user, "cancel")
        if stream.status != StreamStatus.SCHEDULED.value and not user.is_admin:
            raise ServiceError(f"A {stream.status} live stream cannot be cancelled")

        stream.status = StreamStatus.CANCELLED.value
        db.commit()
        db.refresh(stream)

        log_action(
            db, ActionType.CANCEL_LIVESTREAM, f"Cancelled live stream: {stream.title}",
            user_id=user.id, request=request, created_by=user.id,
            entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id
        )
        return stream

    @staticmethod
    def admin_list(
        db: Session,
        status: Optional[StreamStatus] = None,
        category: Optional[str] = None,
        compilation_type: Optional[CompilationType] = None,
        author_id: Optional[UUID] = None,
        search: Optional[str] = None,
        sort_by: str = "recent",
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[LiveStream], Dict[str, Any]]:
        query = db.query(LiveStream)
        if status:
            query = query.filter(LiveStream.status == status.value)
        if category:
            query = query.filter(LiveStream.category == category)
        if compilation_type:
            query = query.filter(LiveStream.compilation_type == compilation_type.value)
        if author_id:
            query = query.filter(LiveStream.author_id == author_id)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                LiveStream.title.ilike(pattern),
                LiveStream.description.ilike(pattern),
                LiveStream.host_name.ilike(pattern)
            ))
        return paginate(query.order_by(*ADMIN_SORT_ORDERS[sort_by]), page, limit)

    @staticmethod
    def by_status(db: Session, status: StreamStatus) -> List[LiveStream]:
        return db.query(LiveStream).filter(
            LiveStream.status == status.value
        ).order_by(LiveStream.scheduled_start.asc()).all()

    @staticmethod
    def stats(db: Session, top: int = 5) -> Dict[str, Any]:
        def grouped(column):
            return dict(db.query(column, func.count(LiveStream.id)).group_by(column).all())

        completed = db.query(LiveStream).filter(
            LiveStream.status == StreamStatus.COMPLETED.value,
            LiveStream.actual_start.isnot(None),
            LiveStream.actual_end.isnot(None)
        ).all()
        durations = [(stream.actual_end - stream.actual_start).total_seconds() / 60 for stream in completed]

        return {
            "total": db.query(func.count(LiveStream.id)).scalar(),
            "by_status": grouped(LiveStream.status),
            "by_category": grouped(LiveStream.category),
            "by_compilation_type": grouped(LiveStream.compilation_type),
            "most_viewed": db.query(LiveStream).filter(
                LiveStream.status == StreamStatus.COMPLETED.value
            ).order_by(LiveStream.max_concurrent_viewers.desc(), LiveStream.unique_viewers.desc()).limit(top).all(),
            "duration_stats": {
                "average_minutes": round(sum(durations) / len(durations), 1) if durations else 0.0,
                "max_minutes": round(max(durations), 1) if durations else 0.0,
                "min_minutes": round(min(durations), 1) if durations else 0.0,
                "total_streams": len(durations),
            },
            "upcoming": db.query(LiveStream).filter(
                LiveStream.status == StreamStatus.SCHEDULED.value,
                LiveStream.scheduled_start > datetime.utcnow()
            ).order_by(LiveStream.scheduled_start.asc()).limit(top).all(),
            "total_unique_viewers": int(db.query(func.coalesce(func.sum(LiveStream.unique_viewers), 0)).scalar()),
        }

    # ============================================
    # Chat bans
    # ============================================

    @staticmethod
    def ban_user(
        db: Session,
        stream: LiveStream,
        user_id: UUID,
        admin: User,
        reason: Optional[str] = None,
        request: Optional[Request] = None
    ) -> LiveStreamBan:
        if user_id == admin.id:
            raise ServiceError("You cannot ban yourself")
        target = db.query(User).filter(
            User.id == user_id,
            User.account_status != AccountStatus.DELETED.value
        ).first()
        if not target:
            raise NotFoundError("User not found")
        if user_id in stream.banned_user_ids:
            raise ConflictError("User is already banned from this chat")

        ban = LiveStreamBan(user_id=user_id, banned_by=admin.id, reason=reason)
        stream.bans.append(ban)
        db.commit()
        db.refresh(ban)

        log_action(
            db, ActionType.BAN_USER, f"Banned {target.email} from the chat of {stream.title}",
            user_id=admin.id, request=request, created_by=admin.id,
            entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id,
            extra_data={"banned_user_id": str(user_id), "reason": reason}
        )
        return ban

    @staticmethod
    def unban_user(db: Session, stream: LiveStream, user_id: UUID, admin: User, request: Optional[Request] = None):
        ban = next((ban for ban in stream.bans if ban.user_id == user_id), None)
        if not ban:
            raise NotFoundError("User is not banned from this chat")

        stream.bans.remove(ban)
        db.commit()

        log_action(
            db, ActionType.UNBAN_USER, f"Unbanned a user from the chat of {stream.title}",
            user_id=admin.id, request=request, created_by=admin.id,
            entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id,
            extra_data={"unbanned_user_id": str(user_id)}
        )


class StreamStatusTasks:
    """
    Minute-by-minute stream status transitions.

    SCHEDULED streams go LIVE once their start is reached. LIVE streams are
    completed after the grace period past their end; looping compilations
    keep running until the force-end delay.
    """

    def __init__(self):
        self.is_running = False
        self.last_run: Optional[datetime] = None
        self.runs = 0
        self.streams_started = 0
        self.streams_ended = 0
        self.errors = 0
        self.recent_errors: List[Dict[str, Any]] = []

    def _record_error(self, stream: LiveStream, error: Exception):
        self.errors += 1
        error_tracker.capture_exception(
            error,
            context={"stream": {"id": str(stream.id), "status": stream.status}},
            tags={"job": "stream_status"}
        )
        self.recent_errors.append({
            "stream_id": str(stream.id),
            "error": str(error),
            "timestamp": datetime.utcnow().isoformat()
        })
        del self.recent_errors[:-MAX_RECENT_ERRORS]

    @staticmethod
    def should_end(stream: LiveStream, now: datetime) -> bool:
        overdue = now - stream.scheduled_end
        looping = stream.loop and stream.compilation_type == CompilationType.VIDEO_COLLECTION.value
        if looping:
            return overdue >= timedelta(minutes=settings.LIVESTREAM_FORCE_END_AFTER_MINUTES)
        return overdue >= timedelta(seconds=settings.LIVESTREAM_END_GRACE_SECONDS)

    def run_transitions(self, db: Session, now: Optional[datetime] = None) -> Dict[str, int]:
        """Apply due transitions. A failing stream is rolled back and skipped."""
        now = now or datetime.utcnow()
        started = ended = 0
        self.is_running = True
        try:
            due = db.query(LiveStream).filter(
                LiveStream.status == StreamStatus.SCHEDULED.value,
                LiveStream.scheduled_start <= now,
                LiveStream.scheduled_end > now
            ).all()
            for stream in due:
                try:
                    stream.status = StreamStatus.LIVE.value
                    stream.actual_start = now
                    stream.current_video_index = 0
                    stream.current_video_start = now
                    db.commit()
                    started += 1
                    log_action(
                        db, ActionType.AUTO_START_LIVESTREAM, f"Live stream started automatically: {stream.title}",
                        entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id
                    )
                except Exception as e:
                    db.rollback()
                    self._record_error(stream, e)

            live = db.query(LiveStream).filter(
                LiveStream.status == StreamStatus.LIVE.value,
                LiveStream.scheduled_end <= now
            ).all()
            for stream in live:
                if not self.should_end(stream, now):
                    continue
                try:
                    LiveStreamService.complete(stream, now)
                    db.commit()
                    ended += 1
                    log_action(
                        db, ActionType.AUTO_END_LIVESTREAM, f"Live stream ended automatically: {stream.title}",
                        entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id
                    )
                except Exception as e:
                    db.rollback()
                    self._record_error(stream, e)
        finally:
            self.is_running = False
            self.last_run = datetime.utcnow()
            self.runs += 1
            self.streams_started += started
            self.streams_ended += ended

        if started or ended:
            app_logger.info("Stream statuses updated", started=started, ended=ended)
        return {"started": started, "ended": ended}

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "last_run": self.last_run,
            "runs": self.runs,
            "streams_started": self.streams_started,
            "streams_ended": self.streams_ended,
            "errors": self.errors,
            "recent_errors": list(self.recent_errors),
            "grace_seconds": settings.LIVESTREAM_END_GRACE_SECONDS,
            "force_end_after_minutes": settings.LIVESTREAM_FORCE_END_AFTER_MINUTES,
        }


# Global task state shared by the scheduler, the public endpoints and the health checks
stream_status_tasks = StreamStatusTasks()
