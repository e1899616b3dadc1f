"""Memories posted under videos: threads, reactions, reports and moderation."""

from sqlalchemy.orm import Session
from sqlalchemy import func
from fastapi import Request
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from throwback.models.user import User
from throwback.models.video import Video
from throwback.models.comment import Comment, CommentReport
from throwback.models.activity import ActionType
from throwback.models.enums import CommentStatus, CommentSort, LikeEntity, LikeAction
from throwback.services.activity_service import log_action
from throwback.services.errors import ServiceError, NotFoundError, PermissionDeniedError, ConflictError
from throwback.services.interaction_service import toggle_reaction
from throwback.utils.pagination import paginate

SORT_ORDERS = {
    CommentSort.RECENT: (Comment.created_at.desc(),),
    CommentSort.LIKES: (Comment.likes.desc(), Comment.created_at.desc()),
    CommentSort.OLDEST: (Comment.created_at.asc(),),
}


class MemoryService:
    """Service for video memories."""

    @staticmethod
    def get_memory(db: Session, memory_id: UUID) -> Optional[Comment]:
        return db.query(Comment).filter(Comment.id == memory_id).first()

    @staticmethod
    def reply_counts(db: Session, memory_ids: Iterable[UUID]) -> Dict[UUID, int]:
        memory_ids = list(memory_ids)
        if not memory_ids:
            return {}
        rows = db.query(Comment.parent_id, func.count(Comment.id)).filter(
            Comment.parent_id.in_(memory_ids),
            Comment.status == CommentStatus.ACTIVE.value
        ).group_by(Comment.parent_id).all()
        return dict(rows)

    @staticmethod
    def list_for_video(
        db: Session,
        video_id: UUID,
        sort: CommentSort = CommentSort.RECENT,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Comment], Dict[str, Any]]:
        """Top-level active memories of a video."""
        query = db.query(Comment).filter(
            Comment.video_id == video_id,
            Comment.parent_id.is_(None),
            Comment.status == CommentStatus.ACTIVE.value
        ).order_by(*SORT_ORDERS[sort])
        return paginate(query, page, limit)

    @staticmethod
    def recent(db: Session, limit: int = 10) -> List[Comment]:
        return db.query(Comment).filter(
            Comment.status == CommentStatus.ACTIVE.value
        ).order_by(Comment.created_at.desc()).limit(limit).all()

    @staticmethod
    def list_replies(db: Session, memory: Comment, page: int = 1, limit: int = 20) -> Tuple[List[Comment], Dict[str, Any]]:
        query = db.query(Comment).filter(
            Comment.parent_id == memory.id,
            Comment.status == CommentStatus.ACTIVE.value
        ).order_by(Comment.created_at.asc())
        return paginate(query, page, limit)

    @staticmethod
    def create(
        db: Session,
        video: Video,
        author: User,
        content: str,
        parent: Optional[Comment] = None,
        request: Optional[Request] = None
    ) -> Comment:
        """
        Post a memory, or a reply when a parent is given.

        Raises:
            ServiceError: If the parent cannot be replied to
        """
        if parent is not None:
            if parent.status != CommentStatus.ACTIVE.value:
                raise ServiceError("Cannot reply to a removed memory")
            if parent.parent_id is not None:
                raise ServiceError("Replies cannot be nested")

        memory = Comment(
            content=content,
            video_id=video.id,
            author_id=author.id,
            parent_id=parent.id if parent else None
        )
        db.add(memory)
        video.comment_count = (video.comment_count or 0) + 1
        db.commit()
        db.refresh(memory)

        log_action(
            db,
            ActionType.MEMORY_REPLY if parent else ActionType.MEMORY_ADDED,
            f"Memory posted on video: {video.title}",
            user_id=author.id, request=request,
            entity_type=LikeEntity.COMMENT.value, entity_id=memory.id,
            extra_data={"video_id": str(video.id)}
        )
        return memory

    @staticmethod
    def react(
        db: Session,
        memory: Comment,
        user: User,
        action: LikeAction,
        request: Optional[Request] = None
    ) -> Optional[str]:
        if memory.status != CommentStatus.ACTIVE.value:
            raise NotFoundError("Memory not found")

        result = toggle_reaction(db, memory, LikeEntity.COMMENT, user.id, action)
        db.commit()

        if result:
            log_action(
                db, ActionType.MEMORY_LIKED, f"{result.title()} on memory",
                user_id=user.id, request=request,
                entity_type=LikeEntity.COMMENT.value, entity_id=memory.id,
                extra_data={"action": result}
            )
        return result

    @staticmethod
    def delete(db: Session, memory: Comment, user: User, request: Optional[Request] = None):
        """
        Soft-delete a memory (author or admin).

        Raises:
            ServiceError: If the user may not delete it
        """
        if memory.author_id != user.id and not user.is_admin:
            raise PermissionDeniedError("You can only delete your own memories")
        if memory.status == CommentStatus.DELETED.value:
            raise NotFoundError("Memory not found")

        was_visible = memory.status == CommentStatus.ACTIVE.value
        memory.status = CommentStatus.DELETED.value
        if was_visible and memory.video is not None:
            memory.video.comment_count = max(0, (memory.video.comment_count or 0) - 1)
        db.commit()

        log_action(
            db, ActionType.MEMORY_DELETED, "Memory deleted",
            user_id=user.id, request=request,
            entity_type=LikeEntity.COMMENT.value, entity_id=memory.id,
            extra_data={"by_admin": memory.author_id != user.id}
        )

    @staticmethod
    def report(
        db: Session,
        memory: Comment,
        user: User,
        reason: str,
        request: Optional[Request] = None
    ) -> CommentReport:
        if memory.author_id == user.id:
            raise ServiceError("You cannot report your own memory")

        existing = db.query(CommentReport).filter(
            CommentReport.comment_id == memory.id,
            CommentReport.user_id == user.id
        ).first()
        if existing:
            raise ConflictError("You have already reported this memory")

        report = CommentReport(comment_id=memory.id, user_id=user.id, reason=reason.strip())
        db.add(report)
        db.commit()

        log_action(
            db, ActionType.MEMORY_REPORTED, f"Memory reported: {reason.strip()}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.COMMENT.value, entity_id=memory.id
        )
        return report

    @staticmethod
    def admin_list(
        db: Session,
        status: Optional[CommentStatus] = None,
        reported_only: bool = False,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Comment], Dict[str, Any]]:
        query = db.query(Comment)
        if status:
            query = query.filter(Comment.status == status.value)
        if reported_only:
            query = query.filter(Comment.reports.any())
        return paginate(query.order_by(Comment.created_at.desc()), page, limit)

    @staticmethod
    def moderate(
        db: Session,
        memory: Comment,
        admin: User,
        status: CommentStatus = CommentStatus.MODERATED,
        reason: Optional[str] = None,
        request: Optional[Request] = None
    ) -> Comment:
        """Change a memory's status and stamp the moderator."""
        was_visible = memory.status == CommentStatus.ACTIVE.value

        memory.status = status.value
        memory.moderated_by = admin.id
        memory.moderated_at = datetime.utcnow()

        if memory.video is not None:
            if was_visible and status != CommentStatus.ACTIVE:
                memory.video.comment_count = max(0, (memory.video.comment_count or 0) - 1)
            elif not was_visible and status == CommentStatus.ACTIVE:
                memory.video.comment_count = (memory.video.comment_count or 0) + 1

        db.commit()
        db.refresh(memory)

        log_action(
            db, ActionType.MEMORY_MODERATED, f"Memory set to {status.value}",
            user_id=memory.author_id, created_by=admin.id, request=request,
            entity_type=LikeEntity.COMMENT.value, entity_id=memory.id,
            extra_data={"reason": reason}
        )
        return memory
