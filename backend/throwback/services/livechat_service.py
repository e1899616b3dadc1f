"""Live chat: messages, replies, likes, deletion, reports and moderation stats."""

from sqlalchemy.orm import Session
from sqlalchemy import func
from fastapi import Request
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from throwback.models.user import User
from throwback.models.livestream import LiveStream, LiveChatMessage
from throwback.models.activity import ActionType
from throwback.models.enums import StreamStatus, LikeEntity, LikeAction
from throwback.services.activity_service import log_action, record_action, client_info, has_logged_since
from throwback.services.errors import ServiceError, NotFoundError, PermissionDeniedError, ConflictError
from throwback.services.interaction_service import toggle_reaction, get_user_reactions
from throwback.utils.pagination import paginate

REPLIES_PREVIEW = 5
DELETED_BY_AUTHOR = "[Message deleted]"
DELETED_BY_MODERATOR = "[Message deleted by a moderator]"


def check_chat_access(stream: LiveStream, user: Optional[User]):
    """
    Raises:
        PermissionDeniedError: If the chat is disabled or the caller is banned
    """
    if not stream.chat_enabled:
        raise PermissionDeniedError("Chat is disabled for this live stream")
    if user is not None and user.id in stream.banned_user_ids:
        raise PermissionDeniedError("You are banned from this chat")


class LiveChatService:
    """Service for live chat messages."""

    @staticmethod
    def get_message(db: Session, stream: LiveStream, message_id: UUID) -> LiveChatMessage:
        message = db.query(LiveChatMessage).filter(
            LiveChatMessage.id == message_id,
            LiveChatMessage.stream_id == stream.id
        ).first()
        if not message:
            raise NotFoundError("Message not found")
        return message

    @staticmethod
    def list_messages(
        db: Session,
        stream: LiveStream,
        user: Optional[User],
        page: int = 1,
        limit: int = 50,
        request: Optional[Request] = None
    ) -> Tuple[List[LiveChatMessage], Dict[str, Any]]:
        """Top-level messages, newest first."""
        check_chat_access(stream, user)

        query = db.query(LiveChatMessage).filter(
            LiveChatMessage.stream_id == stream.id,
            LiveChatMessage.parent_id.is_(None)
        ).order_by(LiveChatMessage.created_at.desc())
        messages, meta = paginate(query, page, limit)

        if user is not None:
            log_action(
                db, ActionType.VIEW_LIVESTREAM_CHAT, f"Viewed the chat of {stream.title}",
                user_id=user.id, request=request,
                entity_type=LikeEntity.LIVESTREAM.value, entity_id=stream.id
            )
        return messages, meta

    @staticmethod
    def replies_preview(db: Session, message_ids: Iterable[UUID], size: int = REPLIES_PREVIEW) -> Dict[UUID, List[LiveChatMessage]]:
        """First replies (oldest first) of each message."""
        message_ids = list(message_ids)
        if not message_ids:
            return {}

        replies = db.query(LiveChatMessage).filter(
            LiveChatMessage.parent_id.in_(message_ids)
        ).order_by(LiveChatMessage.created_at.asc()).all()

        preview: Dict[UUID, List[LiveChatMessage]] = {}
        for reply in replies:
            bucket = preview.setdefault(reply.parent_id, [])
            if len(bucket) < size:
                bucket.append(reply)
        return preview

    @staticmethod
    def reply_counts(db: Session, message_ids: Iterable[UUID]) -> Dict[UUID, int]:
        message_ids = list(message_ids)
        if not message_ids:
            return {}
        rows = db.query(LiveChatMessage.parent_id, func.count(LiveChatMessage.id)).filter(
            LiveChatMessage.parent_id.in_(message_ids)
        ).group_by(LiveChatMessage.parent_id).all()
        return dict(rows)

    @staticmethod
    def liked_ids(db: Session, message_ids: Iterable[UUID], user: Optional[User]) -> set:
        return set(get_user_reactions(db, LikeEntity.CHAT_MESSAGE, message_ids, user.id if user else None))

    @staticmethod
    def list_replies(
        db: Session,
        stream: LiveStream,
        message: LiveChatMessage,
        user: Optional[User],
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[LiveChatMessage], Dict[str, Any]]:
        check_chat_access(stream, user)
        query = db.query(LiveChatMessage).filter(
            LiveChatMessage.parent_id == message.id
        ).order_by(LiveChatMessage.created_at.asc())
        return paginate(query, page, limit)

    @staticmethod
    def post(
        db: Session,
        stream: LiveStream,
        user: User,
        content: str,
        parent_id: Optional[UUID] = None,
        request: Optional[Request] = None
    ) -> LiveChatMessage:
        """
        Post a message while the stream is live.

        Raises:
            ServiceError: If the stream is not LIVE
            PermissionDeniedError: If the chat is disabled or the user is banned
            NotFoundError: If the parent message is not in this stream
        """
        if stream.status != StreamStatus.LIVE.value:
            raise ServiceError("The chat is only open while the stream is live")
        check_chat_access(stream, user)

        if parent_id is not None:
            LiveChatService.get_message(db, stream, parent_id)

        info = client_info(request)
        message = LiveChatMessage(
            stream_id=stream.id,
            user_id=user.id,
            parent_id=parent_id,
            content=content,
            ip_address=info["ip_address"],
            user_agent=info["user_agent"]
        )
        db.add(message)
        stream.chat_messages_count = (stream.chat_messages_count or 0) + 1
        db.commit()
        db.refresh(message)

        log_action(
            db, ActionType.CHAT_MESSAGE, f"Chat message in {stream.title}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.CHAT_MESSAGE.value, entity_id=message.id,
            extra_data={"stream_id": str(stream.id), "reply": parent_id is not None}
        )
        return message

    @staticmethod
    def toggle_like(db: Session, stream: LiveStream, message: LiveChatMessage, user: User) -> bool:
        check_chat_access(stream, user)
        if message.is_deleted:
            raise ServiceError("Deleted messages cannot be liked")

        result = toggle_reaction(
            db, message, LikeEntity.CHAT_MESSAGE, user.id, LikeAction.LIKE, dislikes_attr=None
        )
        db.commit()
        return result is not None

    @staticmethod
    def delete(
        db: Session,
        stream: LiveStream,
        message: LiveChatMessage,
        user: User,
        reason: Optional[str] = None,
        request: Optional[Request] = None
    ) -> LiveChatMessage:
        """
        Blank a message. Authors delete their own; admins moderate any.

        Raises:
            PermissionDeniedError: If the user is neither the author nor an admin
        """
        own = message.user_id == user.id
        if not own and not user.is_admin:
            raise PermissionDeniedError("You can only delete your own messages")
        if message.is_deleted:
            raise ServiceError("Message already deleted")

        message.is_deleted = True
        if own:
            message.content = DELETED_BY_AUTHOR
        else:
            message.content = DELETED_BY_MODERATOR
            message.is_moderated = True
            message.moderation_reason = reason
            message.moderated_by = user.id
        db.commit()
        db.refresh(message)

        log_action(
            db,
            ActionType.DELETE_OWN_MESSAGE if own else ActionType.MODERATION_MESSAGE,
            f"Deleted a chat message in {stream.title}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.CHAT_MESSAGE.value, entity_id=message.id,
            extra_data={"stream_id": str(stream.id), "reason": reason}
        )
        return message

    @staticmethod
    def report(
        db: Session,
        stream: LiveStream,
        message: LiveChatMessage,
        user: User,
        reason: str,
        request: Optional[Request] = None
    ):
        if message.user_id == user.id:
            raise ServiceError("You cannot report your own message")
        if has_logged_since(db, ActionType.REPORT_MESSAGE, user.id, message.id):
            raise ConflictError("You already reported this message")

        record_action(
            db, ActionType.REPORT_MESSAGE, f"Reported a chat message in {stream.title}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.CHAT_MESSAGE.value, entity_id=message.id,
            extra_data={"stream_id": str(stream.id), "reason": reason, "author_id": str(message.user_id)}
        )

    @staticmethod
    def admin_list(db: Session, stream: LiveStream, page: int = 1, limit: int = 50) -> Tuple[List[LiveChatMessage], Dict[str, Any]]:
        """Every message of the stream, deleted ones included."""
        query = db.query(LiveChatMessage).filter(
            LiveChatMessage.stream_id == stream.id
        ).order_by(LiveChatMessage.created_at.desc())
        return paginate(query, page, limit)

    @staticmethod
    def moderation_stats(db: Session, stream: LiveStream) -> Dict[str, int]:
        def count(*criteria):
            return db.query(func.count(LiveChatMessage.id)).filter(
                LiveChatMessage.stream_id == stream.id, *criteria
            ).scalar()

        return {
            "total": count(),
            "deleted": count(LiveChatMessage.is_deleted.is_(True)),
            "moderated": count(LiveChatMessage.is_moderated.is_(True)),
            "banned_users": len(stream.bans),
        }
