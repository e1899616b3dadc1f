"""Live chat endpoints."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from throwback.database import get_db
from throwback.models.user import User
from throwback.models.livestream import LiveChatMessage
from throwback.models.schemas import ToggleResponse, MessageResponse
from throwback.models.livestream_schemas import (
    ChatMessageCreate,
    ChatMessageDelete,
    ChatMessageReport,
    ChatMessageResponse,
    ChatMessageListResponse,
    ChatModerationStats
)
from throwback.middleware.auth import get_current_user, get_current_admin, get_optional_user
from throwback.services.livechat_service import LiveChatService
from throwback.services.livestream_service import LiveStreamService
from throwback.utils.pagination import MAX_PAGE_SIZE

router = APIRouter()


def to_message_responses(
    db: Session,
    messages: List[LiveChatMessage],
    user: Optional[User],
    with_replies: bool = False
) -> List[ChatMessageResponse]:
    """Serialize messages with like flags, reply counts and (optionally) the first replies."""
    ids = [message.id for message in messages]
    previews = LiveChatService.replies_preview(db, ids) if with_replies else {}
    reply_ids = [reply.id for replies in previews.values() for reply in replies]
    liked = LiveChatService.liked_ids(db, ids + reply_ids, user)
    counts = LiveChatService.reply_counts(db, ids)

    def serialize(message: LiveChatMessage, replies=()) -> ChatMessageResponse:
        return ChatMessageResponse.model_validate(message).model_copy(update={
            "liked": message.id in liked,
            "reply_count": counts.get(message.id, 0),
            "replies": [serialize(reply) for reply in replies]
        })

    return [serialize(message, previews.get(message.id, ())) for message in messages]


@router.get("/{stream_id}", response_model=ChatMessageListResponse)
def list_messages(
    stream_id: UUID,
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Chat messages of a stream, newest first, each with its first replies.

    Returns 403 when the chat is disabled or the caller is banned.
    """
    stream = LiveStreamService.get_visible(db, stream_id, current_user)
    messages, meta = LiveChatService.list_messages(db, stream, current_user, page, limit, request)
    return ChatMessageListResponse(
        items=to_message_responses(db, messages, current_user, with_replies=True),
        pagination=meta
    )


@router.post("/{stream_id}", response_model=ChatMessageResponse, status_code=201)
def post_message(
    stream_id: UUID,
    payload: ChatMessageCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Post a message (or a reply) while the stream is live.

    - **content**: 1-500 characters
    - **parent_id**: Message being replied to
    """
    stream = LiveStreamService.get_visible(db, stream_id, current_user)
    message = LiveChatService.post(db, stream, current_user, payload.content, payload.parent_id, request)
    return to_message_responses(db, [message], current_user)[0]


@router.get("/{stream_id}/stats", response_model=ChatModerationStats)
def moderation_stats(
    stream_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    return LiveChatService.moderation_stats(db, stream)


@router.get("/{stream_id}/messages/{message_id}/replies", response_model=ChatMessageListResponse)
def list_replies(
    stream_id: UUID,
    message_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    stream = LiveStreamService.get_visible(db, stream_id, current_user)
    message = LiveChatService.get_message(db, stream, message_id)
    replies, meta = LiveChatService.list_replies(db, stream, message, current_user, page, limit)
    return ChatMessageListResponse(items=to_message_responses(db, replies, current_user), pagination=meta)


@router.post("/{stream_id}/messages/{message_id}/like", response_model=ToggleResponse)
def like_message(
    stream_id: UUID,
    message_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    stream = LiveStreamService.get_visible(db, stream_id, current_user)
    message = LiveChatService.get_message(db, stream, message_id)
    liked = LiveChatService.toggle_like(db, stream, message, current_user)
    return ToggleResponse(active=liked, likes=message.likes)


@router.delete("/{stream_id}/messages/{message_id}", response_model=ChatMessageResponse)
def delete_message(
    stream_id: UUID,
    message_id: UUID,
    request: Request,
    payload: Optional[ChatMessageDelete] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete your own message; admins can remove any message with a reason."""
    stream = LiveStreamService.get_visible(db, stream_id, current_user)
    message = LiveChatService.get_message(db, stream, message_id)
    message = LiveChatService.delete(
        db, stream, message, current_user, payload.reason if payload else None, request
    )
    return to_message_responses(db, [message], current_user)[0]


@router.post("/{stream_id}/messages/{message_id}/report", response_model=MessageResponse)
def report_message(
    stream_id: UUID,
    message_id: UUID,
    payload: ChatMessageReport,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    stream = LiveStreamService.get_visible(db, stream_id, current_user)
    message = LiveChatService.get_message(db, stream, message_id)
    LiveChatService.report(db, stream, message, current_user, payload.reason, request)
    return MessageResponse(message="Message reported")
