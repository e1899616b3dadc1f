"""Live stream endpoints (viewers, admin management and status tasks)."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
from uuid import UUID

from throwback.database import get_db
from throwback.models.user import User
from throwback.models.livestream import LiveStream
from throwback.models.enums import StreamStatus, StreamCategory, CompilationType, LikeEntity
from throwback.models.schemas import ToggleResponse, MessageResponse
from throwback.models.livestream_schemas import (
    LiveStreamCreate,
    LiveStreamUpdate,
    LiveStreamResponse,
    AdminLiveStreamResponse,
    AdminLiveStreamListResponse,
    LiveStreamStats,
    CompilationProgress,
    CompilationVideoResponse,
    BanRequest,
    UnbanRequest,
    ChatMessageCreate,
    ChatMessageDelete,
    ChatMessageResponse,
    ChatMessageListResponse
)
from throwback.middleware.auth import get_current_user, get_current_admin, get_optional_user
from throwback.services.livestream_service import LiveStreamService, stream_status_tasks, ADMIN_SORT_PATTERN
from throwback.services.livechat_service import LiveChatService
from throwback.services.interaction_service import get_user_reactions
from throwback.routers.livechat import to_message_responses
from throwback.utils.pagination import MAX_PAGE_SIZE

router = APIRouter()
admin_router = APIRouter()
tasks_router = APIRouter()


def to_stream_response(db: Session, stream: LiveStream, user: Optional[User], admin: bool = False):
    """Serialize a stream with its compilation progress and the caller's like."""
    progress = LiveStreamService.sync_progress(db, stream)
    liked = bool(get_user_reactions(db, LikeEntity.LIVESTREAM, [stream.id], user.id if user else None))
    update = {"liked": liked}
    if progress:
        update["progress"] = CompilationProgress.model_validate(
            {**progress, "video": CompilationVideoResponse.model_validate(progress["video"])}
        )
    schema = AdminLiveStreamResponse if admin else LiveStreamResponse
    return schema.model_validate(stream).model_copy(update=update)


# ============================================
# Viewers
# ============================================

@router.get("", response_model=List[LiveStreamResponse])
def active_streams(
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Streams live right now that the caller may watch."""
    stream_status_tasks.run_transitions(db)
    return [to_stream_response(db, stream, current_user) for stream in LiveStreamService.active(db, current_user)]


@router.get("/scheduled", response_model=List[LiveStreamResponse])
def scheduled_streams(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Upcoming streams, soonest first."""
    stream_status_tasks.run_transitions(db)
    return [to_stream_response(db, stream, current_user) for stream in LiveStreamService.scheduled(db, current_user, limit)]


@router.get("/{stream_id}", response_model=LiveStreamResponse)
def get_stream(
    stream_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Stream detail with the current compilation position.

    Private streams are only visible to their author. Signed-in viewers are
    counted once as unique viewers.
    """
    stream_status_tasks.run_transitions(db)
    stream = LiveStreamService.get_visible(db, stream_id, current_user)
    if current_user is not None:
        LiveStreamService.record_view(db, stream, current_user, request)
    return to_stream_response(db, stream, current_user)


@router.post("/{stream_id}/like", response_model=ToggleResponse)
def like_stream(
    stream_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Like a stream while it is live. Liking again removes the like."""
    stream = LiveStreamService.get_visible(db, stream_id, current_user)
    liked = LiveStreamService.toggle_like(db, stream, current_user, request)
    return ToggleResponse(active=liked, likes=stream.likes_count)


@router.post("/{stream_id}/comment", response_model=ChatMessageResponse, status_code=201)
def comment_stream(
    stream_id: UUID,
    payload: ChatMessageCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Post in the stream chat."""
    stream = LiveStreamService.get_visible(db, stream_id, current_user)
    message = LiveChatService.post(db, stream, current_user, payload.content, payload.parent_id, request)
    return to_message_responses(db, [message], current_user)[0]


@router.get("/{stream_id}/comments", response_model=ChatMessageListResponse)
def stream_comments(
    stream_id: UUID,
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    stream = LiveStreamService.get_visible(db, stream_id, current_user)
    messages, meta = LiveChatService.list_messages(db, stream, current_user, page, limit, request)
    return ChatMessageListResponse(
        items=to_message_responses(db, messages, current_user, with_replies=True),
        pagination=meta
    )


# ============================================
# Admin management
# ============================================

@admin_router.get("", response_model=AdminLiveStreamListResponse)
def admin_list_streams(
    status: Optional[StreamStatus] = Query(None),
    category: Optional[StreamCategory] = Query(None),
    compilation_type: Optional[CompilationType] = Query(None),
    author_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("recent", pattern=ADMIN_SORT_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """
    Every stream with filters.

    - **sort_by**: recent, oldest, title or viewers
    """
    streams, meta = LiveStreamService.admin_list(
        db, status, category.value if category else None, compilation_type, author_id, search, sort_by, page, limit
    )
    return AdminLiveStreamListResponse(
        items=[to_stream_response(db, stream, admin, admin=True) for stream in streams],
        pagination=meta
    )


@admin_router.get("/stats", response_model=LiveStreamStats)
def admin_stream_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream_status_tasks.run_transitions(db)
    return LiveStreamService.stats(db)


@admin_router.get("/live", response_model=List[AdminLiveStreamResponse])
def admin_live_streams(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream_status_tasks.run_transitions(db)
    return [to_stream_response(db, s, admin, admin=True) for s in LiveStreamService.by_status(db, StreamStatus.LIVE)]


@admin_router.get("/scheduled", response_model=List[AdminLiveStreamResponse])
def admin_scheduled_streams(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream_status_tasks.run_transitions(db)
    return [to_stream_response(db, s, admin, admin=True) for s in LiveStreamService.by_status(db, StreamStatus.SCHEDULED)]


@admin_router.post("", response_model=AdminLiveStreamResponse, status_code=201)
def admin_create_stream(
    stream_data: LiveStreamCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """
    Schedule a live stream.

    - **scheduled_start** / **scheduled_end**: The end must be after the start and in the future
    - **provider**: VIMEO, YOUTUBE or CUSTOM (sets the ingest URL)
    - **compilation_type**: DIRECT or VIDEO_COLLECTION
    - **compilation_videos**: Videos of a compilation, durations in seconds or "h:mm:ss"
    - **start_now**: Go live immediately
    """
    stream = LiveStreamService.create(db, stream_data, admin, request)
    return to_stream_response(db, stream, admin, admin=True)


@admin_router.get("/{stream_id}", response_model=AdminLiveStreamResponse)
def admin_get_stream(
    stream_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    return to_stream_response(db, stream, admin, admin=True)


@admin_router.put("/{stream_id}", response_model=AdminLiveStreamResponse)
def admin_update_stream(
    stream_id: UUID,
    stream_data: LiveStreamUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    stream = LiveStreamService.update(db, stream, stream_data, admin, request)
    return to_stream_response(db, stream, admin, admin=True)


@admin_router.delete("/{stream_id}", response_model=MessageResponse)
def admin_delete_stream(
    stream_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    LiveStreamService.delete(db, stream, admin, request)
    return MessageResponse(message="Live stream deleted")


@admin_router.put("/{stream_id}/start", response_model=AdminLiveStreamResponse)
def admin_start_stream(
    stream_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    stream = LiveStreamService.start(db, stream, admin, request)
    return to_stream_response(db, stream, admin, admin=True)


@admin_router.put("/{stream_id}/end", response_model=AdminLiveStreamResponse)
def admin_end_stream(
    stream_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """End a stream. A recording id is attached when recording is on."""
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    stream = LiveStreamService.end(db, stream, admin, request)
    return to_stream_response(db, stream, admin, admin=True)


@admin_router.put("/{stream_id}/cancel", response_model=AdminLiveStreamResponse)
def admin_cancel_stream(
    stream_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    stream = LiveStreamService.cancel(db, stream, admin, request)
    return to_stream_response(db, stream, admin, admin=True)


@admin_router.get("/{stream_id}/comments", response_model=ChatMessageListResponse)
def admin_stream_comments(
    stream_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Every chat message of the stream, deleted ones included."""
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    messages, meta = LiveChatService.admin_list(db, stream, page, limit)
    return ChatMessageListResponse(items=to_message_responses(db, messages, admin), pagination=meta)


@admin_router.delete("/{stream_id}/comments/{message_id}", response_model=ChatMessageResponse)
def admin_delete_comment(
    stream_id: UUID,
    message_id: UUID,
    request: Request,
    payload: Optional[ChatMessageDelete] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    message = LiveChatService.get_message(db, stream, message_id)
    message = LiveChatService.delete(db, stream, message, admin, payload.reason if payload else None, request)
    return to_message_responses(db, [message], admin)[0]


@admin_router.post("/{stream_id}/ban-user", response_model=MessageResponse)
def admin_ban_user(
    stream_id: UUID,
    payload: BanRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Ban a user from the stream chat."""
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    LiveStreamService.ban_user(db, stream, payload.user_id, admin, payload.reason, request)
    return MessageResponse(message="User banned from the chat")


@admin_router.post("/{stream_id}/unban-user", response_model=MessageResponse)
def admin_unban_user(
    stream_id: UUID,
    payload: UnbanRequest,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    stream = LiveStreamService.get_visible(db, stream_id, admin)
    LiveStreamService.unban_user(db, stream, payload.user_id, admin, request)
    return MessageResponse(message="User unbanned")


# ============================================
# Status tasks
# ============================================

@tasks_router.get("/status", response_model=Dict[str, Any])
def stream_tasks_status(admin: User = Depends(get_current_admin)):
    return stream_status_tasks.get_status()


@tasks_router.post("/cleanup", response_model=Dict[str, Any])
def run_stream_cleanup(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Apply due status transitions now."""
    result = stream_status_tasks.run_transitions(db)
    return {**result, "status": stream_status_tasks.get_status()}
