"""Memory (video comment) endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from throwback.database import get_db
from throwback.models.user import User
from throwback.models.comment import Comment
from throwback.models.enums import CommentStatus, CommentSort, LikeEntity, LikeAction
from throwback.models.schemas import ToggleResponse, MessageResponse
from throwback.models.video_schemas import (
    MemoryCreate,
    MemoryReport,
    MemoryModerate,
    MemoryResponse,
    MemoryListResponse,
    AdminMemoryResponse,
    AdminMemoryListResponse
)
from throwback.middleware.auth import get_current_user, get_current_admin, get_optional_user
from throwback.services.memory_service import MemoryService
from throwback.services.video_service import VideoService
from throwback.services.interaction_service import get_user_reactions
from throwback.utils.pagination import MAX_PAGE_SIZE

router = APIRouter()
public_router = APIRouter()
admin_router = APIRouter()


def to_memory_responses(db: Session, memories: List[Comment], user: Optional[User]) -> List[MemoryResponse]:
    """Serialize memories with reply counts and the caller's reaction."""
    ids = [memory.id for memory in memories]
    replies = MemoryService.reply_counts(db, ids)
    reactions = get_user_reactions(db, LikeEntity.COMMENT, ids, user.id if user else None)
    return [
        MemoryResponse.model_validate(memory).model_copy(update={
            "reply_count": replies.get(memory.id, 0),
            "user_interaction": reactions.get(memory.id)
        })
        for memory in memories
    ]


def get_memory_or_404(db: Session, memory_id: UUID) -> Comment:
    memory = MemoryService.get_memory(db, memory_id)
    if not memory or memory.status == CommentStatus.DELETED.value:
        raise HTTPException(status_code=404, detail="Memory not found")
    return memory


# ============================================
# Memories under a video
# ============================================

@public_router.get("/videos/{video_id}/memories", response_model=MemoryListResponse)
def list_video_memories(
    video_id: UUID,
    sort: CommentSort = Query(CommentSort.RECENT),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Top-level memories of a video.

    - **sort**: recent, likes or oldest
    """
    if not VideoService.get_video(db, video_id):
        raise HTTPException(status_code=404, detail="Video not found")

    memories, meta = MemoryService.list_for_video(db, video_id, sort, page, limit)
    return MemoryListResponse(items=to_memory_responses(db, memories, current_user), pagination=meta)


@public_router.post("/videos/{video_id}/memories", response_model=MemoryResponse, status_code=201)
def add_video_memory(
    video_id: UUID,
    memory_data: MemoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Share a memory about a video.

    - **content**: 1-500 characters
    """
    video = VideoService.get_video(db, video_id)
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")

    memory = MemoryService.create(db, video, current_user, memory_data.content, request=request)
    return to_memory_responses(db, [memory], current_user)[0]


@public_router.get("/memories/recent", response_model=List[MemoryResponse])
def recent_memories(
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Latest memories across all videos."""
    return to_memory_responses(db, MemoryService.recent(db, limit), current_user)


# ============================================
# Threads and interactions
# ============================================

@router.get("/{memory_id}/replies", response_model=MemoryListResponse)
def list_replies(
    memory_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    memory = get_memory_or_404(db, memory_id)
    replies, meta = MemoryService.list_replies(db, memory, page, limit)
    return MemoryListResponse(items=to_memory_responses(db, replies, current_user), pagination=meta)


@router.post("/{memory_id}/replies", response_model=MemoryResponse, status_code=201)
def reply_to_memory(
    memory_id: UUID,
    memory_data: MemoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    parent = get_memory_or_404(db, memory_id)
    reply = MemoryService.create(db, parent.video, current_user, memory_data.content, parent=parent, request=request)
    return to_memory_responses(db, [reply], current_user)[0]


@router.post("/{memory_id}/like", response_model=ToggleResponse)
def like_memory(
    memory_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    memory = get_memory_or_404(db, memory_id)
    result = MemoryService.react(db, memory, current_user, LikeAction.LIKE, request)
    return ToggleResponse(active=result is not None, action=result, likes=memory.likes, dislikes=memory.dislikes)


@router.post("/{memory_id}/dislike", response_model=ToggleResponse)
def dislike_memory(
    memory_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    memory = get_memory_or_404(db, memory_id)
    result = MemoryService.react(db, memory, current_user, LikeAction.DISLIKE, request)
    return ToggleResponse(active=result is not None, action=result, likes=memory.likes, dislikes=memory.dislikes)


@router.delete("/{memory_id}", response_model=MessageResponse)
def delete_memory(
    memory_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a memory. Authors can delete their own; admins can delete any."""
    memory = get_memory_or_404(db, memory_id)
    MemoryService.delete(db, memory, current_user, request)
    return MessageResponse(message="Memory deleted")


@router.post("/{memory_id}/report", response_model=MessageResponse)
def report_memory(
    memory_id: UUID,
    report_data: MemoryReport,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Report a memory to the moderators.

    - **reason**: Why the memory is inappropriate
    """
    memory = get_memory_or_404(db, memory_id)
    MemoryService.report(db, memory, current_user, report_data.reason, request)
    return MessageResponse(message="Memory reported")


# ============================================
# Admin moderation
# ============================================

@admin_router.get("", response_model=AdminMemoryListResponse)
def admin_list_memories(
    status: Optional[CommentStatus] = Query(None),
    reported: bool = Query(False, description="Only memories with at least one report"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    memories, meta = MemoryService.admin_list(db, status, reported, page, limit)
    replies = MemoryService.reply_counts(db, [memory.id for memory in memories])
    items = [
        AdminMemoryResponse.model_validate(memory).model_copy(update={"reply_count": replies.get(memory.id, 0)})
        for memory in memories
    ]
    return AdminMemoryListResponse(items=items, pagination=meta)


@admin_router.put("/{memory_id}/moderate", response_model=AdminMemoryResponse)
def moderate_memory(
    memory_id: UUID,
    moderation: MemoryModerate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """
    Moderate a memory.

    - **status**: MODERATED (default), ACTIVE to restore, or DELETED
    - **reason**: Optional note for the activity log
    """
    memory = MemoryService.get_memory(db, memory_id)
    if not memory:
        raise HTTPException(status_code=404, detail="Memory not found")

    return MemoryService.moderate(db, memory, admin, moderation.status, moderation.reason, request)
