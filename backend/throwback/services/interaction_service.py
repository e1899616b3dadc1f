"""Likes, dislikes and bookmarks shared by every content type."""

from sqlalchemy.orm import Session
from typing import Dict, Iterable, Optional, Tuple
from uuid import UUID

from throwback.models.enums import LikeAction, LikeEntity, BookmarkType
from throwback.models.interaction import Like, Bookmark


def _adjust(target, attr: Optional[str], amount: int):
    if attr is None:
        return
    # Counters never go negative
    setattr(target, attr, max(0, (getattr(target, attr) or 0) + amount))


def _counter_for(action: str, likes_attr: str, dislikes_attr: Optional[str]) -> Optional[str]:
    return likes_attr if action == LikeAction.LIKE.value else dislikes_attr


def toggle_reaction(
    db: Session,
    target,
    entity_type: LikeEntity,
    user_id: UUID,
    action: LikeAction = LikeAction.LIKE,
    likes_attr: str = "likes",
    dislikes_attr: Optional[str] = "dislikes"
) -> Optional[str]:
    """
    Toggle a like or dislike on an entity and keep its counters in sync.

    Repeating the current action removes it; choosing the other action
    switches the reaction. The caller commits.

    Args:
        db: Database session
        target: Model instance carrying the counters
        entity_type: Kind of entity
        user_id: Reacting user
        action: LIKE or DISLIKE
        likes_attr: Name of the like counter on target
        dislikes_attr: Name of the dislike counter (None when dislikes are not supported)

    Returns:
        The caller's reaction after the toggle, or None when removed
    """
    if action == LikeAction.DISLIKE and dislikes_attr is None:
        raise ValueError("Dislikes are not supported for this content")

    existing = db.query(Like).filter(
        Like.entity_type == entity_type.value,
        Like.entity_id == target.id,
        Like.user_id == user_id
    ).first()

    if existing and existing.action == action.value:
        db.delete(existing)
        _adjust(target, _counter_for(action.value, likes_attr, dislikes_attr), -1)
        return None

    if existing:
        _adjust(target, _counter_for(existing.action, likes_attr, dislikes_attr), -1)
        existing.action = action.value
    else:
        db.add(Like(
            entity_type=entity_type.value,
            entity_id=target.id,
            user_id=user_id,
            action=action.value
        ))

    _adjust(target, _counter_for(action.value, likes_attr, dislikes_attr), 1)
    return action.value


def get_user_reactions(
    db: Session,
    entity_type: LikeEntity,
    entity_ids: Iterable[UUID],
    user_id: Optional[UUID]
) -> Dict[UUID, str]:
    """Map entity id to the user's reaction for the given entities."""
    entity_ids = list(entity_ids)
    if not user_id or not entity_ids:
        return {}

    rows = db.query(Like.entity_id, Like.action).filter(
        Like.entity_type == entity_type.value,
        Like.user_id == user_id,
        Like.entity_id.in_(entity_ids)
    ).all()
    return {entity_id: action for entity_id, action in rows}


def toggle_bookmark(
    db: Session,
    user_id: UUID,
    video_id: Optional[UUID] = None,
    podcast_id: Optional[UUID] = None,
    notes: Optional[str] = None
) -> Tuple[bool, Optional[Bookmark]]:
    """
    Add or remove a bookmark on exactly one video or podcast.

    Returns:
        Tuple of (bookmarked, bookmark)
    """
    if (video_id is None) == (podcast_id is None):
        raise ValueError("A bookmark targets exactly one video or podcast")

    query = db.query(Bookmark).filter(Bookmark.user_id == user_id)
    if video_id is not None:
        query = query.filter(Bookmark.video_id == video_id)
    else:
        query = query.filter(Bookmark.podcast_id == podcast_id)

    existing = query.first()
    if existing:
        db.delete(existing)
        db.commit()
        return False, None

    bookmark = Bookmark(
        user_id=user_id,
        video_id=video_id,
        podcast_id=podcast_id,
        type=BookmarkType.VIDEO.value if video_id is not None else BookmarkType.PODCAST.value,
        notes=notes
    )
    db.add(bookmark)
    db.commit()
    db.refresh(bookmark)
    return True, bookmark


def is_bookmarked(
    db: Session,
    user_id: Optional[UUID],
    video_id: Optional[UUID] = None,
    podcast_id: Optional[UUID] = None
) -> bool:
    if not user_id:
        return False
    query = db.query(Bookmark.id).filter(Bookmark.user_id == user_id)
    if video_id is not None:
        query = query.filter(Bookmark.video_id == video_id)
    else:
        query = query.filter(Bookmark.podcast_id == podcast_id)
    return query.first() is not None
