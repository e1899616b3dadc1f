"""Playlist management: items, permissions, favourites and discovery."""

from sqlalchemy.orm import Session
from sqlalchemy import func, or_, cast, String
from fastapi import Request
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from throwback.models.user import User
from throwback.models.video import Video
from throwback.models.podcast import Podcast
from throwback.models.playlist import (
    Playlist, PlaylistItem, PlaylistCollaborator, PlaylistFavorite, PlaylistAnalytics
)
from throwback.models.activity import ActionType
from throwback.models.enums import (
    PlaylistVisibility, PlaylistType, CollaboratorPermission, LikeEntity, LikeAction, AccountStatus
)
from throwback.models.playlist_schemas import PlaylistCreate, PlaylistUpdate
from throwback.services.activity_service import log_action
from throwback.services.errors import ServiceError, NotFoundError, PermissionDeniedError, ConflictError
from throwback.services.interaction_service import toggle_reaction
from throwback.utils.pagination import paginate

ADD_PERMISSIONS = (CollaboratorPermission.ADD.value, CollaboratorPermission.EDIT.value)

AUTO_CRITERIA = {
    PlaylistType.AUTO_GENRE.value: ("auto_genre", Video.genre),
    PlaylistType.AUTO_DECADE.value: ("auto_decade", Video.decade),
    PlaylistType.AUTO_ARTIST.value: ("auto_artist", Video.artist),
}


def _collaborator_permission(playlist: Playlist, user: Optional[User]) -> Optional[str]:
    if user is None:
        return None
    for collaborator in playlist.collaborators:
        if collaborator.user_id == user.id:
            return collaborator.permission
    return None


def _is_owner_or_admin(playlist: Playlist, user: Optional[User]) -> bool:
    return user is not None and (playlist.owner_id == user.id or user.is_admin)


def can_view(playlist: Playlist, user: Optional[User]) -> bool:
    """Public playlists are visible to everyone, others to owner, collaborators and admins."""
    if playlist.visibility == PlaylistVisibility.PUBLIC.value:
        return True
    return _is_owner_or_admin(playlist, user) or _collaborator_permission(playlist, user) is not None


def can_add(playlist: Playlist, user: User) -> bool:
    return _is_owner_or_admin(playlist, user) or _collaborator_permission(playlist, user) in ADD_PERMISSIONS


def can_edit(playlist: Playlist, user: User) -> bool:
    return (
        _is_owner_or_admin(playlist, user)
        or _collaborator_permission(playlist, user) == CollaboratorPermission.EDIT.value
    )


def renumber(playlist: Playlist):
    """Make item positions contiguous from 1 in their current order."""
    for position, item in enumerate(sorted(playlist.items, key=lambda item: item.position), start=1):
        item.position = position


def remove_content_everywhere(db: Session, video_id: Optional[UUID] = None, podcast_id: Optional[UUID] = None):
    """
    Drop a video or podcast from every playlist holding it and close the gaps.

    Runs inside the caller's transaction; the caller commits.
    """
    column = PlaylistItem.video_id if video_id else PlaylistItem.podcast_id
    content_id = video_id or podcast_id
    playlist_ids = [
        playlist_id for (playlist_id,) in
        db.query(PlaylistItem.playlist_id).filter(column == content_id).distinct()
    ]
    if not playlist_ids:
        return

    db.query(PlaylistItem).filter(column == content_id).delete(synchronize_session=False)
    for playlist in db.query(Playlist).filter(Playlist.id.in_(playlist_ids)):
        db.expire(playlist, ["items"])
        renumber(playlist)


def _content_id(item: PlaylistItem) -> UUID:
    return item.video_id or item.podcast_id


class PlaylistService:
    """Service for playlists."""

    @staticmethod
    def get_playlist(db: Session, playlist_id: UUID) -> Optional[Playlist]:
        return db.query(Playlist).filter(Playlist.id == playlist_id).first()

    @staticmethod
    def get_viewable(db: Session, playlist_id: UUID, user: Optional[User]) -> Playlist:
        """
        Fetch a playlist the user may see.

        Raises:
            NotFoundError: If missing
            PermissionDeniedError: If private to the caller
        """
        playlist = PlaylistService.get_playlist(db, playlist_id)
        if not playlist:
            raise NotFoundError("Playlist not found")
        if not can_view(playlist, user):
            raise PermissionDeniedError("This playlist is private")
        return playlist

    @staticmethod
    def fill_auto_playlist(db: Session, playlist: Playlist):
        """Replace the items of an auto playlist with the most viewed matching videos."""
        attribute, column = AUTO_CRITERIA[playlist.type]
        value = getattr(playlist, attribute)
        if not value:
            raise ServiceError(f"{attribute} is required for {playlist.type} playlists")

        if playlist.type == PlaylistType.AUTO_ARTIST.value:
            criterion = column.ilike(value)
        else:
            criterion = column == value

        videos = db.query(Video).filter(criterion).order_by(
            Video.views.desc(), Video.created_at.desc()
        ).limit(playlist.auto_limit).all()

        playlist.items.clear()
        db.flush()
        for position, video in enumerate(videos, start=1):
            playlist.items.append(PlaylistItem(video_id=video.id, position=position, added_by=playlist.owner_id))

    @staticmethod
    def create(db: Session, data: PlaylistCreate, owner: User, request: Optional[Request] = None) -> Playlist:
        if data.type != PlaylistType.MANUAL:
            attribute, _ = AUTO_CRITERIA[data.type.value]
            if not getattr(data, attribute):
                raise ServiceError(f"{attribute} is required for {data.type.value} playlists")

        playlist = Playlist(
            name=data.name,
            description=data.description,
            owner_id=owner.id,
            visibility=data.visibility.value,
            cover_image=data.cover_image,
            tags=data.tags,
            type=data.type.value,
            auto_genre=data.auto_genre,
            auto_decade=data.auto_decade,
            auto_artist=data.auto_artist,
            auto_limit=data.auto_limit
        )
        playlist.analytics = PlaylistAnalytics()
        db.add(playlist)

        if playlist.type != PlaylistType.MANUAL.value:
            PlaylistService.fill_auto_playlist(db, playlist)

        db.commit()
        db.refresh(playlist)

        log_action(
            db, ActionType.CREATE_PLAYLIST, f"Created playlist: {playlist.name}",
            user_id=owner.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id
        )
        return playlist

    @staticmethod
    def update(
        db: Session,
        playlist: Playlist,
        data: PlaylistUpdate,
        user: User,
        request: Optional[Request] = None
    ) -> Playlist:
        if not _is_owner_or_admin(playlist, user):
            raise PermissionDeniedError("Only the owner can update this playlist")

        changes = data.model_dump(exclude_unset=True)
        if changes.get("name") is None:
            changes.pop("name", None)
        if changes.get("visibility") is not None:
            changes["visibility"] = changes["visibility"].value
        else:
            changes.pop("visibility", None)
        if changes.get("tags") is not None:
            changes["tags"] = list(dict.fromkeys(tag.strip().lower() for tag in changes["tags"] if tag.strip()))

        for field, value in changes.items():
            setattr(playlist, field, value)

        criteria_changed = any(field.startswith("auto_") for field in changes)
        if criteria_changed and playlist.type != PlaylistType.MANUAL.value:
            PlaylistService.fill_auto_playlist(db, playlist)

        db.commit()
        db.refresh(playlist)

        log_action(
            db, ActionType.UPDATE_PLAYLIST, f"Updated playlist: {playlist.name}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id,
            extra_data={"fields": sorted(changes)}
        )
        return playlist

    @staticmethod
    def delete(db: Session, playlist: Playlist, user: User, request: Optional[Request] = None):
        if not _is_owner_or_admin(playlist, user):
            raise PermissionDeniedError("Only the owner can delete this playlist")

        name, playlist_id = playlist.name, playlist.id
        db.delete(playlist)
        db.commit()

        log_action(
            db, ActionType.DELETE_PLAYLIST, f"Deleted playlist: {name}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist_id
        )

    @staticmethod
    def list_mine(
        db: Session,
        user: User,
        include_shared: bool = False,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Playlist], Dict[str, Any]]:
        """Playlists owned by the user, optionally with those shared with them."""
        criterion = Playlist.owner_id == user.id
        if include_shared:
            criterion = or_(criterion, Playlist.collaborators.any(PlaylistCollaborator.user_id == user.id))
        query = db.query(Playlist).filter(criterion).order_by(Playlist.updated_at.desc())
        return paginate(query, page, limit)

    # ============================================
    # Items
    # ============================================

    @staticmethod
    def _append(db: Session, playlist: Playlist, user: User, video: Optional[Video] = None, podcast: Optional[Podcast] = None):
        if not can_add(playlist, user):
            raise PermissionDeniedError("You cannot add videos to this playlist")

        content_id = video.id if video else podcast.id
        if any(_content_id(item) == content_id for item in playlist.items):
            raise ConflictError("Already in this playlist")

        playlist.items.append(PlaylistItem(
            video_id=video.id if video else None,
            podcast_id=podcast.id if podcast else None,
            position=len(playlist.items) + 1,
            added_by=user.id
        ))
        db.commit()
        db.refresh(playlist)

    @staticmethod
    def add_video(db: Session, playlist: Playlist, video: Video, user: User, request: Optional[Request] = None) -> Playlist:
        """
        Append a video at the end of the playlist.

        Raises:
            PermissionDeniedError: If the user lacks ADD permission
            ConflictError: If the video is already in the playlist
        """
        PlaylistService._append(db, playlist, user, video=video)
        log_action(
            db, ActionType.PLAYLIST_VIDEO_ADDED, f"Added {video.title} to playlist {playlist.name}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id,
            extra_data={"video_id": str(video.id)}
        )
        return playlist

    @staticmethod
    def add_podcast(db: Session, playlist: Playlist, podcast: Podcast, user: User, request: Optional[Request] = None) -> Playlist:
        PlaylistService._append(db, playlist, user, podcast=podcast)
        log_action(
            db, ActionType.PLAYLIST_VIDEO_ADDED, f"Added {podcast.formatted_episode} to playlist {playlist.name}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id,
            extra_data={"podcast_id": str(podcast.id)}
        )
        return playlist

    @staticmethod
    def remove_item(db: Session, playlist: Playlist, content_id: UUID, user: User, request: Optional[Request] = None) -> Playlist:
        """Remove a video (or podcast episode) and renumber the remaining items."""
        if not can_edit(playlist, user):
            raise PermissionDeniedError("You cannot remove videos from this playlist")

        item = next((item for item in playlist.items if _content_id(item) == content_id), None)
        if not item:
            raise NotFoundError("Video not in playlist")

        playlist.items.remove(item)
        renumber(playlist)
        db.commit()
        db.refresh(playlist)

        log_action(
            db, ActionType.PLAYLIST_VIDEO_REMOVED, f"Removed item from playlist {playlist.name}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id,
            extra_data={"content_id": str(content_id)}
        )
        return playlist

    @staticmethod
    def reorder(db: Session, playlist: Playlist, content_ids: List[UUID], user: User, request: Optional[Request] = None) -> Playlist:
        """
        Put the listed items first, in the given order; the others follow in their previous order.
        """
        if not can_edit(playlist, user):
            raise PermissionDeniedError("You cannot reorder this playlist")

        by_content = {_content_id(item): item for item in playlist.items}
        unknown = [str(content_id) for content_id in content_ids if content_id not in by_content]
        if unknown:
            raise ServiceError(f"Not in playlist: {', '.join(unknown)}")

        ordered_ids = list(dict.fromkeys(content_ids))
        listed = [by_content[content_id] for content_id in ordered_ids]
        rest = [item for item in sorted(playlist.items, key=lambda item: item.position) if item not in listed]

        for position, item in enumerate(listed + rest, start=1):
            item.position = position

        db.commit()
        db.refresh(playlist)

        log_action(
            db, ActionType.PLAYLIST_REORDERED, f"Reordered playlist {playlist.name}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id
        )
        return playlist

    # ============================================
    # Interactions
    # ============================================

    @staticmethod
    def is_favorited(db: Session, playlist: Playlist, user: Optional[User]) -> bool:
        if user is None:
            return False
        return db.query(PlaylistFavorite.id).filter(
            PlaylistFavorite.playlist_id == playlist.id,
            PlaylistFavorite.user_id == user.id
        ).first() is not None

    @staticmethod
    def toggle_favorite(db: Session, playlist: Playlist, user: User, request: Optional[Request] = None) -> bool:
        existing = db.query(PlaylistFavorite).filter(
            PlaylistFavorite.playlist_id == playlist.id,
            PlaylistFavorite.user_id == user.id
        ).first()

        if existing:
            db.delete(existing)
            playlist.favorite_count = max(0, playlist.favorite_count - 1)
            db.commit()
            return False

        db.add(PlaylistFavorite(playlist_id=playlist.id, user_id=user.id))
        playlist.favorite_count += 1
        db.commit()

        log_action(
            db, ActionType.PLAYLIST_FAVORITED, f"Favorited playlist {playlist.name}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id
        )
        return True

    @staticmethod
    def toggle_like(db: Session, playlist: Playlist, user: User, request: Optional[Request] = None) -> Optional[str]:
        result = toggle_reaction(db, playlist, LikeEntity.PLAYLIST, user.id, LikeAction.LIKE, dislikes_attr=None)
        db.commit()

        if result:
            log_action(
                db, ActionType.PLAYLIST_LIKED, f"Liked playlist {playlist.name}",
                user_id=user.id, request=request,
                entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id
            )
        return result

    @staticmethod
    def share(db: Session, playlist: Playlist, user: User, platform: Optional[str], request: Optional[Request] = None):
        log_action(
            db, ActionType.PLAYLIST_SHARED, f"Shared playlist {playlist.name}",
            user_id=user.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id,
            extra_data={"platform": platform}
        )

    @staticmethod
    def record_view(db: Session, playlist: Playlist, user: Optional[User], request: Optional[Request] = None) -> int:
        playlist.play_count += 1
        db.commit()

        log_action(
            db, ActionType.PLAYLIST_VIEWED, f"Viewed playlist {playlist.name}",
            user_id=user.id if user else None, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id
        )
        return playlist.play_count

    # ============================================
    # Discovery
    # ============================================

    @staticmethod
    def public_list(
        db: Session,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Playlist], Dict[str, Any]]:
        query = db.query(Playlist).filter(Playlist.visibility == PlaylistVisibility.PUBLIC.value)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Playlist.name.ilike(pattern),
                Playlist.description.ilike(pattern),
                cast(Playlist.tags, String).ilike(pattern)
            ))
        return paginate(query.order_by(Playlist.play_count.desc(), Playlist.created_at.desc()), page, limit)

    @staticmethod
    def popular(db: Session, limit: int = 10) -> List[Playlist]:
        return db.query(Playlist).filter(
            Playlist.visibility == PlaylistVisibility.PUBLIC.value
        ).order_by(
            Playlist.play_count.desc(), Playlist.favorite_count.desc()
        ).limit(limit).all()

    @staticmethod
    def trending(db: Session, limit: int = 10) -> List[Tuple[Playlist, float]]:
        rows = db.query(Playlist, PlaylistAnalytics.trending_score).join(
            PlaylistAnalytics, PlaylistAnalytics.playlist_id == Playlist.id
        ).filter(
            Playlist.visibility == PlaylistVisibility.PUBLIC.value
        ).order_by(
            PlaylistAnalytics.trending_score.desc(), Playlist.play_count.desc()
        ).limit(limit).all()
        return rows

    # ============================================
    # Collaborators and admin
    # ============================================

    @staticmethod
    def add_collaborator(
        db: Session,
        playlist: Playlist,
        user_id: UUID,
        permission: CollaboratorPermission,
        actor: User,
        request: Optional[Request] = None
    ) -> PlaylistCollaborator:
        if not _is_owner_or_admin(playlist, actor):
            raise PermissionDeniedError("Only the owner can manage collaborators")
        if user_id == playlist.owner_id:
            raise ServiceError("The owner cannot be a collaborator")

        user = db.query(User).filter(
            User.id == user_id,
            User.account_status != AccountStatus.DELETED.value
        ).first()
        if not user:
            raise NotFoundError("User not found")

        collaborator = next((c for c in playlist.collaborators if c.user_id == user_id), None)
        if collaborator:
            collaborator.permission = permission.value
        else:
            collaborator = PlaylistCollaborator(user_id=user_id, permission=permission.value)
            playlist.collaborators.append(collaborator)
        db.commit()
        db.refresh(collaborator)

        log_action(
            db, ActionType.PLAYLIST_COLLABORATOR_ADDED, f"Collaborator added to playlist {playlist.name}",
            user_id=actor.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id,
            extra_data={"collaborator_id": str(user_id), "permission": permission.value}
        )
        return collaborator

    @staticmethod
    def remove_collaborator(db: Session, playlist: Playlist, user_id: UUID, actor: User, request: Optional[Request] = None):
        # Collaborators may leave on their own
        if not _is_owner_or_admin(playlist, actor) and actor.id != user_id:
            raise PermissionDeniedError("Only the owner can manage collaborators")

        collaborator = next((c for c in playlist.collaborators if c.user_id == user_id), None)
        if not collaborator:
            raise NotFoundError("Collaborator not found")

        playlist.collaborators.remove(collaborator)
        db.commit()

        log_action(
            db, ActionType.PLAYLIST_COLLABORATOR_REMOVED, f"Collaborator removed from playlist {playlist.name}",
            user_id=actor.id, request=request,
            entity_type=LikeEntity.PLAYLIST.value, entity_id=playlist.id,
            extra_data={"collaborator_id": str(user_id)}
        )

    @staticmethod
    def admin_list(
        db: Session,
        visibility: Optional[PlaylistVisibility] = None,
        playlist_type: Optional[PlaylistType] = None,
        owner_id: Optional[UUID] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Playlist], Dict[str, Any]]:
        query = db.query(Playlist)
        if visibility:
            query = query.filter(Playlist.visibility == visibility.value)
        if playlist_type:
            query = query.filter(Playlist.type == playlist_type.value)
        if owner_id:
            query = query.filter(Playlist.owner_id == owner_id)
        if search and search.strip():
            query = query.filter(Playlist.name.ilike(f"%{search.strip()}%"))
        return paginate(query.order_by(Playlist.created_at.desc()), page, limit)

    @staticmethod
    def stats(db: Session, top: int = 5) -> Dict[str, Any]:
        totals = db.query(
            func.count(Playlist.id),
            func.coalesce(func.sum(Playlist.play_count), 0),
            func.coalesce(func.sum(Playlist.favorite_count), 0)
        ).one()
        return {
            "total": totals[0],
            "total_plays": int(totals[1]),
            "total_favorites": int(totals[2]),
            "by_visibility": dict(db.query(Playlist.visibility, func.count(Playlist.id)).group_by(Playlist.visibility).all()),
            "by_type": dict(db.query(Playlist.type, func.count(Playlist.id)).group_by(Playlist.type).all()),
            "most_played": db.query(Playlist).order_by(Playlist.play_count.desc()).limit(top).all(),
        }
