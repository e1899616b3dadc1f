"""Profile, privacy, preferences and personal library operations."""

from sqlalchemy.orm import Session
from fastapi import Request, UploadFile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
import uuid

from throwback.config import settings
from throwback.models.user import User
from throwback.models.preferences import UserPreferences
from throwback.models.activity import ActionType, LogAction
from throwback.models.interaction import Like, Bookmark
from throwback.models.enums import AccountStatus
from throwback.models.schemas import ProfileUpdate, PrivacyUpdate, PreferencesUpdate
from throwback.services.activity_service import log_action
from throwback.services.auth_service import AuthService
from throwback.services.logging_service import app_logger
from throwback.utils.pagination import paginate
from throwback.utils.security import verify_password
from throwback.utils.validators import validate_name, sanitize_input

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

PHOTO_KINDS = {
    "profile": ("profile_photo", ActionType.PROFILE_PHOTO_UPLOADED, ActionType.PROFILE_PHOTO_REMOVED),
    "cover": ("cover_photo", ActionType.COVER_PHOTO_UPLOADED, ActionType.COVER_PHOTO_REMOVED),
}


def _upload_path(public_url: str) -> Path:
    """Map a /uploads/... URL back to its file under UPLOAD_DIR."""
    relative = public_url.split("/uploads/", 1)[-1]
    return Path(settings.UPLOAD_DIR) / relative


def _remove_file(public_url: Optional[str]):
    if not public_url:
        return
    path = _upload_path(public_url)
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        app_logger.warning("Could not remove uploaded file", path=str(path), error=str(e))


class UserService:
    """Service for the current user's account."""

    @staticmethod
    def update_profile(
        db: Session,
        user: User,
        data: ProfileUpdate,
        request: Optional[Request] = None
    ) -> Tuple[Optional[User], Optional[str]]:
        changes = data.model_dump(exclude_unset=True)

        for field, label in (("first_name", "First name"), ("last_name", "Last name")):
            if field in changes:
                is_valid, error = validate_name(changes[field], label)
                if not is_valid:
                    return None, error
                changes[field] = changes[field].strip()

        if changes.get("gender") is not None:
            changes["gender"] = changes["gender"].value
        if changes.get("bio"):
            changes["bio"] = sanitize_input(changes["bio"])

        for field, value in changes.items():
            setattr(user, field, value)
        user.modified_by = user.id

        db.commit()
        db.refresh(user)

        log_action(
            db, ActionType.PROFILE_UPDATED, "Profile updated",
            user_id=user.id, request=request, extra_data={"fields": sorted(changes)}
        )
        return user, None

    @staticmethod
    async def save_photo(
        db: Session,
        user: User,
        kind: str,
        upload: UploadFile,
        request: Optional[Request] = None
    ) -> Tuple[Optional[User], Optional[str]]:
        """
        Store an uploaded profile or cover image and replace the previous one.

        Args:
            db: Database session
            user: Current user
            kind: "profile" or "cover"
            upload: Uploaded image
            request: Incoming request (for the activity log)

        Returns:
            Tuple of (user, error_message)
        """
        attribute, uploaded_action, _ = PHOTO_KINDS[kind]

        extension = ALLOWED_IMAGE_TYPES.get(upload.content_type)
        if not extension:
            return None, "Only JPEG, PNG, GIF and WEBP images are allowed"

        content = await upload.read()
        if not content:
            return None, "Uploaded file is empty"
        if len(content) > settings.MAX_UPLOAD_SIZE:
            return None, f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB"

        directory = Path(settings.UPLOAD_DIR) / kind
        directory.mkdir(parents=True, exist_ok=True)
        filename = f"{user.id}_{uuid.uuid4().hex}.{extension}"
        (directory / filename).write_bytes(content)

        _remove_file(getattr(user, attribute))
        setattr(user, attribute, f"/uploads/{kind}/{filename}")
        db.commit()
        db.refresh(user)

        log_action(db, uploaded_action, f"{kind.title()} photo uploaded", user_id=user.id, request=request)
        return user, None

    @staticmethod
    def remove_photo(db: Session, user: User, kind: str, request: Optional[Request] = None) -> bool:
        attribute, _, removed_action = PHOTO_KINDS[kind]

        current = getattr(user, attribute)
        if not current:
            return False

        _remove_file(current)
        setattr(user, attribute, None)
        db.commit()

        log_action(db, removed_action, f"{kind.title()} photo removed", user_id=user.id, request=request)
        return True

    @staticmethod
    def get_preferences(db: Session, user: User) -> UserPreferences:
        """Return the user's preferences, creating the defaults on first access."""
        preferences = db.query(UserPreferences).filter(UserPreferences.user_id == user.id).first()
        if not preferences:
            preferences = UserPreferences(user_id=user.id)
            db.add(preferences)
            db.commit()
            db.refresh(preferences)
        return preferences

    @staticmethod
    def update_preferences(
        db: Session,
        user: User,
        data: PreferencesUpdate,
        request: Optional[Request] = None
    ) -> UserPreferences:
        preferences = UserService.get_preferences(db, user)

        changes = data.model_dump(exclude_unset=True, mode="json")
        for field, value in changes.items():
            if value is not None:
                setattr(preferences, field, value)

        db.commit()
        db.refresh(preferences)

        log_action(
            db, ActionType.PREFERENCES_UPDATED, "Preferences updated",
            user_id=user.id, request=request, extra_data={"fields": sorted(changes)}
        )
        return preferences

    @staticmethod
    def get_privacy(db: Session, user: User) -> Dict[str, Any]:
        preferences = UserService.get_preferences(db, user)
        return {
            "is_private": user.is_private,
            "playlist_visibility": preferences.playlist_visibility,
            "activity_visibility": preferences.activity_visibility,
        }

    @staticmethod
    def update_privacy(
        db: Session,
        user: User,
        data: PrivacyUpdate,
        request: Optional[Request] = None
    ) -> Dict[str, Any]:
        preferences = UserService.get_preferences(db, user)

        if data.is_private is not None:
            user.is_private = data.is_private
        if data.playlist_visibility is not None:
            preferences.playlist_visibility = data.playlist_visibility.value
        if data.activity_visibility is not None:
            preferences.activity_visibility = data.activity_visibility.value

        db.commit()

        log_action(db, ActionType.PRIVACY_UPDATED, "Privacy settings updated", user_id=user.id, request=request)
        return UserService.get_privacy(db, user)

    @staticmethod
    def disable_account(db: Session, user: User, password: str, request: Optional[Request] = None) -> Optional[str]:
        """Deactivate the account until the next successful login."""
        if not verify_password(password, user.hashed_password):
            return "Password is incorrect"

        user.account_status = AccountStatus.INACTIVE.value
        db.commit()

        log_action(db, ActionType.ACCOUNT_DISABLED, "Account disabled", user_id=user.id, request=request)
        return None

    @staticmethod
    def delete_account(db: Session, user: User, password: str, request: Optional[Request] = None) -> Optional[str]:
        """Soft-delete the account and revoke every session."""
        if not verify_password(password, user.hashed_password):
            return "Password is incorrect"

        user.account_status = AccountStatus.DELETED.value
        db.commit()
        AuthService.revoke_all_sessions(db, user.id)

        log_action(db, ActionType.ACCOUNT_DELETED, "Account deleted", user_id=user.id, request=request)
        return None

    @staticmethod
    def get_public_profile(db: Session, user_id: UUID) -> Optional[User]:
        return db.query(User).filter(
            User.id == user_id,
            User.account_status != AccountStatus.DELETED.value
        ).first()

    @staticmethod
    def list_bookmarks(db: Session, user: User, page: int, limit: int) -> Tuple[List[Bookmark], Dict[str, Any]]:
        query = db.query(Bookmark).filter(Bookmark.user_id == user.id).order_by(Bookmark.created_at.desc())
        return paginate(query, page, limit)

    @staticmethod
    def list_likes(
        db: Session,
        user: User,
        entity_type: Optional[str],
        page: int,
        limit: int
    ) -> Tuple[List[Like], Dict[str, Any]]:
        query = db.query(Like).filter(Like.user_id == user.id)
        if entity_type:
            query = query.filter(Like.entity_type == entity_type)
        return paginate(query.order_by(Like.created_at.desc()), page, limit)

    @staticmethod
    def list_history(
        db: Session,
        user: User,
        action_type: Optional[str],
        page: int,
        limit: int
    ) -> Tuple[List[LogAction], Dict[str, Any]]:
        query = db.query(LogAction).filter(LogAction.user_id == user.id)
        if action_type:
            query = query.filter(LogAction.action_type == action_type)
        return paginate(query.order_by(LogAction.created_at.desc()), page, limit)
