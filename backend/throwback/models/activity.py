"""Persisted user activity and audit trail."""

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, JSON, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from throwback.database import Base


class ActionType:
    """Action type constants recorded in the activity log."""

    # Accounts
    REGISTER = "REGISTER"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    VERIFICATION_RESENT = "VERIFICATION_RESENT"
    PASSWORD_RESET_REQUESTED = "PASSWORD_RESET_REQUESTED"
    PASSWORD_RESET = "PASSWORD_RESET"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PROFILE_UPDATED = "PROFILE_UPDATED"
    PROFILE_PHOTO_UPLOADED = "PROFILE_PHOTO_UPLOADED"
    PROFILE_PHOTO_REMOVED = "PROFILE_PHOTO_REMOVED"
    COVER_PHOTO_UPLOADED = "COVER_PHOTO_UPLOADED"
    COVER_PHOTO_REMOVED = "COVER_PHOTO_REMOVED"
    PRIVACY_UPDATED = "PRIVACY_UPDATED"
    PREFERENCES_UPDATED = "PREFERENCES_UPDATED"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"

    # Videos
    VIDEO_VIEW = "VIDEO_VIEW"
    VIDEO_LIKED = "VIDEO_LIKED"
    VIDEO_SHARED = "VIDEO_SHARED"
    VIDEO_BOOKMARKED = "VIDEO_BOOKMARKED"
    CREATE_VIDEO = "CREATE_VIDEO"
    UPDATE_VIDEO = "UPDATE_VIDEO"
    DELETE_VIDEO = "DELETE_VIDEO"

    # Memories
    MEMORY_ADDED = "MEMORY_ADDED"
    MEMORY_REPLY = "MEMORY_REPLY"
    MEMORY_LIKED = "MEMORY_LIKED"
    MEMORY_DELETED = "MEMORY_DELETED"
    MEMORY_REPORTED = "MEMORY_REPORTED"
    MEMORY_MODERATED = "MEMORY_MODERATED"

    # Playlists
    CREATE_PLAYLIST = "CREATE_PLAYLIST"
    UPDATE_PLAYLIST = "UPDATE_PLAYLIST"
    DELETE_PLAYLIST = "DELETE_PLAYLIST"
    PLAYLIST_VIDEO_ADDED = "PLAYLIST_VIDEO_ADDED"
    PLAYLIST_VIDEO_REMOVED = "PLAYLIST_VIDEO_REMOVED"
    PLAYLIST_VIEWED = "PLAYLIST_VIEWED"
    PLAYLIST_REORDERED = "PLAYLIST_REORDERED"
    PLAYLIST_FAVORITED = "PLAYLIST_FAVORITED"
    PLAYLIST_LIKED = "PLAYLIST_LIKED"
    PLAYLIST_SHARED = "PLAYLIST_SHARED"
    PLAYLIST_COLLABORATOR_ADDED = "PLAYLIST_COLLABORATOR_ADDED"
    PLAYLIST_COLLABORATOR_REMOVED = "PLAYLIST_COLLABORATOR_REMOVED"

    # Podcasts
    CREATE_PODCAST = "CREATE_PODCAST"
    UPDATE_PODCAST = "UPDATE_PODCAST"
    DELETE_PODCAST = "DELETE_PODCAST"
    PODCAST_LIKED = "PODCAST_LIKED"
    PODCAST_BOOKMARKED = "PODCAST_BOOKMARKED"
    PODCAST_MEMORY_ADDED = "PODCAST_MEMORY_ADDED"
    PODCAST_SHARED = "PODCAST_SHARED"

    # Live streams
    CREATE_LIVESTREAM = "CREATE_LIVESTREAM"
    UPDATE_LIVESTREAM = "UPDATE_LIVESTREAM"
    DELETE_LIVESTREAM = "DELETE_LIVESTREAM"
    START_LIVESTREAM = "START_LIVESTREAM"
    END_LIVESTREAM = "END_LIVESTREAM"
    CANCEL_LIVESTREAM = "CANCEL_LIVESTREAM"
    AUTO_START_LIVESTREAM = "AUTO_START_LIVESTREAM"
    AUTO_END_LIVESTREAM = "AUTO_END_LIVESTREAM"
    VIEW_LIVESTREAM = "VIEW_LIVESTREAM"
    LIKE_LIVESTREAM = "LIKE_LIVESTREAM"
    BAN_USER = "BAN_USER"
    UNBAN_USER = "UNBAN_USER"

    # Live chat
    VIEW_LIVESTREAM_CHAT = "VIEW_LIVESTREAM_CHAT"
    CHAT_MESSAGE = "CHAT_MESSAGE"
    MODERATION_MESSAGE = "MODERATION_MESSAGE"
    DELETE_OWN_MESSAGE = "DELETE_OWN_MESSAGE"
    REPORT_MESSAGE = "REPORT_MESSAGE"

    # Admin
    ADMIN_CREATE_USER = "ADMIN_CREATE_USER"
    ADMIN_UPDATE_USER = "ADMIN_UPDATE_USER"
    STATUS_CHANGED = "STATUS_CHANGED"
    ROLE_CHANGED = "ROLE_CHANGED"
    LOGIN_ATTEMPTS_RESET = "LOGIN_ATTEMPTS_RESET"
    ADMIN_DELETE_USER = "ADMIN_DELETE_USER"
    BULK_STATUS_CHANGED = "BULK_STATUS_CHANGED"
    BULK_DELETE = "BULK_DELETE"


class LogAction(Base):
    """A single recorded user or system action."""

    __tablename__ = "log_actions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    action_type = Column(String(50), nullable=False, index=True)
    description = Column(Text, nullable=False)

    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Target of the action, used for per-entity lookups (views, reports)
    entity_type = Column(String(30), nullable=True)
    entity_id = Column(Uuid, nullable=True, index=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    extra_data = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = relationship("User", foreign_keys=[user_id])

    def __repr__(self):
        return f"<LogAction(id={self.id}, action_type={self.action_type}, user_id={self.user_id})>"
