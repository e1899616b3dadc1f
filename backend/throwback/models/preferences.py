"""Per-user preferences model."""

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from throwback.database import Base
from throwback.models.enums import Visibility, Language, Theme


class UserPreferences(Base):
    """Content, notification and privacy preferences (one row per user)."""

    __tablename__ = "user_preferences"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    # Content
    favorite_genres = Column(JSON, default=list, nullable=False)
    favorite_decades = Column(JSON, default=list, nullable=False)
    favorite_artists = Column(JSON, default=list, nullable=False)

    # Notifications
    notify_new_friends = Column(Boolean, default=True, nullable=False)
    notify_messages = Column(Boolean, default=True, nullable=False)
    notify_comments = Column(Boolean, default=True, nullable=False)
    notify_mentions = Column(Boolean, default=True, nullable=False)
    notify_events = Column(Boolean, default=True, nullable=False)
    notify_recommendations = Column(Boolean, default=True, nullable=False)
    notify_email = Column(Boolean, default=True, nullable=False)
    notify_push = Column(Boolean, default=False, nullable=False)

    # Privacy
    playlist_visibility = Column(String(10), default=Visibility.PUBLIC.value, nullable=False)
    activity_visibility = Column(String(10), default=Visibility.FRIENDS.value, nullable=False)
    auto_share = Column(Boolean, default=False, nullable=False)
    allow_friend_suggestions = Column(Boolean, default=True, nullable=False)

    # Interface
    language = Column(String(2), default=Language.FR.value, nullable=False)
    theme = Column(String(10), default=Theme.LIGHT.value, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="preferences")

    def __repr__(self):
        return f"<UserPreferences(user_id={self.user_id}, language={self.language}, theme={self.theme})>"
