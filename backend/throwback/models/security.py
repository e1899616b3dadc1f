"""Session, one-time token, login attempt and captcha models."""

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text, Integer, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime, timedelta
import uuid

from throwback.database import Base


class UserSession(Base):
    """User session model for JWT token management."""

    __tablename__ = "user_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    session_token = Column(String(500), unique=True, nullable=False, index=True)
    ip_address = Column(String(45), nullable=True)  # IPv6 max length
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    last_activity = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="sessions")

    def __repr__(self):
        return f"<UserSession(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at})>"


class AccountToken(Base):
    """One-time token for email verification, activation and password reset."""

    __tablename__ = "account_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Password reset tokens are stored as a SHA-256 digest
    token = Column(String(128), nullable=False, index=True)
    token_type = Column(String(30), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    user = relationship("User", back_populates="tokens")

    @property
    def is_expired(self) -> bool:
        return self.expires_at < datetime.utcnow()

    def __repr__(self):
        return f"<AccountToken(id={self.id}, user_id={self.user_id}, type={self.token_type})>"


class LoginAttempt(Base):
    """Failed login counter and lock state, one row per user."""

    __tablename__ = "login_attempts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    attempts = Column(Integer, default=0, nullable=False)
    last_attempt = Column(DateTime, default=datetime.utcnow, nullable=False)
    locked_until = Column(DateTime, nullable=True)
    success = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="login_attempt")

    @property
    def is_locked(self) -> bool:
        return self.locked_until is not None and self.locked_until > datetime.utcnow()

    @property
    def minutes_remaining(self) -> int:
        if not self.is_locked:
            return 0
        seconds = (self.locked_until - datetime.utcnow()).total_seconds()
        return max(1, int(-(-seconds // 60)))

    def lock(self, minutes: int):
        self.locked_until = datetime.utcnow() + timedelta(minutes=minutes)

    def reset(self):
        self.attempts = 0
        self.locked_until = None
        self.success = True

    def __repr__(self):
        return f"<LoginAttempt(user_id={self.user_id}, attempts={self.attempts}, locked_until={self.locked_until})>"


class CaptchaChallenge(Base):
    """Single-use arithmetic captcha."""

    __tablename__ = "captcha_challenges"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question = Column(String(50), nullable=False)
    answer_hash = Column(String(128), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<CaptchaChallenge(id={self.id}, expires_at={self.expires_at})>"
