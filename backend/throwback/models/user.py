"""User model for authentication and authorization."""

from sqlalchemy import Column, String, Boolean, DateTime, Date, Text, Uuid, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from throwback.database import Base
from throwback.models.enums import AccountStatus, UserRole


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    profession = Column(String(100))
    phone = Column(String(30))
    bio = Column(Text)
    birth_date = Column(Date)
    gender = Column(String(10))
    country = Column(String(100))
    city = Column(String(100))
    address = Column(String(255))
    postal_code = Column(String(20))
    profile_photo = Column(String(500))
    cover_photo = Column(String(500))

    account_status = Column(String(20), default=AccountStatus.ACTIVE.value, nullable=False, index=True)
    role = Column(String(20), default=UserRole.USER.value, nullable=False, index=True)
    email_verified = Column(Boolean, default=False, nullable=False)
    is_private = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    modified_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    tokens = relationship("AccountToken", back_populates="user", cascade="all, delete-orphan")
    login_attempt = relationship("LoginAttempt", back_populates="user", uselist=False, cascade="all, delete-orphan")
    preferences = relationship("UserPreferences", back_populates="user", uselist=False, cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.ADMIN.value, UserRole.SUPERADMIN.value)

    @property
    def is_active(self) -> bool:
        """Accounts that may still authenticate (locked accounts unlock on login)."""
        return self.account_status not in (AccountStatus.SUSPENDED.value, AccountStatus.DELETED.value)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
