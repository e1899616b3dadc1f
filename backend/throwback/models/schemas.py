"""Pydantic schemas for accounts, authentication and shared responses."""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import date, datetime
from uuid import UUID

from throwback.models.enums import Gender, Visibility, Language, Theme


# ============================================
# User Schemas
# ============================================

class UserBase(BaseModel):
    """Base user schema."""
    email: EmailStr
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class UserCreate(UserBase):
    """Schema for user registration."""
    password: str = Field(..., min_length=8)
    profession: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    country: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)

    @field_validator('birth_date')
    @classmethod
    def birth_date_in_past(cls, v):
        """Birth date cannot be in the future."""
        if v and v > date.today():
            raise ValueError('Birth date cannot be in the future')
        return v


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str
    captcha_id: Optional[str] = None
    captcha_answer: Optional[str] = None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class UserResponse(BaseModel):
    """Schema for user response."""
    id: UUID
    email: EmailStr
    first_name: str
    last_name: str
    profession: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    postal_code: Optional[str] = None
    profile_photo: Optional[str] = None
    cover_photo: Optional[str] = None
    account_status: str
    role: str
    email_verified: bool
    is_private: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class PublicUserResponse(BaseModel):
    """Profile as seen by other users. Private accounts only expose basic fields."""
    id: UUID
    first_name: str
    last_name: str
    profile_photo: Optional[str] = None
    cover_photo: Optional[str] = None
    is_private: bool
    bio: Optional[str] = None
    profession: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """Compact author/owner representation embedded in content responses."""
    id: UUID
    first_name: str
    last_name: str
    profile_photo: Optional[str] = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    """Schema for updating the current user's profile."""
    first_name: Optional[str] = Field(None, min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, min_length=2, max_length=100)
    profession: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    bio: Optional[str] = Field(None, max_length=1000)
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    country: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    postal_code: Optional[str] = Field(None, max_length=20)


class PasswordChange(BaseModel):
    """Schema for password change."""
    current_password: str
    new_password: str = Field(..., min_length=8)


class PasswordConfirm(BaseModel):
    """Password confirmation for sensitive account operations."""
    password: str


# ============================================
# Authentication Schemas
# ============================================

class Token(BaseModel):
    """Schema for JWT token response."""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
    redirect_url: str


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class EmailRequest(BaseModel):
    email: EmailStr


class ForgotPasswordRequest(BaseModel):
    email: EmailStr
    captcha_id: str
    captcha_answer: str


class ResetPasswordRequest(BaseModel):
    token: str
    password: str = Field(..., min_length=6)


class CaptchaResponse(BaseModel):
    captcha_id: UUID
    question: str
    expires_at: datetime


class CaptchaVerifyRequest(BaseModel):
    captcha_id: str
    answer: str


class CaptchaVerifyResponse(BaseModel):
    valid: bool


# ============================================
# Privacy & Preferences Schemas
# ============================================

class PrivacySettings(BaseModel):
    is_private: bool
    playlist_visibility: Visibility
    activity_visibility: Visibility


class PrivacyUpdate(BaseModel):
    is_private: Optional[bool] = None
    playlist_visibility: Optional[Visibility] = None
    activity_visibility: Optional[Visibility] = None


class PreferencesResponse(BaseModel):
    favorite_genres: List[str]
    favorite_decades: List[str]
    favorite_artists: List[str]
    notify_new_friends: bool
    notify_messages: bool
    notify_comments: bool
    notify_mentions: bool
    notify_events: bool
    notify_recommendations: bool
    notify_email: bool
    notify_push: bool
    playlist_visibility: str
    activity_visibility: str
    auto_share: bool
    allow_friend_suggestions: bool
    language: str
    theme: str
    updated_at: datetime

    class Config:
        from_attributes = True


class PreferencesUpdate(BaseModel):
    favorite_genres: Optional[List[str]] = None
    favorite_decades: Optional[List[str]] = None
    favorite_artists: Optional[List[str]] = Field(None, max_length=50)
    notify_new_friends: Optional[bool] = None
    notify_messages: Optional[bool] = None
    notify_comments: Optional[bool] = None
    notify_mentions: Optional[bool] = None
    notify_events: Optional[bool] = None
    notify_recommendations: Optional[bool] = None
    notify_email: Optional[bool] = None
    notify_push: Optional[bool] = None
    playlist_visibility: Optional[Visibility] = None
    activity_visibility: Optional[Visibility] = None
    auto_share: Optional[bool] = None
    allow_friend_suggestions: Optional[bool] = None
    language: Optional[Language] = None
    theme: Optional[Theme] = None


# ============================================
# Activity Schemas
# ============================================

class LogActionResponse(BaseModel):
    id: UUID
    action_type: str
    description: str
    user_id: Optional[UUID] = None
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    ip_address: Optional[str] = None
    extra_data: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================
# Generic Response Schemas
# ============================================

class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class LogActionPage(BaseModel):
    items: List[LogActionResponse]
    pagination: PaginationMeta


class ToggleResponse(BaseModel):
    """Result of a like/dislike/favourite/bookmark toggle."""
    active: bool
    action: Optional[str] = None
    likes: Optional[int] = None
    dislikes: Optional[int] = None
    count: Optional[int] = None


class MessageResponse(BaseModel):
    """Generic message response."""
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Generic error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

