"""Pydantic schemas for the admin console."""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from throwback.models.enums import AccountStatus, UserRole, Gender
from throwback.models.schemas import UserResponse, LogActionResponse, PaginationMeta


# ============================================
# User management
# ============================================

class AdminUserCreate(BaseModel):
    """Accounts created by an admin are verified immediately."""
    email: EmailStr
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.USER
    account_status: AccountStatus = AccountStatus.ACTIVE

    @field_validator('email')
    @classmethod
    def lower_email(cls, v):
        return v.lower()


class AdminUserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, min_length=2, max_length=100)
    password: Optional[str] = Field(None, min_length=8)
    profession: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    bio: Optional[str] = Field(None, max_length=1000)
    gender: Optional[Gender] = None
    country: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    postal_code: Optional[str] = Field(None, max_length=20)
    is_private: Optional[bool] = None
    email_verified: Optional[bool] = None

    @field_validator('email')
    @classmethod
    def lower_email(cls, v):
        return v.lower() if v else v


class StatusChange(BaseModel):
    status: AccountStatus


class RoleChange(BaseModel):
    role: UserRole


class BulkStatusChange(BaseModel):
    user_ids: List[UUID] = Field(..., min_length=1)
    status: AccountStatus


class BulkDelete(BaseModel):
    user_ids: List[UUID] = Field(..., min_length=1)


class BulkResult(BaseModel):
    message: str
    updated: int
    skipped: List[UUID] = []


class LoginAttemptResponse(BaseModel):
    attempts: int
    last_attempt: Optional[datetime] = None
    locked_until: Optional[datetime] = None
    is_locked: bool
    success: bool
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    class Config:
        from_attributes = True


class AdminUserListResponse(BaseModel):
    items: List[UserResponse]
    pagination: PaginationMeta


class AdminUserDetails(BaseModel):
    user: UserResponse
    recent_logs: List[LogActionResponse]
    login_attempts: Optional[LoginAttemptResponse] = None
    active_sessions: int


# ============================================
# Dashboard
# ============================================

class BasicStats(BaseModel):
    users: int
    videos: int
    comments: int
    playlists: int
    podcasts: int
    livestreams: int
    memories: int


class RecentUser(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    account_status: str
    created_at: datetime

    class Config:
        from_attributes = True


class DayCount(BaseModel):
    day: str
    count: int


class KeyCount(BaseModel):
    key: str
    count: int


class ContentDistribution(BaseModel):
    videos: int
    shorts: int
    music: int
    podcasts: int
    livestreams: int


class TopVideo(BaseModel):
    id: UUID
    title: str
    artist: Optional[str] = None
    views: int
    likes: int
    type: str

    class Config:
        from_attributes = True


class DashboardResponse(BaseModel):
    basic_stats: BasicStats
    recent_users: List[RecentUser]
    recent_activity: List[LogActionResponse]
    daily_activity: List[DayCount]
    content_distribution: ContentDistribution
    top_videos: List[TopVideo]
    decade_stats: List[KeyCount]
    user_status_stats: List[KeyCount]
    like_activity: List[DayCount]
    action_types: List[KeyCount]
