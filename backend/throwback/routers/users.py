"""User profile, privacy, preferences and personal library endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, UploadFile, File
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from throwback.database import get_db
from throwback.models.user import User
from throwback.models.enums import LikeEntity
from throwback.models.schemas import (
    UserResponse,
    PublicUserResponse,
    ProfileUpdate,
    PasswordConfirm,
    PrivacySettings,
    PrivacyUpdate,
    PreferencesResponse,
    PreferencesUpdate,
    LogActionPage,
    MessageResponse
)
from throwback.models.podcast_schemas import BookmarkListResponse, LikeRecordListResponse
from throwback.middleware.auth import get_current_user, get_optional_user
from throwback.services.user_service import UserService
from throwback.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter()


# ============================================
# Profile
# ============================================

@router.get("/profile/me", response_model=UserResponse)
def get_my_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/profile", response_model=UserResponse)
def update_profile(
    profile_data: ProfileUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update the current user's profile.

    Only the provided fields are changed.
    """
    user, error = UserService.update_profile(db, current_user, profile_data, request)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return user


@router.post("/profile/photo", response_model=UserResponse)
async def upload_profile_photo(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Upload a profile photo.

    - **file**: JPEG, PNG, GIF or WEBP image (size limited)
    """
    user, error = await UserService.save_photo(db, current_user, "profile", file, request)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return user


@router.delete("/profile/photo", response_model=MessageResponse)
def delete_profile_photo(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not UserService.remove_photo(db, current_user, "profile", request):
        raise HTTPException(status_code=404, detail="No profile photo to remove")
    return MessageResponse(message="Profile photo removed")


@router.post("/profile/cover", response_model=UserResponse)
async def upload_cover_photo(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    user, error = await UserService.save_photo(db, current_user, "cover", file, request)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return user


@router.delete("/profile/cover", response_model=MessageResponse)
def delete_cover_photo(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not UserService.remove_photo(db, current_user, "cover", request):
        raise HTTPException(status_code=404, detail="No cover photo to remove")
    return MessageResponse(message="Cover photo removed")


@router.get("/profile/privacy", response_model=PrivacySettings)
def get_privacy(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return UserService.get_privacy(db, current_user)


@router.put("/profile/privacy", response_model=PrivacySettings)
def update_privacy(
    privacy_data: PrivacyUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Update privacy settings.

    - **is_private**: Hide profile details from other users
    - **playlist_visibility** / **activity_visibility**: public, friends or private
    """
    return UserService.update_privacy(db, current_user, privacy_data, request)


@router.put("/profile/disable", response_model=MessageResponse)
def disable_account(
    payload: PasswordConfirm,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Deactivate the account. Logging in again reactivates it."""
    error = UserService.disable_account(db, current_user, payload.password, request)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return MessageResponse(message="Account disabled")


@router.delete("/profile", response_model=MessageResponse)
def delete_account(
    payload: PasswordConfirm,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete the account. All sessions are revoked."""
    error = UserService.delete_account(db, current_user, payload.password, request)
    if error:
        raise HTTPException(status_code=400, detail=error)
    return MessageResponse(message="Account deleted")


# ============================================
# Preferences
# ============================================

@router.get("/preferences", response_model=PreferencesResponse)
def get_preferences(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return UserService.get_preferences(db, current_user)


@router.put("/preferences", response_model=PreferencesResponse)
def update_preferences(
    preferences_data: PreferencesUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return UserService.update_preferences(db, current_user, preferences_data, request)


# ============================================
# Personal library
# ============================================

@router.get("/me/bookmarks", response_model=BookmarkListResponse)
def my_bookmarks(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Saved videos and podcasts, newest first."""
    items, meta = UserService.list_bookmarks(db, current_user, page, limit)
    return BookmarkListResponse(items=items, pagination=meta)


@router.get("/me/likes", response_model=LikeRecordListResponse)
def my_likes(
    entity_type: Optional[LikeEntity] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    items, meta = UserService.list_likes(
        db, current_user, entity_type.value if entity_type else None, page, limit
    )
    return LikeRecordListResponse(items=items, pagination=meta)


@router.get("/me/history", response_model=LogActionPage)
def my_history(
    action_type: Optional[str] = Query(None, max_length=50),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """The current user's own activity log."""
    items, meta = UserService.list_history(db, current_user, action_type, page, limit)
    return LogActionPage(items=items, pagination=meta)


@router.get("/{user_id}", response_model=PublicUserResponse, response_model_exclude_none=True)
def get_public_profile(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """
    Public profile of a user.

    Private accounts only expose their name and photos to other users.
    """
    user = UserService.get_public_profile(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    profile = PublicUserResponse.model_validate(user)

    can_see_all = current_user is not None and (current_user.id == user.id or current_user.is_admin)
    if user.is_private and not can_see_all:
        profile = PublicUserResponse(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            profile_photo=user.profile_photo,
            cover_photo=user.cover_photo,
            is_private=True
        )

    return profile
