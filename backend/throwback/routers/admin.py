"""Admin console endpoints: dashboard, user management and activity logs."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
from uuid import UUID

from throwback.database import get_db
from throwback.models.user import User
from throwback.models.enums import AccountStatus, UserRole
from throwback.models.schemas import UserResponse, LogActionPage, MessageResponse
from throwback.models.admin_schemas import (
    AdminUserCreate,
    AdminUserUpdate,
    AdminUserListResponse,
    AdminUserDetails,
    StatusChange,
    RoleChange,
    BulkStatusChange,
    BulkDelete,
    BulkResult,
    LoginAttemptResponse,
    DashboardResponse
)
from throwback.middleware.auth import get_current_admin, get_current_superadmin
from throwback.services.admin_service import AdminService
from throwback.utils.pagination import MAX_PAGE_SIZE

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """
    Platform overview: content counts, recent users and activity, and the
    daily activity and likes of the last 7 days.
    """
    return AdminService.dashboard(db)


# ============================================
# Users
# ============================================

@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    payload: AdminUserCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """
    Create a verified account.

    - **role**: user, admin or superadmin (admin roles need a superadmin)
    - **account_status**: Initial status, ACTIVE by default
    """
    return AdminService.create_user(db, payload, admin, request)


@router.get("/users", response_model=AdminUserListResponse)
def list_users(
    search: Optional[str] = Query(None, max_length=100, description="Matches names and email"),
    status: Optional[AccountStatus] = Query(None),
    role: Optional[UserRole] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    users, meta = AdminService.list_users(db, search, status, role, page, limit)
    return AdminUserListResponse(items=users, pagination=meta)


@router.put("/users/bulk/status", response_model=BulkResult)
def bulk_status(
    payload: BulkStatusChange,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Change the status of several accounts. Your own account is skipped."""
    updated, skipped = AdminService.bulk_status(db, payload.user_ids, payload.status, admin, request)
    return BulkResult(message=f"Status updated for {updated} users", updated=updated, skipped=skipped)


@router.delete("/users/bulk", response_model=BulkResult)
def bulk_delete(
    payload: BulkDelete,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    updated, skipped = AdminService.bulk_delete(db, payload.user_ids, admin, request)
    return BulkResult(message=f"{updated} users deleted", updated=updated, skipped=skipped)


@router.get("/users/{user_id}", response_model=AdminUserDetails)
def user_details(
    user_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Account with its latest activity, login attempts and open sessions."""
    user = AdminService.get_user(db, user_id)
    return AdminService.user_details(db, user)


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: UUID,
    payload: AdminUserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    user = AdminService.get_user(db, user_id)
    return AdminService.update_user(db, user, payload, admin, request)


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    user = AdminService.get_user(db, user_id)
    AdminService.delete_user(db, user, admin, request)
    return MessageResponse(message="User deleted")


@router.put("/users/{user_id}/status", response_model=UserResponse)
def change_status(
    user_id: UUID,
    payload: StatusChange,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """
    Change an account status.

    - **LOCKED**: Blocks logins for the lockout period
    - **ACTIVE**: Clears failed login attempts
    """
    user = AdminService.get_user(db, user_id)
    return AdminService.change_status(db, user, payload.status, admin, request)


@router.put("/users/{user_id}/reset-login-attempts", response_model=UserResponse)
def reset_login_attempts(
    user_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    user = AdminService.get_user(db, user_id)
    return AdminService.reset_login_attempts(db, user, admin, request)


@router.put("/users/{user_id}/role", response_model=UserResponse)
def change_role(
    user_id: UUID,
    payload: RoleChange,
    request: Request,
    db: Session = Depends(get_db),
    superadmin: User = Depends(get_current_superadmin)
):
    """Superadmins only. Your own role cannot be changed."""
    user = AdminService.get_user(db, user_id)
    return AdminService.change_role(db, user, payload.role, superadmin, request)


@router.get("/users/{user_id}/login-attempts", response_model=Optional[LoginAttemptResponse])
def login_attempts(
    user_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Failed login counter and lock state, or null if the user never failed a login."""
    user = AdminService.get_user(db, user_id)
    return AdminService.login_attempts(db, user)


# ============================================
# Activity logs
# ============================================

@router.get("/logs", response_model=LogActionPage)
def list_logs(
    user_id: Optional[UUID] = Query(None),
    action_type: Optional[str] = Query(None, max_length=50),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Activity logs, newest first, filtered by user, action type and date range."""
    if user_id:
        AdminService.get_user(db, user_id)
    logs, meta = AdminService.list_logs(db, user_id, action_type, date_from, date_to, page, limit)
    return LogActionPage(items=logs, pagination=meta)
