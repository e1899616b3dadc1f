"""Admin console: dashboard statistics, user management and audit logs."""

from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from fastapi import Request
from datetime import datetime, timedelta, date
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from throwback.config import settings
from throwback.models.user import User
from throwback.models.security import LoginAttempt, UserSession
from throwback.models.activity import ActionType, LogAction
from throwback.models.video import Video
from throwback.models.comment import Comment, PodcastMemory
from throwback.models.playlist import Playlist
from throwback.models.podcast import Podcast
from throwback.models.livestream import LiveStream
from throwback.models.interaction import Like
from throwback.models.enums import AccountStatus, UserRole, VideoType
from throwback.models.admin_schemas import AdminUserCreate, AdminUserUpdate
from throwback.services.activity_service import log_action
from throwback.services.auth_service import AuthService
from throwback.services.errors import ServiceError, NotFoundError, PermissionDeniedError, ConflictError
from throwback.services.logging_service import app_logger
from throwback.utils.pagination import paginate
from throwback.utils.security import hash_password, validate_password_strength
from throwback.utils.validators import validate_name, sanitize_input

DASHBOARD_DAYS = 7
RECENT_LIMIT = 5
ACTION_TYPES_LIMIT = 10
RECENT_LOGS_LIMIT = 20


def _daily_counts(db: Session, column, days: int = DASHBOARD_DAYS) -> List[Dict[str, Any]]:
    """Rows per day over the last `days` days, zero-filled and oldest first."""
    today = datetime.utcnow().date()
    first_day = today - timedelta(days=days - 1)
    since = datetime.combine(first_day, datetime.min.time())

    day = func.date(column)
    rows = db.query(day, func.count()).filter(column >= since).group_by(day).all()
    counts = {str(key): count for key, count in rows}

    return [
        {"day": str(first_day + timedelta(days=offset)), "count": counts.get(str(first_day + timedelta(days=offset)), 0)}
        for offset in range(days)
    ]


def _key_counts(rows) -> List[Dict[str, Any]]:
    return [{"key": str(key), "count": count} for key, count in rows if key is not None]


class AdminService:
    """Service for the admin console."""

    @staticmethod
    def dashboard(db: Session) -> Dict[str, Any]:
        def count(model, *criteria):
            return db.query(func.count(model.id)).filter(*criteria).scalar()

        videos = count(Video)

        return {
            "basic_stats": {
                "users": count(User),
                "videos": videos,
                "comments": count(Comment),
                "playlists": count(Playlist),
                "podcasts": count(Podcast),
                "livestreams": count(LiveStream),
                "memories": count(PodcastMemory),
            },
            "recent_users": db.query(User).order_by(User.created_at.desc()).limit(RECENT_LIMIT).all(),
            "recent_activity": db.query(LogAction).order_by(LogAction.created_at.desc()).limit(RECENT_LIMIT).all(),
            "daily_activity": _daily_counts(db, LogAction.created_at),
            "content_distribution": {
                "videos": videos,
                "shorts": count(Video, Video.type == VideoType.SHORT.value),
                "music": count(Video, Video.type == VideoType.MUSIC.value),
                "podcasts": count(Podcast),
                "livestreams": count(LiveStream),
            },
            "top_videos": db.query(Video).order_by(Video.views.desc()).limit(RECENT_LIMIT).all(),
            "decade_stats": _key_counts(
                db.query(Video.decade, func.count(Video.id))
                .filter(Video.type == VideoType.MUSIC.value, Video.decade.isnot(None))
                .group_by(Video.decade).order_by(Video.decade).all()
            ),
            "user_status_stats": _key_counts(
                db.query(User.account_status, func.count(User.id))
                .group_by(User.account_status).order_by(User.account_status).all()
            ),
            "like_activity": _daily_counts(db, Like.created_at),
            "action_types": _key_counts(
                db.query(LogAction.action_type, func.count(LogAction.id))
                .group_by(LogAction.action_type)
                .order_by(func.count(LogAction.id).desc())
                .limit(ACTION_TYPES_LIMIT).all()
            ),
        }

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @staticmethod
    def get_user(db: Session, user_id: UUID) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def list_users(
        db: Session,
        search: Optional[str] = None,
        status: Optional[AccountStatus] = None,
        role: Optional[UserRole] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[User], Dict[str, Any]]:
        query = db.query(User)

        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern)
            ))
        if status:
            query = query.filter(User.account_status == status.value)
        if role:
            query = query.filter(User.role == role.value)

        return paginate(query.order_by(User.created_at.desc()), page, limit)

    @staticmethod
    def user_details(db: Session, user: User) -> Dict[str, Any]:
        recent_logs = db.query(LogAction).filter(
            LogAction.user_id == user.id
        ).order_by(LogAction.created_at.desc()).limit(RECENT_LOGS_LIMIT).all()

        active_sessions = db.query(func.count(UserSession.id)).filter(
            UserSession.user_id == user.id,
            UserSession.expires_at > datetime.utcnow()
        ).scalar()

        return {
            "user": user,
            "recent_logs": recent_logs,
            "login_attempts": AdminService.login_attempts(db, user),
            "active_sessions": active_sessions,
        }

    @staticmethod
    def login_attempts(db: Session, user: User) -> Optional[LoginAttempt]:
        return db.query(LoginAttempt).filter(LoginAttempt.user_id == user.id).first()

    @staticmethod
    def create_user(db: Session, data: AdminUserCreate, admin: User, request: Optional[Request] = None) -> User:
        """
        Create a verified account with the given role and status.

        Raises:
            ServiceError: If a name or the password is invalid
            PermissionDeniedError: If a non-superadmin grants an admin role
            ConflictError: If the email is already registered
        """
        for value, label in ((data.first_name, "First name"), (data.last_name, "Last name")):
            is_valid, error = validate_name(value, label)
            if not is_valid:
                raise ServiceError(error)

        is_valid, error = validate_password_strength(data.password)
        if not is_valid:
            raise ServiceError(error)

        if data.role != UserRole.USER and admin.role != UserRole.SUPERADMIN.value:
            raise PermissionDeniedError("Only a superadmin can create admin accounts")

        if db.query(User).filter(User.email == data.email).first():
            raise ConflictError("Email already registered")

        user = User(
            email=data.email,
            hashed_password=hash_password(data.password),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            role=data.role.value,
            account_status=data.account_status.value,
            email_verified=True,
            created_by=admin.id,
            modified_by=admin.id
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        log_action(
            db, ActionType.ADMIN_CREATE_USER, f"Account created by an admin: {user.email}",
            user_id=user.id, request=request, created_by=admin.id
        )
        app_logger.info("User created by admin", user_id=str(user.id), admin_id=str(admin.id))
        return user

    @staticmethod
    def update_user(
        db: Session,
        user: User,
        data: AdminUserUpdate,
        admin: User,
        request: Optional[Request] = None
    ) -> User:
        """Partial update; the changed field names are recorded in the log."""
        changes = data.model_dump(exclude_unset=True)

        for field, label in (("first_name", "First name"), ("last_name", "Last name")):
            if changes.get(field) is not None:
                is_valid, error = validate_name(changes[field], label)
                if not is_valid:
                    raise ServiceError(error)
                changes[field] = changes[field].strip()

        email = changes.get("email")
        if email and email != user.email:
            taken = db.query(User.id).filter(User.email == email, User.id != user.id).first()
            if taken:
                raise ConflictError("Email already used by another account")

        password = changes.pop("password", None)
        if password:
            is_valid, error = validate_password_strength(password)
            if not is_valid:
                raise ServiceError(error)
            user.hashed_password = hash_password(password)

        if changes.get("gender") is not None:
            changes["gender"] = changes["gender"].value
        if changes.get("bio"):
            changes["bio"] = sanitize_input(changes["bio"])

        changed = []
        for field, value in changes.items():
            if value is None and field in ("email", "first_name", "last_name", "is_private", "email_verified"):
                continue
            if getattr(user, field) != value:
                setattr(user, field, value)
                changed.append(field)
        if password:
            changed.append("password")

        user.modified_by = admin.id
        db.commit()
        db.refresh(user)

        if changed:
            log_action(
                db, ActionType.ADMIN_UPDATE_USER, f"Account updated by an admin: {user.email}",
                user_id=user.id, request=request, created_by=admin.id,
                extra_data={"fields": changed}
            )
        return user

    @staticmethod
    def _apply_status(db: Session, user: User, status: AccountStatus, admin: User):
        user.account_status = status.value
        user.modified_by = admin.id

        attempt = db.query(LoginAttempt).filter(LoginAttempt.user_id == user.id).first()
        if status == AccountStatus.LOCKED:
            if attempt is None:
                attempt = LoginAttempt(user_id=user.id, attempts=0)
                db.add(attempt)
            attempt.lock(settings.LOCKOUT_MINUTES)
        elif status == AccountStatus.ACTIVE and attempt is not None:
            attempt.reset()

    @staticmethod
    def change_status(
        db: Session,
        user: User,
        status: AccountStatus,
        admin: User,
        request: Optional[Request] = None
    ) -> User:
        """
        Change an account status.

        LOCKED also locks logins for the lockout period, ACTIVE clears the
        failed attempts. Sessions are revoked when the account can no longer
        be used.
        """
        if user.id == admin.id:
            raise ServiceError("You cannot change the status of your own account")

        previous = user.account_status
        AdminService._apply_status(db, user, status, admin)
        db.commit()
        db.refresh(user)

        if status in (AccountStatus.LOCKED, AccountStatus.SUSPENDED, AccountStatus.DELETED):
            AuthService.revoke_all_sessions(db, user.id)

        log_action(
            db, ActionType.STATUS_CHANGED, f"Status changed from {previous} to {status.value}",
            user_id=user.id, request=request, created_by=admin.id,
            extra_data={"from": previous, "to": status.value}
        )
        return user

    @staticmethod
    def reset_login_attempts(db: Session, user: User, admin: User, request: Optional[Request] = None) -> User:
        """Clear failed attempts and reactivate an account locked by them."""
        attempt = AdminService.login_attempts(db, user)
        if attempt is not None:
            attempt.reset()
        if user.account_status == AccountStatus.LOCKED.value:
            user.account_status = AccountStatus.ACTIVE.value
        user.modified_by = admin.id
        db.commit()
        db.refresh(user)

        log_action(
            db, ActionType.LOGIN_ATTEMPTS_RESET, "Login attempts reset",
            user_id=user.id, request=request, created_by=admin.id
        )
        return user

    @staticmethod
    def delete_user(db: Session, user: User, admin: User, request: Optional[Request] = None):
        """Soft delete: the account is marked DELETED and its sessions revoked."""
        if user.id == admin.id:
            raise ServiceError("You cannot delete your own account")
        if user.role == UserRole.SUPERADMIN.value and admin.role != UserRole.SUPERADMIN.value:
            raise PermissionDeniedError("Only a superadmin can delete a superadmin")

        user.account_status = AccountStatus.DELETED.value
        user.modified_by = admin.id
        db.commit()
        AuthService.revoke_all_sessions(db, user.id)

        log_action(
            db, ActionType.ADMIN_DELETE_USER, f"Account deleted by an admin: {user.email}",
            user_id=user.id, request=request, created_by=admin.id
        )

    @staticmethod
    def bulk_status(
        db: Session,
        user_ids: List[UUID],
        status: AccountStatus,
        admin: User,
        request: Optional[Request] = None
    ) -> Tuple[int, List[UUID]]:
        """
        Change the status of several accounts.

        The admin's own account and unknown ids are skipped.

        Returns:
            Tuple of (updated_count, skipped_ids)
        """
        ids = list(dict.fromkeys(user_ids))
        users = db.query(User).filter(User.id.in_(ids), User.id != admin.id).all()
        found = {user.id for user in users}
        skipped = [user_id for user_id in ids if user_id not in found]

        for user in users:
            AdminService._apply_status(db, user, status, admin)
        db.commit()

        if status in (AccountStatus.LOCKED, AccountStatus.SUSPENDED, AccountStatus.DELETED):
            for user in users:
                AuthService.revoke_all_sessions(db, user.id)

        for user in users:
            log_action(
                db, ActionType.BULK_STATUS_CHANGED, f"Status changed to {status.value} (bulk)",
                user_id=user.id, request=request, created_by=admin.id
            )
        return len(users), skipped

    @staticmethod
    def bulk_delete(db: Session, user_ids: List[UUID], admin: User, request: Optional[Request] = None) -> Tuple[int, List[UUID]]:
        """
        Soft delete several accounts.

        Raises:
            ServiceError: If the admin's own account is in the list
        """
        ids = list(dict.fromkeys(user_ids))
        if admin.id in ids:
            raise ServiceError("You cannot delete your own account")

        users = db.query(User).filter(User.id.in_(ids)).all()
        if admin.role != UserRole.SUPERADMIN.value:
            users = [user for user in users if user.role != UserRole.SUPERADMIN.value]
        found = {user.id for user in users}
        skipped = [user_id for user_id in ids if user_id not in found]

        for user in users:
            user.account_status = AccountStatus.DELETED.value
            user.modified_by = admin.id
        db.commit()

        for user in users:
            AuthService.revoke_all_sessions(db, user.id)
            log_action(
                db, ActionType.BULK_DELETE, f"Account deleted (bulk): {user.email}",
                user_id=user.id, request=request, created_by=admin.id
            )
        return len(users), skipped

    @staticmethod
    def change_role(db: Session, user: User, role: UserRole, admin: User, request: Optional[Request] = None) -> User:
        """
        Change a user's role. Callers must be superadmins.

        Raises:
            ServiceError: If the superadmin targets their own account
        """
        if user.id == admin.id:
            raise ServiceError("You cannot change your own role")

        previous = user.role
        user.role = role.value
        user.modified_by = admin.id
        db.commit()
        db.refresh(user)

        # Role claims are embedded in the issued tokens
        AuthService.revoke_all_sessions(db, user.id)

        log_action(
            db, ActionType.ROLE_CHANGED, f"Role changed from {previous} to {role.value}",
            user_id=user.id, request=request, created_by=admin.id,
            extra_data={"from": previous, "to": role.value}
        )
        return user

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    @staticmethod
    def list_logs(
        db: Session,
        user_id: Optional[UUID] = None,
        action_type: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[LogAction], Dict[str, Any]]:
        """Activity logs, newest first. `date_to` is inclusive."""
        if date_from and date_to and date_from > date_to:
            raise ServiceError("date_from must be before date_to")

        query = db.query(LogAction)
        if user_id:
            query = query.filter(LogAction.user_id == user_id)
        if action_type:
            query = query.filter(LogAction.action_type == action_type.upper())
        if date_from:
            query = query.filter(LogAction.created_at >= datetime.combine(date_from, datetime.min.time()))
        if date_to:
            query = query.filter(LogAction.created_at < datetime.combine(date_to + timedelta(days=1), datetime.min.time()))

        return paginate(query.order_by(LogAction.created_at.desc()), page, limit)
