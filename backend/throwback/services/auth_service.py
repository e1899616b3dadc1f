"""Authentication service with business logic."""

from sqlalchemy.orm import Session
from fastapi import Request
from datetime import datetime, timedelta
from typing import NamedTuple, Optional, Tuple
from uuid import UUID

from throwback.models.user import User
from throwback.models.security import UserSession, AccountToken, LoginAttempt
from throwback.models.activity import ActionType
from throwback.models.enums import AccountStatus, TokenType
from throwback.models.schemas import UserCreate, UserLogin
from throwback.utils.security import (
    hash_password, verify_password, create_access_token, validate_password_strength,
    generate_token, hash_token
)
from throwback.utils.validators import validate_name
from throwback.services.activity_service import log_action, client_info
from throwback.services.captcha_service import CaptchaService
from throwback.services.email_service import send_verification_email, send_password_reset_email
from throwback.services.logging_service import app_logger
from throwback.config import settings

INVALID_CREDENTIALS = "Invalid email or password"


class LoginError(NamedTuple):
    """Why a login was refused and what the client should do next."""
    status_code: int
    detail: str
    attempts_left: Optional[int] = None
    captcha_required: bool = False


class AuthService:
    """Service for authentication operations."""

    @staticmethod
    def register_user(
        db: Session,
        user_data: UserCreate,
        request: Optional[Request] = None
    ) -> Tuple[Optional[User], Optional[str]]:
        """
        Register a new user and send the verification email.

        Args:
            db: Database session
            user_data: User registration data
            request: Incoming request (for the activity log)

        Returns:
            Tuple of (user, error_message)
        """
        for value, label in ((user_data.first_name, "First name"), (user_data.last_name, "Last name")):
            is_valid, error = validate_name(value, label)
            if not is_valid:
                return None, error

        # Validate password strength
        is_valid, error = validate_password_strength(user_data.password)
        if not is_valid:
            return None, error

        # Check if email already exists
        existing_user = db.query(User).filter(User.email == user_data.email).first()
        if existing_user:
            return None, "Email already registered"

        new_user = User(
            email=user_data.email,
            hashed_password=hash_password(user_data.password),
            first_name=user_data.first_name.strip(),
            last_name=user_data.last_name.strip(),
            profession=user_data.profession,
            phone=user_data.phone,
            birth_date=user_data.birth_date,
            gender=user_data.gender.value if user_data.gender else None,
            country=user_data.country,
            city=user_data.city,
            account_status=AccountStatus.ACTIVE.value,
            email_verified=False
        )
        db.add(new_user)
        db.flush()

        raw_token = AuthService._issue_token(
            db, new_user, TokenType.EMAIL_VERIFICATION, settings.VERIFICATION_TOKEN_EXPIRE_DAYS
        )
        db.commit()
        db.refresh(new_user)

        # Registration succeeds even when the email cannot be delivered
        if not send_verification_email(new_user, raw_token):
            app_logger.warning("Verification email not delivered", user_id=str(new_user.id))

        log_action(
            db, ActionType.REGISTER, f"New account registered: {new_user.email}",
            user_id=new_user.id, request=request
        )

        return new_user, None

    @staticmethod
    def _issue_token(db: Session, user: User, token_type: TokenType, days: int, hashed: bool = False) -> str:
        """Replace any token of this type for the user and return the raw value."""
        db.query(AccountToken).filter(
            AccountToken.user_id == user.id,
            AccountToken.token_type == token_type.value
        ).delete(synchronize_session=False)

        raw_token = generate_token()
        db.add(AccountToken(
            user_id=user.id,
            token=hash_token(raw_token) if hashed else raw_token,
            token_type=token_type.value,
            expires_at=datetime.utcnow() + timedelta(days=days)
        ))
        return raw_token

    @staticmethod
    def _get_login_attempt(db: Session, user: User) -> LoginAttempt:
        attempt = db.query(LoginAttempt).filter(LoginAttempt.user_id == user.id).first()
        if not attempt:
            attempt = LoginAttempt(user_id=user.id, attempts=0)
            db.add(attempt)
            db.flush()
        return attempt

    @staticmethod
    def authenticate_user(
        db: Session,
        login_data: UserLogin,
        request: Optional[Request] = None
    ) -> Tuple[Optional[User], Optional[LoginError]]:
        """
        Authenticate a user with email/password, applying captcha and lockout rules.

        Args:
            db: Database session
            login_data: Login credentials
            request: Incoming request (for the attempt record and activity log)

        Returns:
            Tuple of (user, login_error)
        """
        user = db.query(User).filter(User.email == login_data.email).first()
        if not user:
            return None, LoginError(401, INVALID_CREDENTIALS)

        if user.account_status == AccountStatus.SUSPENDED.value:
            return None, LoginError(403, "This account has been suspended")
        if user.account_status == AccountStatus.DELETED.value:
            return None, LoginError(403, "This account has been deleted")

        attempt = AuthService._get_login_attempt(db, user)

        if attempt.is_locked:
            db.commit()
            return None, LoginError(
                403,
                f"Account locked after too many failed attempts. Try again in {attempt.minutes_remaining} minutes",
                attempts_left=0
            )

        # An expired lock starts a fresh series of attempts
        if attempt.locked_until is not None:
            attempt.attempts = 0
            attempt.locked_until = None

        if attempt.attempts >= settings.CAPTCHA_AFTER_ATTEMPTS:
            if not CaptchaService.verify(db, login_data.captcha_id, login_data.captcha_answer):
                db.commit()
                return None, LoginError(
                    400,
                    "Captcha verification required",
                    attempts_left=settings.MAX_LOGIN_ATTEMPTS - attempt.attempts,
                    captcha_required=True
                )

        info = client_info(request)

        if not verify_password(login_data.password, user.hashed_password):
            attempt.attempts += 1
            attempt.last_attempt = datetime.utcnow()
            attempt.success = False
            attempt.ip_address = info["ip_address"]
            attempt.user_agent = info["user_agent"]

            if attempt.attempts >= settings.MAX_LOGIN_ATTEMPTS:
                attempt.lock(settings.LOCKOUT_MINUTES)
                user.account_status = AccountStatus.LOCKED.value
                db.commit()
                log_action(
                    db, ActionType.ACCOUNT_LOCKED,
                    f"Account locked after {attempt.attempts} failed login attempts",
                    user_id=user.id, request=request
                )
                return None, LoginError(
                    403,
                    f"Too many failed attempts. Account locked for {settings.LOCKOUT_MINUTES} minutes",
                    attempts_left=0
                )

            db.commit()
            return None, LoginError(
                401,
                INVALID_CREDENTIALS,
                attempts_left=settings.MAX_LOGIN_ATTEMPTS - attempt.attempts,
                captcha_required=attempt.attempts >= settings.CAPTCHA_AFTER_ATTEMPTS
            )

        if not user.email_verified:
            db.commit()
            return None, LoginError(403, "Please verify your email address before logging in")

        attempt.reset()
        attempt.last_attempt = datetime.utcnow()
        attempt.ip_address = info["ip_address"]
        attempt.user_agent = info["user_agent"]

        if user.account_status in (AccountStatus.INACTIVE.value, AccountStatus.LOCKED.value):
            user.account_status = AccountStatus.ACTIVE.value

        user.last_login = datetime.utcnow()
        db.commit()

        log_action(db, ActionType.LOGIN, "User logged in", user_id=user.id, request=request)

        return user, None

    @staticmethod
    def create_user_session(
        db: Session,
        user: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> str:
        """
        Create a new user session and JWT token.

        Args:
            db: Database session
            user: User object
            ip_address: Client IP address
            user_agent: Client user agent

        Returns:
            JWT access token
        """
        token_data = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role
        }
        access_token = create_access_token(token_data)

        expires_at = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        session = UserSession(
            user_id=user.id,
            session_token=access_token,
            ip_address=ip_address,
            user_agent=user_agent,
            expires_at=expires_at
        )

        db.add(session)
        db.commit()

        return access_token

    @staticmethod
    def get_user_by_id(db: Session, user_id: UUID) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def validate_session(db: Session, token: str) -> Tuple[Optional[User], Optional[str]]:
        """
        Validate a session token.

        Args:
            db: Database session
            token: JWT token

        Returns:
            Tuple of (user, error_message)
        """
        session = db.query(UserSession).filter(UserSession.session_token == token).first()

        if not session:
            return None, "Invalid session"

        if session.expires_at < datetime.utcnow():
            db.delete(session)
            db.commit()
            return None, "Session expired"

        session.last_activity = datetime.utcnow()
        db.commit()

        user = db.query(User).filter(User.id == session.user_id).first()
        if not user or not user.is_active:
            return None, "User not found or inactive"

        return user, None

    @staticmethod
    def verify_email(db: Session, user_id: UUID, token: str) -> Tuple[Optional[User], Optional[str]]:
        """
        Confirm a user's email address from the verification link.

        Returns:
            Tuple of (user, error_code) where error_code is "invalid_link" or "expired_link"
        """
        record = db.query(AccountToken).filter(
            AccountToken.user_id == user_id,
            AccountToken.token == token,
            AccountToken.token_type == TokenType.EMAIL_VERIFICATION.value
        ).first()

        if not record:
            return None, "invalid_link"

        if record.is_expired:
            db.delete(record)
            db.commit()
            return None, "expired_link"

        user = record.user
        user.email_verified = True
        db.delete(record)
        db.commit()

        log_action(db, ActionType.EMAIL_VERIFIED, "Email address verified", user_id=user.id)
        return user, None

    @staticmethod
    def resend_verification(db: Session, email: str, request: Optional[Request] = None) -> Tuple[int, Optional[str]]:
        """
        Issue a fresh verification link.

        Returns:
            Tuple of (http_status, error_message)
        """
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user:
            return 404, "User not found"

        if user.email_verified:
            return 400, "Email already verified"

        raw_token = AuthService._issue_token(
            db, user, TokenType.EMAIL_VERIFICATION, settings.VERIFICATION_TOKEN_EXPIRE_DAYS
        )
        db.commit()

        send_verification_email(user, raw_token)
        log_action(db, ActionType.VERIFICATION_RESENT, "Verification email resent", user_id=user.id, request=request)
        return 200, None

    @staticmethod
    def request_password_reset(db: Session, email: str, request: Optional[Request] = None) -> None:
        """Email a reset link to a known, non-deleted account. Silent otherwise."""
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user or user.account_status == AccountStatus.DELETED.value:
            return

        raw_token = AuthService._issue_token(
            db, user, TokenType.PASSWORD_RESET, settings.PASSWORD_RESET_EXPIRE_DAYS, hashed=True
        )
        db.commit()

        send_password_reset_email(user, raw_token)
        log_action(
            db, ActionType.PASSWORD_RESET_REQUESTED, "Password reset requested",
            user_id=user.id, request=request
        )

    @staticmethod
    def get_reset_token(db: Session, raw_token: str) -> Optional[AccountToken]:
        """Find a valid (unexpired) password reset token."""
        record = db.query(AccountToken).filter(
            AccountToken.token == hash_token(raw_token),
            AccountToken.token_type == TokenType.PASSWORD_RESET.value
        ).first()

        if not record or record.is_expired:
            return None
        return record

    @staticmethod
    def reset_password(
        db: Session,
        raw_token: str,
        new_password: str,
        request: Optional[Request] = None
    ) -> Tuple[Optional[User], Optional[str]]:
        record = AuthService.get_reset_token(db, raw_token)
        if not record:
            return None, "Invalid or expired reset token"

        user = record.user
        user.hashed_password = hash_password(new_password)
        db.delete(record)

        # Existing sessions are revoked with the old password
        db.query(UserSession).filter(UserSession.user_id == user.id).delete(synchronize_session=False)

        attempt = db.query(LoginAttempt).filter(LoginAttempt.user_id == user.id).first()
        if attempt:
            attempt.reset()
        if user.account_status == AccountStatus.LOCKED.value:
            user.account_status = AccountStatus.ACTIVE.value

        db.commit()

        log_action(db, ActionType.PASSWORD_RESET, "Password reset", user_id=user.id, request=request)
        return user, None

    @staticmethod
    def change_password(
        db: Session,
        user: User,
        current_password: str,
        new_password: str,
        request: Optional[Request] = None
    ) -> Optional[str]:
        """
        Change the password of an authenticated user.

        Returns:
            Error message, or None on success
        """
        if not verify_password(current_password, user.hashed_password):
            return "Current password is incorrect"

        is_valid, error = validate_password_strength(new_password)
        if not is_valid:
            return error

        user.hashed_password = hash_password(new_password)
        db.commit()

        log_action(db, ActionType.PASSWORD_CHANGED, "Password changed", user_id=user.id, request=request)
        return None

    @staticmethod
    def logout_user(db: Session, token: str) -> bool:
        """
        Logout user by deleting session.

        Args:
            db: Database session
            token: JWT token

        Returns:
            True if successful, False otherwise
        """
        session = db.query(UserSession).filter(UserSession.session_token == token).first()
        if session:
            db.delete(session)
            db.commit()
            return True
        return False

    @staticmethod
    def revoke_all_sessions(db: Session, user_id: UUID) -> int:
        count = db.query(UserSession).filter(UserSession.user_id == user_id).delete(synchronize_session=False)
        db.commit()
        return count

    @staticmethod
    def cleanup_expired_sessions(db: Session) -> int:
        """
        Clean up expired sessions and one-time tokens.

        Args:
            db: Database session

        Returns:
            Number of rows deleted
        """
        now = datetime.utcnow()
        count = db.query(UserSession).filter(
            UserSession.expires_at < now
        ).delete(synchronize_session=False)
        count += db.query(AccountToken).filter(
            AccountToken.expires_at < now
        ).delete(synchronize_session=False)
        db.commit()
        return count
