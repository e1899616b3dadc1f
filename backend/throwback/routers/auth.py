"""Authentication endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from uuid import UUID

from throwback.config import settings
from throwback.database import get_db
from throwback.models.schemas import (
    UserCreate,
    UserLogin,
    UserResponse,
    Token,
    RegisterResponse,
    EmailRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    PasswordChange,
    MessageResponse
)
from throwback.models.user import User
from throwback.models.activity import ActionType
from throwback.services.auth_service import AuthService
from throwback.services.captcha_service import CaptchaService
from throwback.services.activity_service import log_action
from throwback.middleware.auth import get_current_user, security

router = APIRouter()

RESET_REQUESTED_MESSAGE = "If an account exists for this email, a reset link has been sent"


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Register a new user.

    Requirements:
    - Unique email
    - First and last name (2-100 chars)
    - Password (min 8 chars, uppercase, lowercase, digit)

    The account must be verified through the emailed link before login.

    Returns:
        Confirmation message and user data
    """
    user, error = AuthService.register_user(db, user_data, request)

    if error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error
        )

    return RegisterResponse(
        message="Registration successful. Please check your email to verify your account",
        user=UserResponse.model_validate(user)
    )


@router.get("/verify/{user_id}/{token}")
async def verify_email(
    user_id: UUID,
    token: str,
    db: Session = Depends(get_db)
):
    """
    Confirm an email address from the verification link.

    Redirects to the frontend login page with the outcome in the query string.
    """
    _, error = AuthService.verify_email(db, user_id, token)

    if error:
        return RedirectResponse(f"{settings.FRONTEND_URL}/login?error={error}")

    return RedirectResponse(f"{settings.FRONTEND_URL}/login?verified=true")


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    payload: EmailRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """Send a new verification link to an unverified account."""
    status_code, error = AuthService.resend_verification(db, payload.email, request)

    if error:
        raise HTTPException(status_code=status_code, detail=error)

    return MessageResponse(message="Verification email sent")


@router.post("/login", response_model=Token)
async def login(
    login_data: UserLogin,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Login with email and password.

    After repeated failures a captcha (captcha_id + captcha_answer) is required,
    and the account is locked once the maximum number of attempts is reached.
    Failed responses carry `X-Attempts-Left` and `X-Captcha-Required` headers.

    Returns:
        JWT access token, user data and the page to redirect to
    """
    user, error = AuthService.authenticate_user(db, login_data, request)

    if error:
        headers = {"X-Captcha-Required": str(error.captcha_required).lower()}
        if error.attempts_left is not None:
            headers["X-Attempts-Left"] = str(error.attempts_left)
        if error.status_code == status.HTTP_401_UNAUTHORIZED:
            headers["WWW-Authenticate"] = "Bearer"

        raise HTTPException(
            status_code=error.status_code,
            detail=error.detail,
            headers=headers
        )

    # Create session and generate token
    ip_address = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")

    access_token = AuthService.create_user_session(
        db=db,
        user=user,
        ip_address=ip_address,
        user_agent=user_agent
    )

    return Token(
        access_token=access_token,
        token_type="bearer",
        user=UserResponse.model_validate(user),
        redirect_url="/admin-dashboard" if user.is_admin else "/dashboard"
    )


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Request a password reset link.

    Always answers with the same message so account existence is not disclosed.
    """
    if not CaptchaService.verify(db, payload.captcha_id, payload.captcha_answer):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid captcha"
        )

    AuthService.request_password_reset(db, payload.email, request)

    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.get("/verify-reset/{token}")
async def verify_reset_token(
    token: str,
    db: Session = Depends(get_db)
):
    """Redirect a reset link to the reset form, or back to forgot-password when invalid."""
    if not AuthService.get_reset_token(db, token):
        return RedirectResponse(f"{settings.FRONTEND_URL}/forgot-password?error=invalid_token")

    return RedirectResponse(f"{settings.FRONTEND_URL}/reset-password?token={token}")


@router.put("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: ResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Set a new password from a reset token.

    All existing sessions of the account are revoked.
    """
    _, error = AuthService.reset_password(db, payload.token, payload.password, request)

    if error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error
        )

    return MessageResponse(message="Password has been reset")


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    payload: PasswordChange,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change the current user's password."""
    error = AuthService.change_password(
        db, current_user, payload.current_password, payload.new_password, request
    )

    if error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error
        )

    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    credentials=Depends(security),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Logout current user by invalidating session.

    Requires:
        Authorization: Bearer <token>

    Returns:
        Success message
    """
    token = credentials.credentials
    success = AuthService.logout_user(db, token)

    if not success:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )

    log_action(db, ActionType.LOGOUT, "User logged out", user_id=current_user.id, request=request)

    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """
    Get current authenticated user's information.

    Requires:
        Authorization: Bearer <token>

    Returns:
        Current user data
    """
    return UserResponse.model_validate(current_user)
