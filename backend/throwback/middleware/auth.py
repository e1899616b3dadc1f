"""Authentication dependencies for protected routes."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional, Tuple

from throwback.database import get_db
from throwback.models.user import User
from throwback.models.enums import UserRole
from throwback.services.auth_service import AuthService
from throwback.services.error_tracking import error_tracker
from throwback.utils.security import decode_access_token

# Bearer scheme for routes that require a user; the optional variant lets
# anonymous requests through to catalog routes
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _authenticate(db: Session, token: str) -> Tuple[Optional[User], Optional[str]]:
    """
    Resolve a bearer token to a user.

    The JWT must verify and its session row must still exist, so a logout or
    an admin revoking sessions invalidates the token immediately.
    """
    if not decode_access_token(token):
        return None, "Invalid authentication credentials"
    return AuthService.validate_session(db, token)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Signed-in user of the request.

    Raises:
        HTTPException: 401 when the token is invalid, expired or revoked,
            or the account is suspended or deleted
    """
    user, error = _authenticate(db, credentials.credentials)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=error or "Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )
    error_tracker.set_user_context(str(user.id), user.role)
    return user


async def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    """Admin console routes: role admin or superadmin."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


async def get_current_superadmin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.SUPERADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Superadmin role required"
        )
    return current_user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    User of the request when a valid token is sent, else None.

    Public catalog routes use it to add the caller's like, bookmark and
    favourite state; a bad token is treated as anonymous rather than 401.
    """
    if credentials is None:
        return None

    user, _ = _authenticate(db, credentials.credentials)
    return user
