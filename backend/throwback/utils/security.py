"""Password hashing, JWT and one-time token helpers."""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
import hashlib
import re
import secrets

import bcrypt
import jwt

from throwback.config import settings


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def validate_password_strength(password: str) -> Tuple[bool, str]:
    """
    Validate password strength.

    Requirements:
    - At least 8 characters
    - At least one uppercase letter, one lowercase letter and one digit

    Args:
        password: Password to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password or len(password) < 8:
        return False, "Password must be at least 8 characters long"

    if not re.search(r"[A-Z]", password):
        return False, "Password must contain at least one uppercase letter"

    if not re.search(r"[a-z]", password):
        return False, "Password must contain at least one lowercase letter"

    if not re.search(r"\d", password):
        return False, "Password must contain at least one digit"

    return True, ""


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to encode (must include "sub")
        expires_delta: Custom lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT
    """
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode = data.copy()
    to_encode.update({
        "exp": expire,
        "iat": now,
        # Unique per token so two logins in the same second get distinct sessions
        "jti": secrets.token_hex(8)
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT access token.

    Returns:
        Token payload, or None if the token is invalid or expired
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None


def generate_token(nbytes: int = 32) -> str:
    """Random hex token for verification and reset links."""
    return secrets.token_hex(nbytes)


def hash_token(token: str) -> str:
    """SHA-256 digest used to store reset tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def hash_captcha_answer(captcha_id: str, answer: str) -> str:
    """Keyed digest of a captcha answer, bound to its challenge id."""
    payload = f"{settings.SECRET_KEY}:{captcha_id}:{answer.strip()}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
