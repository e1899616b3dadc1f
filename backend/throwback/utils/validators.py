"""Input validation utilities."""

import re
from typing import Optional, Tuple

from throwback.models.podcast import VIMEO_URL_PATTERN

YOUTUBE_URL_PATTERN = re.compile(
    r"^https?://(www\.|m\.)?(youtube\.com/(watch\?v=|embed/|shorts/)|youtu\.be/)[\w-]+",
    re.IGNORECASE
)


def validate_name(value: str, field: str) -> Tuple[bool, str]:
    """
    Validate a first or last name.

    Args:
        value: Name to validate
        field: Field label used in the error message

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not value or not value.strip():
        return False, f"{field} is required"

    if len(value.strip()) < 2:
        return False, f"{field} must be at least 2 characters long"

    if len(value) > 100:
        return False, f"{field} must be less than 100 characters"

    return True, ""


def validate_youtube_url(url: str) -> Tuple[bool, str]:
    if not url or not YOUTUBE_URL_PATTERN.match(url):
        return False, "Invalid YouTube URL"
    return True, ""


def validate_vimeo_url(url: str) -> Tuple[bool, str]:
    if not url or not VIMEO_URL_PATTERN.match(url):
        return False, "Invalid Vimeo URL"
    return True, ""


def parse_duration(value) -> Optional[int]:
    """
    Convert a duration to seconds.

    Accepts an int/float number of seconds or a string in
    "h:mm:ss", "mm:ss" or "ss" form. Returns None when unparseable.
    """
    if value is None:
        return None

    if isinstance(value, (int, float)):
        return int(value) if value >= 0 else None

    parts = str(value).strip().split(":")
    if not parts or len(parts) > 3:
        return None

    try:
        numbers = [int(part) for part in parts]
    except ValueError:
        return None

    if any(number < 0 for number in numbers):
        return None

    seconds = 0
    for number in numbers:
        seconds = seconds * 60 + number
    return seconds


def sanitize_input(text: str, max_length: int = 1000) -> str:
    """
    Sanitize user input by removing potentially dangerous characters.

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove null bytes
    text = text.replace('\x00', '')

    # Strip leading/trailing whitespace
    text = text.strip()

    # Trim to max length
    if len(text) > max_length:
        text = text[:max_length]

    return text
