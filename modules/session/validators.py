"""Client-side input validation, run before any request leaves the device."""

import re
from typing import Optional

from .exceptions import InvalidEmailError, MissingVerificationCodeError, WeakPasswordError

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def normalize_email(email: Optional[str]) -> str:
    """Trim and lowercase an email address."""
    return (email or "").strip().lower()


def is_valid_email(email: Optional[str]) -> bool:
    """Validate email format."""
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_email(email: Optional[str]) -> str:
    """Return the normalized email or raise InvalidEmailError."""
    clean = normalize_email(email)
    if not is_valid_email(clean):
        raise InvalidEmailError()
    return clean


def validate_password(password: Optional[str], min_length: int) -> str:
    """Raise WeakPasswordError when the password is shorter than min_length."""
    if password is None or len(password) < min_length:
        raise WeakPasswordError(min_length)
    return password


def validate_code(code: Optional[str]) -> str:
    """Return the trimmed code or raise MissingVerificationCodeError."""
    clean = (code or "").strip()
    if not clean:
        raise MissingVerificationCodeError()
    return clean
