"""
Session module exceptions.

Client-side validation failures are raised before any network call and are
turned into user-facing messages by the session manager.
"""

from shared.exceptions import PetCareError, ValidationError


class SessionError(PetCareError):
    """Base exception for session-related errors."""

    pass


class InvalidEmailError(ValidationError):
    """Raised when an email address is missing or malformed."""

    def __init__(self, message: str = "Invalid email address."):
        super().__init__(message, code="INVALID_EMAIL")


class WeakPasswordError(ValidationError):
    """Raised when a password does not meet the minimum length."""

    def __init__(self, min_length: int):
        super().__init__(
            f"Password must be at least {min_length} characters.",
            code="WEAK_PASSWORD",
            details={"min_length": min_length},
        )


class MissingVerificationCodeError(ValidationError):
    """Raised when a verification or reset code is empty."""

    def __init__(self, message: str = "Please enter the verification code."):
        super().__init__(message, code="MISSING_CODE")


class TokenStoreError(SessionError):
    """Raised when the secure token store cannot be read or written."""

    def __init__(self, operation: str, message: str):
        super().__init__(
            f"Token store {operation} failed: {message}",
            code="TOKEN_STORE_ERROR",
            details={"operation": operation},
        )
