"""
User-facing error messages.

Each session operation owns an ErrorMessages table that turns any failure
into exactly one localized string. Transport-level conditions (timeout,
connectivity, undecodable responses) read the same for every operation;
HTTP statuses are operation specific.
"""

from dataclasses import dataclass, field
from typing import Optional

from shared.exceptions import PetCareError, ValidationError
from modules.transport.exceptions import (
    ConnectivityError,
    HTTPStatusError,
    ResponseDecodingError,
    TransportTimeoutError,
)

TIMEOUT_MESSAGE = "The server is taking too long to respond. Please try again."
NETWORK_MESSAGE = "Network issue. Check your connection and try again."
UNEXPECTED_RESPONSE_MESSAGE = "Unexpected response from the server. Please try again."
GENERIC_MESSAGE = "Something went wrong. Please try again."

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."
ALREADY_REGISTERED_MESSAGE = "This email is already registered. Please sign in or continue with Google."
VERIFIED_SIGN_IN_MESSAGE = "Verified. Please sign in to continue."
INVALID_VERIFICATION_EMAIL_MESSAGE = "Missing or invalid email for verification."
NOT_SIGNED_IN_MESSAGE = "Please sign in to continue."


def friendly(raw_message: Optional[str], fallback: str) -> str:
    """Prefer the server's own wording when it sent any."""
    trimmed = (raw_message or "").strip()
    if not trimmed or trimmed.startswith("HTTP "):
        return fallback
    return trimmed


@dataclass(frozen=True)
class StatusMessage:
    """Message for one HTTP status; server wording wins when use_server_text is set."""

    text: str
    use_server_text: bool = True

    def render(self, error: HTTPStatusError) -> str:
        if self.use_server_text:
            return friendly(error.message, self.text)
        return self.text


def fixed(text: str) -> StatusMessage:
    return StatusMessage(text, use_server_text=False)


@dataclass(frozen=True)
class ErrorMessages:
    """Operation-specific mapping from failures to a single string."""

    fallback: StatusMessage
    by_status: dict[int, StatusMessage] = field(default_factory=dict)

    def describe(self, error: Exception) -> str:
        if isinstance(error, TransportTimeoutError):
            return TIMEOUT_MESSAGE
        if isinstance(error, ConnectivityError):
            return NETWORK_MESSAGE
        if isinstance(error, ResponseDecodingError):
            return UNEXPECTED_RESPONSE_MESSAGE
        if isinstance(error, HTTPStatusError):
            return self.by_status.get(error.status, self.fallback).render(error)
        if isinstance(error, ValidationError):
            return error.message
        if isinstance(error, PetCareError):
            return friendly(error.message, self.fallback.text)
        return GENERIC_MESSAGE


SIGN_IN_MESSAGES = ErrorMessages(
    fallback=StatusMessage("Sign in failed. Please try again."),
    by_status={
        400: fixed(INVALID_CREDENTIALS_MESSAGE),
        401: fixed(INVALID_CREDENTIALS_MESSAGE),
    },
)

SIGN_UP_MESSAGES = ErrorMessages(
    fallback=fixed("Registration failed. Please try again."),
    by_status={
        400: fixed(ALREADY_REGISTERED_MESSAGE),
        409: fixed(ALREADY_REGISTERED_MESSAGE),
    },
)

VERIFY_MESSAGES = ErrorMessages(
    fallback=StatusMessage("Could not verify email. Please try again."),
    by_status={
        400: StatusMessage("Invalid verification code. Please try again."),
        401: StatusMessage("Invalid verification code. Please try again."),
        404: StatusMessage("User not found."),
    },
)

RESEND_MESSAGES = ErrorMessages(
    fallback=StatusMessage("Could not resend code. Please try again."),
    by_status={
        400: StatusMessage("Verification code still valid. Please wait before requesting a new code."),
        404: StatusMessage("User not found."),
    },
)

FORGOT_PASSWORD_MESSAGES = ErrorMessages(
    fallback=StatusMessage("Could not send the reset code. Please try again."),
    by_status={404: StatusMessage("User not found.")},
)

RESET_PASSWORD_MESSAGES = ErrorMessages(
    fallback=StatusMessage("Could not reset password. Please check the code and try again."),
)

GOOGLE_SIGNUP_MESSAGES = ErrorMessages(
    fallback=StatusMessage("Google signup failed. Please try again."),
    by_status={404: StatusMessage("Could not verify email. Please try again.")},
)

GOOGLE_SIGNIN_MESSAGES = ErrorMessages(
    fallback=StatusMessage("Google sign-in failed. Please try again."),
)

APPLE_SIGNUP_MESSAGES = ErrorMessages(
    fallback=StatusMessage("Apple signup failed. Please try again."),
    by_status={404: StatusMessage("Could not verify email. Please try again.")},
)

APPLE_SIGNIN_MESSAGES = ErrorMessages(
    fallback=StatusMessage("Apple sign-in failed. Please try again."),
)

PROFILE_UPDATE_MESSAGES = ErrorMessages(
    fallback=StatusMessage("Could not update your profile. Please try again."),
    by_status={401: fixed(NOT_SIGNED_IN_MESSAGE)},
)
