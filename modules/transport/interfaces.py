"""
Auth transport interface.

The session module depends on IAuthTransport, not on the httpx-backed
implementation. This enables testing the session state machine with fakes.
"""

from typing import Protocol, Optional, runtime_checkable

from modules.session.models import (
    AppUser,
    AuthResponse,
    AuthTokens,
    MessageResponse,
    RegisterResponse,
)


@runtime_checkable
class IAuthTransport(Protocol):
    """
    Interface for the auth backend RPCs.

    Every method returns a typed payload or raises a TransportError
    subclass (HTTPStatusError, TransportTimeoutError, ConnectivityError,
    ResponseDecodingError).
    """

    async def register(self, name: str, email: str, password: str) -> RegisterResponse:
        """Create an owner account. Tokens are returned only if the server signs in immediately."""
        ...

    async def login(self, email: str, password: str) -> AuthResponse:
        """Exchange email/password for tokens."""
        ...

    async def refresh(self, refresh_token: str) -> AuthTokens:
        """Exchange a refresh token for a new token pair."""
        ...

    async def me(self, access_token: str) -> AppUser:
        """Fetch the current user record."""
        ...

    async def logout(self, refresh_token: str) -> None:
        """Revoke the refresh token server-side."""
        ...

    async def verify_email(self, email: str, code: str) -> MessageResponse:
        """Confirm an email address with the code sent to it."""
        ...

    async def resend_verification(self, email: str) -> MessageResponse:
        """Send a fresh verification code."""
        ...

    async def forgot_password(self, email: str) -> MessageResponse:
        """Start the password reset flow."""
        ...

    async def reset_password(self, email: str, code: str, new_password: str) -> MessageResponse:
        """Finish the password reset flow."""
        ...

    async def google(self, id_token: str) -> AuthResponse:
        """Exchange a Google ID token for tokens."""
        ...

    async def apple(self, identity_token: str, name: Optional[str] = None) -> AuthResponse:
        """Exchange an Apple identity token for tokens."""
        ...

    async def check_email_exists(self, email: str) -> bool:
        """Whether an account already uses this email."""
        ...

    async def update_profile(
        self,
        access_token: str,
        name: Optional[str],
        phone: Optional[str],
        country: Optional[str],
        city: Optional[str],
        has_photo: bool,
        has_pets: bool,
        image: Optional[bytes] = None,
    ) -> AppUser:
        """Update profile fields, optionally uploading a new avatar image."""
        ...
