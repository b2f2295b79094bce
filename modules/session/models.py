"""
Session module data models.

These models define the tokens, the user entity and the published session
snapshot. They use canonical field names only; the server's historical key
aliases are resolved by the transport adapters before data reaches here.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class AuthTokens(BaseModel):
    """Access/refresh bearer token pair. Opaque to the client."""

    access_token: str = Field(..., min_length=1, repr=False, description="Short-lived bearer token")
    refresh_token: str = Field(..., min_length=1, repr=False, description="Token used to obtain new access tokens")

    model_config = {"frozen": True}


class UserPet(BaseModel):
    """Pet reference embedded in the user record."""

    id: Optional[str] = None
    name: Optional[str] = None

    model_config = {"frozen": True}


class AppUser(BaseModel):
    """
    The authoritative user profile.

    `id` and `email` are always non-empty. Everything else may be missing
    from any given server response, which is why records are merged rather
    than replaced (see merge.merge_users).
    """

    id: str = Field(..., description="User ID")
    email: str = Field(..., description="Email address, issued by the server")
    name: Optional[str] = Field(None, description="Display name")
    avatar_url: Optional[str] = Field(None, description="Avatar reference")
    is_verified: Optional[bool] = Field(None, description="Whether the email is verified")
    phone: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    pets: Optional[list[UserPet]] = None
    has_photo: Optional[bool] = None
    has_pets: Optional[bool] = None
    role: Optional[str] = Field(None, description="owner, vet, sitter or admin")
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    model_config = {"frozen": True}

    @field_validator("id", "email")
    @classmethod
    def _require_identifier(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    def updating(self, **changes) -> "AppUser":
        """Return a copy with every non-None keyword replaced."""
        update = {key: value for key, value in changes.items() if value is not None}
        return self.model_copy(update=update)


class AuthResponse(BaseModel):
    """Login / provider exchange result."""

    user: AppUser
    tokens: AuthTokens


class RegisterResponse(BaseModel):
    """Registration result. Tokens are only present when the server signs in immediately."""

    message: Optional[str] = None
    verification_required: Optional[bool] = None
    user: Optional[AppUser] = None
    tokens: Optional[AuthTokens] = None


class MessageResponse(BaseModel):
    """Plain acknowledgement from the server."""

    message: str = ""


class SessionStatus(str, Enum):
    """The three mutually exclusive session states."""

    UNAUTHENTICATED = "unauthenticated"
    PENDING_VERIFICATION = "pending_verification"
    AUTHENTICATED = "authenticated"


class SessionState(BaseModel):
    """
    Immutable snapshot of everything observers may read.

    A new snapshot is published after every mutation; observers never see a
    half-applied transition.
    """

    user: Optional[AppUser] = None
    tokens: Optional[AuthTokens] = None
    is_authenticated: bool = False
    requires_email_verification: bool = False
    pending_email: Optional[str] = None
    requires_profile_completion: bool = False
    should_present_edit_profile: bool = False
    show_profile_completion_alert: bool = False
    should_navigate_to_login: bool = False
    should_navigate_to_signup: bool = False
    last_error: Optional[str] = None
    has_restored_session: bool = False

    model_config = {"frozen": True}

    @property
    def status(self) -> SessionStatus:
        """Collapse the flags into the state-machine state."""
        if self.is_authenticated:
            return SessionStatus.AUTHENTICATED
        if self.requires_email_verification:
            return SessionStatus.PENDING_VERIFICATION
        return SessionStatus.UNAUTHENTICATED
