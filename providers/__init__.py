"""Identity provider bridges (Google, Apple)."""

from .base import (
    CallbackIdentityProvider,
    IdentityProvider,
    ProviderCancelledError,
    ProviderCredential,
    ProviderError,
)
from .apple import AppleIdentityProvider
from .google import GoogleIdentityProvider
from .factory import continue_with_provider, get_identity_provider

__all__ = [
    "IdentityProvider",
    "CallbackIdentityProvider",
    "ProviderCredential",
    "ProviderError",
    "ProviderCancelledError",
    "GoogleIdentityProvider",
    "AppleIdentityProvider",
    "get_identity_provider",
    "continue_with_provider",
]
