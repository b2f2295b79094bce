"""Factory functions for identity providers and the provider sign-in flow."""

import logging
from typing import TYPE_CHECKING, Optional

from shared.config import Settings, get_settings
from modules.session.interfaces import IKeyValueStore
from modules.session.storage import JsonFileStore

from .apple import AppleIdentityProvider
from .base import IdentityProvider, ProviderCancelledError, StartFlow
from .google import GoogleIdentityProvider

if TYPE_CHECKING:
    from modules.session.service import SessionManager

logger = logging.getLogger(__name__)

PROVIDER_TYPES = ("google", "apple")


def get_identity_provider(
    provider_type: str,
    start: StartFlow,
    settings: Optional[Settings] = None,
    store: Optional[IKeyValueStore] = None,
    timeout: Optional[float] = None,
) -> IdentityProvider:
    """Create the bridge for a provider SDK.

    Args:
        provider_type: "google" or "apple"
        start: Callable that launches the SDK flow with success/error callbacks
        settings: Settings used for the Apple email key and default store path
        store: Key-value store for the remembered Apple email; defaults to the
               user cache file
        timeout: Seconds to wait for the SDK before giving up

    Raises:
        ValueError: If provider_type is unknown
    """
    if provider_type == "google":
        return GoogleIdentityProvider(start, timeout=timeout)
    if provider_type == "apple":
        settings = settings or get_settings()
        return AppleIdentityProvider(
            start,
            store=store or JsonFileStore(settings.user_cache_path),
            email_key=settings.apple_email_key,
            timeout=timeout,
        )
    raise ValueError(
        f"Unknown identity provider '{provider_type}'. "
        f"Expected one of: {', '.join(PROVIDER_TYPES)}"
    )


async def continue_with_provider(
    session: "SessionManager",
    provider: IdentityProvider,
    signup: bool,
) -> bool:
    """Authenticate with a provider and hand the credential to the session.

    Returns:
        True when the session accepted the credential.
        False when the user cancelled, the session reported an error
        (session.last_error), or it redirected to the other screen
        (should_navigate_to_login / should_navigate_to_signup).

    Raises:
        ProviderError: The provider SDK itself failed
    """
    try:
        credential = await provider.authenticate()
    except ProviderCancelledError:
        logger.info(f"{provider.name} sign-in cancelled by the user")
        return False

    email = credential.email or ""
    if credential.provider == "google":
        if signup:
            await session.google_signup(credential.identity_token, email)
        else:
            await session.google_signin(credential.identity_token, email)
    elif credential.provider == "apple":
        if signup:
            await session.apple_signup(credential.identity_token, email, credential.display_name)
        else:
            await session.apple_signin(credential.identity_token, email)
    else:
        raise ValueError(f"Unsupported credential provider '{credential.provider}'")

    return (
        session.last_error is None
        and not session.should_navigate_to_login
        and not session.should_navigate_to_signup
    )
