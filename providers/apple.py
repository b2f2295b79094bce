"""Sign in with Apple bridge."""

import logging
from typing import Any, Mapping, Optional

from modules.session.interfaces import IKeyValueStore

from .base import (
    CallbackIdentityProvider,
    ProviderCredential,
    ProviderError,
    StartFlow,
    text_or_none,
)

logger = logging.getLogger(__name__)


def full_name(components: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Join given and family name; None when Apple sent neither."""
    if not components:
        return None
    parts = [
        text_or_none(components.get("givenName")),
        text_or_none(components.get("familyName")),
    ]
    return " ".join(part for part in parts if part) or None


class AppleIdentityProvider(CallbackIdentityProvider):
    """Sign in with Apple.

    Apple reveals the email (and name) only on the very first authorization
    for an app. The email is remembered in a key-value store so later
    sign-ins can still run the account-existence check.
    """

    name = "apple"

    def __init__(
        self,
        start: StartFlow,
        store: IKeyValueStore,
        email_key: str,
        timeout: Optional[float] = None,
    ):
        super().__init__(start, timeout=timeout)
        self._store = store
        self._email_key = email_key

    def to_credential(self, result: Mapping[str, Any]) -> ProviderCredential:
        raw_token = result.get("identityToken") or result.get("identity_token")
        if isinstance(raw_token, (bytes, bytearray)):
            try:
                raw_token = bytes(raw_token).decode("utf-8")
            except UnicodeDecodeError:
                raw_token = None
        token = text_or_none(raw_token)
        if token is None:
            raise ProviderError("Missing Apple ID token", self.name)

        email = text_or_none(result.get("email"))
        if email is not None:
            self._store.set(self._email_key, email)
        else:
            remembered = self._store.get(self._email_key)
            email = text_or_none(remembered)
            if email is None:
                logger.info("Apple did not share an email and none was remembered")

        return ProviderCredential(
            provider=self.name,
            identity_token=token,
            email=email,
            display_name=full_name(result.get("fullName") or result.get("full_name")),
        )
