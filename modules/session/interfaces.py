"""
Session module storage interfaces.

The session manager depends on these protocols, not on the keyring or the
filesystem. Tests use the in-memory implementations from storage.py.
"""

from typing import Any, Protocol, Optional, runtime_checkable

from .models import AppUser, AuthTokens


@runtime_checkable
class ITokenStore(Protocol):
    """
    Secure persistence for the access/refresh token pair.

    Implementations raise TokenStoreError when the backing store fails.
    """

    def load(self) -> Optional[AuthTokens]:
        """Return the stored pair, or None unless both tokens are present."""
        ...

    def save(self, tokens: AuthTokens) -> None:
        """Persist both tokens, replacing any previous pair."""
        ...

    def clear(self) -> None:
        """Erase both tokens. Clearing an empty store is not an error."""
        ...


@runtime_checkable
class IKeyValueStore(Protocol):
    """Small JSON-serializable key-value store for non-secret client state."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


@runtime_checkable
class IUserCache(Protocol):
    """Snapshot of the last-known user, used to render before the network answers."""

    def load(self) -> Optional[AppUser]:
        """Return the cached user, or None when absent or unreadable."""
        ...

    def save(self, user: AppUser) -> None:
        ...

    def clear(self) -> None:
        ...
