"""
Token store and user cache implementations.

Provides both in-memory (for testing) and persistent implementations:
- KeyringTokenStore: OS keychain through the keyring library
- JsonFileStore: one JSON document on disk, written atomically
- UserProfileCache: typed AppUser snapshot on top of any key-value store
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError
from pydantic import ValidationError as PydanticValidationError

from .exceptions import TokenStoreError
from .interfaces import IKeyValueStore, IUserCache, ITokenStore
from .models import AppUser, AuthTokens

logger = logging.getLogger(__name__)


class InMemoryTokenStore(ITokenStore):
    """Token store kept in process memory. For tests and development."""

    def __init__(self, tokens: Optional[AuthTokens] = None):
        self._tokens = tokens

    def load(self) -> Optional[AuthTokens]:
        return self._tokens

    def save(self, tokens: AuthTokens) -> None:
        self._tokens = tokens

    def clear(self) -> None:
        self._tokens = None


class KeyringTokenStore(ITokenStore):
    """
    Token store backed by the operating system keychain.

    Each token lives in its own entry under a fixed service name, keyed by
    fixed identifiers, so tokens survive process restarts.
    """

    def __init__(self, service: str, access_key: str, refresh_key: str):
        self._service = service
        self._access_key = access_key
        self._refresh_key = refresh_key

    def load(self) -> Optional[AuthTokens]:
        try:
            access = keyring.get_password(self._service, self._access_key)
            refresh = keyring.get_password(self._service, self._refresh_key)
        except KeyringError as e:
            raise TokenStoreError("load", str(e))
        if not access or not refresh:
            return None
        return AuthTokens(access_token=access, refresh_token=refresh)

    def save(self, tokens: AuthTokens) -> None:
        try:
            keyring.set_password(self._service, self._access_key, tokens.access_token)
            keyring.set_password(self._service, self._refresh_key, tokens.refresh_token)
        except KeyringError as e:
            raise TokenStoreError("save", str(e))

    def clear(self) -> None:
        for key in (self._access_key, self._refresh_key):
            try:
                keyring.delete_password(self._service, key)
            except PasswordDeleteError:
                # Entry was never written
                continue
            except KeyringError as e:
                raise TokenStoreError("clear", str(e))


class InMemoryStore(IKeyValueStore):
    """Key-value store kept in process memory."""

    def __init__(self, data: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = dict(data or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(IKeyValueStore):
    """
    Key-value store persisted as a single JSON object.

    Writes go to a temporary file that replaces the original, so a crash
    mid-write never leaves a truncated document behind. An unreadable file is
    treated as empty.
    """

    def __init__(self, path: Path):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache file {self._path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=".cache-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class UserProfileCache(IUserCache):
    """AppUser snapshot stored under a fixed key of a key-value store."""

    def __init__(self, store: IKeyValueStore, key: str):
        self._store = store
        self._key = key

    def load(self) -> Optional[AppUser]:
        raw = self._store.get(self._key)
        if raw is None:
            return None
        try:
            return AppUser.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning(f"Discarding invalid cached user: {e.error_count()} errors")
            self._store.delete(self._key)
            return None

    def save(self, user: AppUser) -> None:
        self._store.set(self._key, user.model_dump(mode="json"))

    def clear(self) -> None:
        self._store.delete(self._key)
