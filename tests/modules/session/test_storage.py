"""Tests for token store and user cache implementations."""

import json

import pytest
from unittest.mock import patch
from keyring.errors import KeyringError, PasswordDeleteError

from modules.session.exceptions import TokenStoreError
from modules.session.interfaces import ITokenStore, IUserCache, IKeyValueStore
from modules.session.models import AppUser, AuthTokens
from modules.session.storage import (
    InMemoryStore,
    InMemoryTokenStore,
    JsonFileStore,
    KeyringTokenStore,
    UserProfileCache,
)


@pytest.fixture
def pair() -> AuthTokens:
    return AuthTokens(access_token="access-1", refresh_token="refresh-1")


class TestInMemoryTokenStore:
    def test_implements_interface(self):
        assert isinstance(InMemoryTokenStore(), ITokenStore)

    def test_save_load_clear(self, pair):
        store = InMemoryTokenStore()
        assert store.load() is None
        store.save(pair)
        assert store.load() == pair
        store.clear()
        assert store.load() is None


class TestKeyringTokenStore:
    @pytest.fixture
    def vault(self):
        """Patch the keyring module with a dict-backed fake."""
        entries: dict[tuple[str, str], str] = {}

        def get_password(service, key):
            return entries.get((service, key))

        def set_password(service, key, value):
            entries[(service, key)] = value

        def delete_password(service, key):
            if (service, key) not in entries:
                raise PasswordDeleteError("not found")
            del entries[(service, key)]

        with patch("modules.session.storage.keyring") as mock_keyring:
            mock_keyring.get_password.side_effect = get_password
            mock_keyring.set_password.side_effect = set_password
            mock_keyring.delete_password.side_effect = delete_password
            yield entries

    @pytest.fixture
    def store(self) -> KeyringTokenStore:
        return KeyringTokenStore("vet.tn", "vet.tn.accessToken", "vet.tn.refreshToken")

    def test_save_writes_fixed_keys(self, vault, store, pair):
        """Each token should live under its own fixed identifier."""
        store.save(pair)
        assert vault == {
            ("vet.tn", "vet.tn.accessToken"): "access-1",
            ("vet.tn", "vet.tn.refreshToken"): "refresh-1",
        }

    def test_load_round_trip(self, vault, store, pair):
        store.save(pair)
        assert store.load() == pair

    def test_load_requires_both_tokens(self, vault, store):
        """A lone access token should not count as a session."""
        vault[("vet.tn", "vet.tn.accessToken")] = "access-1"
        assert store.load() is None

    def test_clear_removes_entries(self, vault, store, pair):
        store.save(pair)
        store.clear()
        assert vault == {}

    def test_clear_empty_store_is_not_an_error(self, vault, store):
        store.clear()

    def test_backend_failure_raises_token_store_error(self, store):
        with patch("modules.session.storage.keyring") as mock_keyring:
            mock_keyring.get_password.side_effect = KeyringError("locked")
            with pytest.raises(TokenStoreError) as exc_info:
                store.load()
        assert exc_info.value.details["operation"] == "load"


class TestJsonFileStore:
    def test_implements_interface(self, tmp_path):
        assert isinstance(JsonFileStore(tmp_path / "c.json"), IKeyValueStore)

    def test_missing_file_reads_empty(self, tmp_path):
        assert JsonFileStore(tmp_path / "missing.json").get("k") is None

    def test_set_persists_json(self, tmp_path):
        """Values should be written as one JSON object, creating parent dirs."""
        path = tmp_path / "nested" / "cache.json"
        store = JsonFileStore(path)
        store.set("k", {"a": 1})
        assert json.loads(path.read_text()) == {"k": {"a": 1}}
        assert JsonFileStore(path).get("k") == {"a": 1}

    def test_delete(self, tmp_path):
        store = JsonFileStore(tmp_path / "cache.json")
        store.set("a", 1)
        store.set("b", 2)
        store.delete("a")
        assert store.get("a") is None
        assert store.get("b") == 2

    def test_corrupt_file_reads_empty(self, tmp_path):
        """An unreadable document should be treated as empty."""
        path = tmp_path / "cache.json"
        path.write_text("{not json")
        store = JsonFileStore(path)
        assert store.get("k") is None
        store.set("k", "v")
        assert store.get("k") == "v"

    def test_no_temp_files_left_behind(self, tmp_path):
        store = JsonFileStore(tmp_path / "cache.json")
        store.set("k", "v")
        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]


class TestUserProfileCache:
    def test_implements_interface(self):
        assert isinstance(UserProfileCache(InMemoryStore(), "k"), IUserCache)

    def test_save_and_load(self):
        user = AppUser(id="u1", email="a@b.com", phone="+216", has_pets=True)
        store = InMemoryStore()
        cache = UserProfileCache(store, "AppUser.cache.v1")
        cache.save(user)
        assert store.get("AppUser.cache.v1")["phone"] == "+216"
        assert cache.load() == user

    def test_invalid_entry_is_discarded(self):
        """A cache entry that no longer validates should be removed."""
        store = InMemoryStore({"AppUser.cache.v1": {"id": "u1"}})
        cache = UserProfileCache(store, "AppUser.cache.v1")
        assert cache.load() is None
        assert store.get("AppUser.cache.v1") is None

    def test_clear(self):
        store = InMemoryStore()
        cache = UserProfileCache(store, "k")
        cache.save(AppUser(id="u1", email="a@b.com"))
        cache.clear()
        assert cache.load() is None

    def test_file_backed_cache(self, tmp_path):
        """The cache should survive a new process reading the same file."""
        path = tmp_path / "session_cache.json"
        UserProfileCache(JsonFileStore(path), "AppUser.cache.v1").save(AppUser(id="u1", email="a@b.com"))
        loaded = UserProfileCache(JsonFileStore(path), "AppUser.cache.v1").load()
        assert loaded.id == "u1"
