"""
Pytest fixtures for session module tests.

The transport is an AsyncMock specced on the real client, so every RPC is
awaitable and unexpected calls fail loudly. Storage uses the in-memory
implementations.
"""

import pytest
from unittest.mock import AsyncMock

from modules.session.models import AppUser, AuthResponse, AuthTokens
from modules.session.service import SessionManager
from modules.session.storage import InMemoryStore, InMemoryTokenStore, UserProfileCache
from modules.transport.service import AuthTransportClient

CACHE_KEY = "AppUser.cache.v1"


@pytest.fixture
def tokens() -> AuthTokens:
    return AuthTokens(access_token="access-1", refresh_token="refresh-1")


@pytest.fixture
def new_tokens() -> AuthTokens:
    return AuthTokens(access_token="access-2", refresh_token="refresh-2")


@pytest.fixture
def complete_user() -> AppUser:
    """A verified user whose profile needs nothing more."""
    return AppUser(
        id="user-123",
        email="a@b.com",
        name="Ann",
        avatar_url="https://cdn.example.com/ann.jpg",
        is_verified=True,
        phone="+21620000000",
        country="Tunisia",
        city="Tunis",
    )


@pytest.fixture
def incomplete_user() -> AppUser:
    """A verified user with no phone, photo or location."""
    return AppUser(id="user-123", email="a@b.com", name="Ann", is_verified=True)


@pytest.fixture
def unverified_user() -> AppUser:
    return AppUser(id="user-123", email="a@b.com", name="Ann", is_verified=False)


@pytest.fixture
def transport() -> AsyncMock:
    return AsyncMock(spec=AuthTransportClient)


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def cache_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def user_cache(cache_store) -> UserProfileCache:
    return UserProfileCache(cache_store, CACHE_KEY)


@pytest.fixture
def make_session(transport, token_store, user_cache, settings):
    """Build a SessionManager over the shared fakes; call after seeding storage."""

    def factory() -> SessionManager:
        return SessionManager(
            transport=transport,
            token_store=token_store,
            user_cache=user_cache,
            settings=settings,
        )

    return factory


@pytest.fixture
def session(make_session) -> SessionManager:
    return make_session()


@pytest.fixture
def auth_response(complete_user, tokens) -> AuthResponse:
    return AuthResponse(user=complete_user, tokens=tokens)
