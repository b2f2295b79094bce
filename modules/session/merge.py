"""
Field-wise reconciliation of server and cached user records.

A `/me` response that omits a field must not erase what the client already
knows. merge_users is pure, total and idempotent:

    merged = merge_users(server, cached)
    merge_users(server, merged) == merged
    merge_users(merged, merged) == merged
"""

from typing import Optional, TypeVar

from .models import AppUser, UserPet

T = TypeVar("T")


def _has_text(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def prefer_text(server: Optional[str], cached: Optional[str]) -> Optional[str]:
    """Server text if non-blank, else cached text if non-blank, else None."""
    if _has_text(server):
        return server
    if _has_text(cached):
        return cached
    return None


def prefer_value(server: Optional[T], cached: Optional[T]) -> Optional[T]:
    """Server value unless it is None."""
    return server if server is not None else cached


def _has_pets(pets: Optional[list[UserPet]]) -> bool:
    return bool(pets)


def merge_users(server: AppUser, cached: Optional[AppUser]) -> AppUser:
    """
    Combine a fresh server record with the previously held one.

    `id` and `email` always come from the server. Derived booleans use the
    explicit server value, then the explicit cached value, then whether an
    avatar / pet list is present on either side. A cached record that
    belongs to another account contributes nothing.
    """
    if cached is None or cached.id != server.id:
        cached = AppUser(id=server.id, email=server.email)

    avatar_url = prefer_text(server.avatar_url, cached.avatar_url)
    pets = prefer_value(server.pets, cached.pets)

    has_photo = prefer_value(server.has_photo, cached.has_photo)
    if has_photo is None:
        has_photo = _has_text(server.avatar_url) or _has_text(cached.avatar_url)

    has_pets = prefer_value(server.has_pets, cached.has_pets)
    if has_pets is None:
        has_pets = _has_pets(server.pets) or _has_pets(cached.pets)

    return AppUser(
        id=server.id,
        email=server.email,
        name=prefer_text(server.name, cached.name),
        avatar_url=avatar_url,
        is_verified=prefer_value(server.is_verified, cached.is_verified),
        phone=prefer_text(server.phone, cached.phone),
        country=prefer_text(server.country, cached.country),
        city=prefer_text(server.city, cached.city),
        pets=pets,
        has_photo=has_photo,
        has_pets=has_pets,
        role=prefer_text(server.role, cached.role),
        latitude=prefer_value(server.latitude, cached.latitude),
        longitude=prefer_value(server.longitude, cached.longitude),
    )
