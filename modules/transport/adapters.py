"""
Deserialization adapters for auth API payloads.

The backend has shipped several spellings for the same field over time
(`_id` vs `id`, `profileImage` vs `avatarUrl`, ...). Each entity gets one
alias table here; the first key present in a payload wins, in table order.
Canonical session models never see the raw spellings.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from modules.session.models import (
    AppUser,
    AuthResponse,
    AuthTokens,
    MessageResponse,
    RegisterResponse,
    UserPet,
)

from .exceptions import ResponseDecodingError


USER_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "_id"),
    "email": ("email",),
    "name": ("name",),
    "avatar_url": ("avatarUrl", "profileImage"),
    "is_verified": ("isVerified", "verified", "emailVerified"),
    "phone": ("phone", "phoneNumber", "mobile"),
    "country": ("country", "countryName", "countryCode"),
    "city": ("city", "locationCity"),
    "pets": ("pets",),
    "has_photo": ("hasPhoto",),
    "has_pets": ("hasPets",),
    "role": ("role",),
    "latitude": ("latitude",),
    "longitude": ("longitude",),
}

TOKEN_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "access_token": ("accessToken", "access_token"),
    "refresh_token": ("refreshToken", "refresh_token"),
}


def _aliases(table: dict[str, tuple[str, ...]], field: str) -> AliasChoices:
    return AliasChoices(*table[field])


class _PetPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = Field(None, validation_alias=AliasChoices("id", "_id"))
    name: Optional[str] = None


class UserPayload(BaseModel):
    """Wire shape of a user record, resolved through USER_FIELD_ALIASES."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., validation_alias=_aliases(USER_FIELD_ALIASES, "id"))
    email: str = Field(..., validation_alias=_aliases(USER_FIELD_ALIASES, "email"))
    name: Optional[str] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "name"))
    avatar_url: Optional[str] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "avatar_url"))
    is_verified: Optional[bool] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "is_verified"))
    phone: Optional[str] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "phone"))
    country: Optional[str] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "country"))
    city: Optional[str] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "city"))
    pets: Optional[list[_PetPayload]] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "pets"))
    has_photo: Optional[bool] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "has_photo"))
    has_pets: Optional[bool] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "has_pets"))
    role: Optional[str] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "role"))
    latitude: Optional[float] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "latitude"))
    longitude: Optional[float] = Field(None, validation_alias=_aliases(USER_FIELD_ALIASES, "longitude"))

    def to_user(self) -> AppUser:
        data = self.model_dump(exclude={"pets"})
        pets = None
        if self.pets is not None:
            pets = [UserPet(id=pet.id, name=pet.name) for pet in self.pets]
        return AppUser(pets=pets, **data)


class TokensPayload(BaseModel):
    """Wire shape of a token pair."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(..., validation_alias=_aliases(TOKEN_FIELD_ALIASES, "access_token"))
    refresh_token: str = Field(..., validation_alias=_aliases(TOKEN_FIELD_ALIASES, "refresh_token"))

    def to_tokens(self) -> AuthTokens:
        return AuthTokens(access_token=self.access_token, refresh_token=self.refresh_token)


def _require_mapping(data: Any, payload: str) -> dict:
    if not isinstance(data, dict):
        raise ResponseDecodingError(payload, f"expected a JSON object, got {type(data).__name__}")
    return data


def parse_user(data: Any) -> AppUser:
    """Decode a user record. Some endpoints wrap it as {"user": {...}}."""
    data = _require_mapping(data, "user")
    if "user" in data and isinstance(data["user"], dict):
        data = data["user"]
    try:
        return UserPayload.model_validate(data).to_user()
    except PydanticValidationError as e:
        raise ResponseDecodingError("user", str(e))


def parse_tokens(data: Any) -> AuthTokens:
    """Decode a token pair. Some endpoints wrap it as {"tokens": {...}}."""
    data = _require_mapping(data, "tokens")
    if "tokens" in data and isinstance(data["tokens"], dict):
        data = data["tokens"]
    try:
        return TokensPayload.model_validate(data).to_tokens()
    except PydanticValidationError as e:
        raise ResponseDecodingError("tokens", str(e))


def parse_auth_response(data: Any) -> AuthResponse:
    """Decode {"user": ..., "tokens": ...}."""
    data = _require_mapping(data, "auth")
    if "user" not in data or "tokens" not in data:
        raise ResponseDecodingError("auth", "missing user or tokens")
    return AuthResponse(user=parse_user(data["user"]), tokens=parse_tokens(data["tokens"]))


def parse_register_response(data: Any) -> RegisterResponse:
    """Decode a registration result where every field is optional."""
    if data is None:
        return RegisterResponse()
    data = _require_mapping(data, "register")
    user = parse_user(data["user"]) if isinstance(data.get("user"), dict) else None
    tokens = parse_tokens(data["tokens"]) if isinstance(data.get("tokens"), dict) else None
    message = data.get("message")
    verification_required = data.get("verificationRequired")
    return RegisterResponse(
        message=message if isinstance(message, str) else None,
        verification_required=verification_required if isinstance(verification_required, bool) else None,
        user=user,
        tokens=tokens,
    )


def parse_message(data: Any) -> MessageResponse:
    """Decode {"message": ...}; an empty body is an empty acknowledgement."""
    if data is None:
        return MessageResponse()
    if isinstance(data, str):
        return MessageResponse(message=data)
    data = _require_mapping(data, "message")
    message = data.get("message")
    return MessageResponse(message=message if isinstance(message, str) else "")


def parse_email_exists(data: Any) -> bool:
    """Decode {"exists": bool}."""
    data = _require_mapping(data, "email-exists")
    exists = data.get("exists")
    if not isinstance(exists, bool):
        raise ResponseDecodingError("email-exists", "missing boolean 'exists'")
    return exists
