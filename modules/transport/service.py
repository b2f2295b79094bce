"""
Auth transport implementation.

Maps each auth RPC onto an HTTP call against the auth backend. Read-style
calls retry with backoff; register and login never retry, and register
carries an idempotency key so a duplicate submission cannot create a second
account.
"""

import logging
import uuid
from typing import Optional

import httpx

from shared.config import Settings, get_settings
from modules.session.models import (
    AppUser,
    AuthResponse,
    AuthTokens,
    MessageResponse,
    RegisterResponse,
)
from modules.session.validators import normalize_email

from .adapters import (
    parse_auth_response,
    parse_email_exists,
    parse_message,
    parse_register_response,
    parse_tokens,
    parse_user,
)
from .client import APIClient
from .interfaces import IAuthTransport

logger = logging.getLogger(__name__)


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


class AuthTransportClient(IAuthTransport):
    """
    httpx-backed implementation of IAuthTransport.

    Timeouts and retry counts are per endpoint: slow cold starts on the hosted
    backend make login and register deliberately patient, while reads fail
    over to a retry quickly.
    """

    def __init__(
        self,
        api: Optional[APIClient] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self._api = api or APIClient(
            self._settings.resolved_auth_base_url,
            default_timeout=self._settings.request_timeout,
            retry_delay=self._settings.retry_delay,
        )

    async def aclose(self) -> None:
        await self._api.aclose()

    async def register(self, name: str, email: str, password: str) -> RegisterResponse:
        headers = {
            "X-Idempotency-Key": str(uuid.uuid4()),
            "Accept-Language": self._settings.preferred_language,
            "X-App-Version": self._settings.app_version,
            "X-Client": self._settings.client_name,
        }
        body = {
            "name": name.strip(),
            "email": normalize_email(email),
            "password": password,
            "role": "owner",
        }
        data = await self._api.request(
            "POST", "auth/register", headers=headers, json=body, timeout=45, retries=0
        )
        return parse_register_response(data)

    async def login(self, email: str, password: str) -> AuthResponse:
        data = await self._api.request(
            "POST",
            "auth/login",
            json={"email": normalize_email(email), "password": password},
            timeout=50,
            retries=0,
        )
        return parse_auth_response(data)

    async def refresh(self, refresh_token: str) -> AuthTokens:
        data = await self._api.request(
            "POST",
            "auth/refresh",
            headers=_bearer(refresh_token),
            json={"refreshToken": refresh_token},
            timeout=40,
            retries=1,
            retry_delay=0.8,
        )
        return parse_tokens(data)

    async def me(self, access_token: str) -> AppUser:
        data = await self._api.request(
            "GET", "auth/me", headers=_bearer(access_token), timeout=35, retries=1
        )
        return parse_user(data)

    async def logout(self, refresh_token: str) -> None:
        await self._api.request(
            "POST", "auth/logout", headers=_bearer(refresh_token), json={}, timeout=20, retries=1
        )

    async def verify_email(self, email: str, code: str) -> MessageResponse:
        data = await self._api.request(
            "POST",
            "auth/verify",
            json={"email": normalize_email(email), "code": code.strip()},
            timeout=40,
            retries=2,
            retry_delay=1.0,
        )
        return parse_message(data)

    async def resend_verification(self, email: str) -> MessageResponse:
        data = await self._api.request(
            "POST",
            "auth/verify/resend",
            json={"email": normalize_email(email)},
            timeout=25,
            retries=1,
            retry_delay=0.8,
        )
        return parse_message(data)

    async def forgot_password(self, email: str) -> MessageResponse:
        data = await self._api.request(
            "POST",
            "auth/forgot-password",
            json={"email": normalize_email(email)},
            timeout=40,
            retries=1,
            retry_delay=0.8,
        )
        return parse_message(data)

    async def reset_password(self, email: str, code: str, new_password: str) -> MessageResponse:
        data = await self._api.request(
            "POST",
            "auth/reset-password",
            json={
                "email": normalize_email(email),
                "code": code.strip(),
                "newPassword": new_password,
            },
            timeout=45,
            retries=1,
            retry_delay=0.8,
        )
        return parse_message(data)

    async def google(self, id_token: str) -> AuthResponse:
        data = await self._api.request(
            "POST",
            "auth/google",
            json={"id_token": id_token},
            timeout=35,
            retries=2,
            retry_delay=0.9,
        )
        return parse_auth_response(data)

    async def apple(self, identity_token: str, name: Optional[str] = None) -> AuthResponse:
        body = {"identityToken": identity_token}
        if name and name.strip():
            body["name"] = name.strip()
        data = await self._api.request(
            "POST", "auth/apple", json=body, timeout=35, retries=2, retry_delay=0.9
        )
        return parse_auth_response(data)

    async def check_email_exists(self, email: str) -> bool:
        data = await self._api.request(
            "GET",
            "auth/email-exists",
            params={"email": normalize_email(email)},
            timeout=20,
            retries=1,
        )
        return parse_email_exists(data)

    async def update_profile(
        self,
        access_token: str,
        name: Optional[str],
        phone: Optional[str],
        country: Optional[str],
        city: Optional[str],
        has_photo: bool,
        has_pets: bool,
        image: Optional[bytes] = None,
    ) -> AppUser:
        fields = {
            "name": _clean(name),
            "phoneNumber": _clean(phone),
            "country": _clean(country),
            "city": _clean(city),
        }

        if image is None:
            body = dict(fields)
            body["hasPhoto"] = has_photo
            body["hasPets"] = has_pets
            data = await self._api.request(
                "PATCH",
                "users/profile",
                headers=_bearer(access_token),
                json=body,
                timeout=25,
                retries=1,
            )
            return parse_user(data)

        # Multipart form: empty text fields are omitted, booleans are sent as strings.
        form = {key: value for key, value in fields.items() if value}
        form["hasPhoto"] = "true" if has_photo else "false"
        form["hasPets"] = "true" if has_pets else "false"
        logger.debug(f"Uploading avatar ({len(image)} bytes) with profile update")
        data = await self._api.request(
            "PATCH",
            "users/profile",
            headers=_bearer(access_token),
            data=form,
            files={"image": ("avatar.jpg", image, "image/jpeg")},
            timeout=60,
            retries=0,
        )
        return parse_user(data)


def build_transport(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AuthTransportClient:
    """Create a transport wired to the configured auth base URL."""
    settings = settings or get_settings()
    api = APIClient(
        settings.resolved_auth_base_url,
        http_client=http_client,
        default_timeout=settings.request_timeout,
        retry_delay=settings.retry_delay,
    )
    return AuthTransportClient(api=api, settings=settings)
