"""Tests for AuthTransportClient endpoint mapping."""

import json

import httpx
import pytest

from modules.transport.exceptions import HTTPStatusError, ResponseDecodingError
from modules.transport.interfaces import IAuthTransport
from modules.transport.service import AuthTransportClient, build_transport

from factories import tokens_payload, user_payload


def body(request: httpx.Request) -> dict:
    return json.loads(request.content)


class TestInterface:
    def test_implements_protocol(self, transport):
        """The client should satisfy the transport protocol."""
        assert isinstance(transport, IAuthTransport)

    def test_build_transport_uses_settings(self, settings):
        """build_transport should point at the resolved auth base URL."""
        client = build_transport(settings)
        assert isinstance(client, AuthTransportClient)
        assert client._api.base_url == "https://api.test"


class TestRegister:
    @pytest.mark.asyncio
    async def test_sends_owner_role_and_idempotency_key(self, transport, backend):
        """Registration should carry metadata headers and never retry."""
        backend.reply(httpx.Response(201, json={"message": "ok", "verificationRequired": True}))
        response = await transport.register(" Sam ", " Sam@Example.com ", "secret1")

        request = backend.last
        assert request.url.path == "/auth/register"
        assert request.headers["X-Idempotency-Key"]
        assert request.headers["X-Client"] == "python"
        assert request.headers["Accept-Language"] == "en"
        assert body(request) == {
            "name": "Sam",
            "email": "sam@example.com",
            "password": "secret1",
            "role": "owner",
        }
        assert response.verification_required is True

    @pytest.mark.asyncio
    async def test_register_not_retried_on_503(self, transport, backend):
        backend.reply(httpx.Response(503))
        with pytest.raises(HTTPStatusError):
            await transport.register("Sam", "sam@example.com", "secret1")
        assert len(backend.requests) == 1


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_decodes_auth_response(self, transport, backend):
        backend.reply(httpx.Response(200, json={"user": user_payload(), "tokens": tokens_payload()}))
        response = await transport.login("Owner@Example.com", "pw")
        assert body(backend.last) == {"email": "owner@example.com", "password": "pw"}
        assert response.tokens.access_token == "access-1"

    @pytest.mark.asyncio
    async def test_login_never_retried(self, transport, backend):
        """A transient failure on login should surface immediately."""
        backend.reply(httpx.Response(503))
        with pytest.raises(HTTPStatusError):
            await transport.login("owner@example.com", "pw")
        assert len(backend.requests) == 1


class TestTokenCalls:
    @pytest.mark.asyncio
    async def test_refresh_sends_token_in_header_and_body(self, transport, backend):
        backend.reply(httpx.Response(200, json=tokens_payload("access-2", "refresh-2")))
        tokens = await transport.refresh("refresh-1")
        assert backend.last.headers["Authorization"] == "Bearer refresh-1"
        assert body(backend.last) == {"refreshToken": "refresh-1"}
        assert tokens.access_token == "access-2"

    @pytest.mark.asyncio
    async def test_me_retries_transient_status(self, transport, backend):
        """Reads should retry a 503."""
        backend.reply(httpx.Response(503), httpx.Response(200, json=user_payload()))
        user = await transport.me("access-1")
        assert user.id == "user-123"
        assert len(backend.requests) == 2
        assert backend.last.headers["Authorization"] == "Bearer access-1"

    @pytest.mark.asyncio
    async def test_logout_posts_refresh_token(self, transport, backend):
        backend.reply(httpx.Response(204))
        await transport.logout("refresh-1")
        assert backend.last.url.path == "/auth/logout"
        assert backend.last.headers["Authorization"] == "Bearer refresh-1"


class TestVerificationAndPasswordReset:
    @pytest.mark.asyncio
    async def test_verify_email(self, transport, backend):
        backend.reply(httpx.Response(200, json={"message": "verified"}))
        response = await transport.verify_email("Owner@Example.com", " 123456 ")
        assert body(backend.last) == {"email": "owner@example.com", "code": "123456"}
        assert response.message == "verified"

    @pytest.mark.asyncio
    async def test_resend_verification(self, transport, backend):
        backend.reply(httpx.Response(200, json={"message": "sent"}))
        await transport.resend_verification("owner@example.com")
        assert backend.last.url.path == "/auth/verify/resend"

    @pytest.mark.asyncio
    async def test_reset_password_uses_new_password_key(self, transport, backend):
        backend.reply(httpx.Response(200, json={}))
        await transport.reset_password("owner@example.com", "999", "newsecret")
        assert body(backend.last) == {"email": "owner@example.com", "code": "999", "newPassword": "newsecret"}

    @pytest.mark.asyncio
    async def test_forgot_password(self, transport, backend):
        backend.reply(httpx.Response(200, json={"message": "sent"}))
        await transport.forgot_password("owner@example.com")
        assert backend.last.url.path == "/auth/forgot-password"


class TestProviders:
    @pytest.mark.asyncio
    async def test_google_exchange(self, transport, backend):
        backend.reply(httpx.Response(200, json={"user": user_payload(), "tokens": tokens_payload()}))
        await transport.google("google-id-token")
        assert backend.last.url.path == "/auth/google"
        assert body(backend.last) == {"id_token": "google-id-token"}

    @pytest.mark.asyncio
    async def test_apple_exchange_includes_name(self, transport, backend):
        backend.reply(httpx.Response(200, json={"user": user_payload(), "tokens": tokens_payload()}))
        await transport.apple("apple-token", " Sam Doe ")
        assert body(backend.last) == {"identityToken": "apple-token", "name": "Sam Doe"}

    @pytest.mark.asyncio
    async def test_apple_exchange_omits_blank_name(self, transport, backend):
        backend.reply(httpx.Response(200, json={"user": user_payload(), "tokens": tokens_payload()}))
        await transport.apple("apple-token", "  ")
        assert body(backend.last) == {"identityToken": "apple-token"}

    @pytest.mark.asyncio
    async def test_check_email_exists(self, transport, backend):
        backend.reply(httpx.Response(200, json={"exists": True}))
        assert await transport.check_email_exists("Owner@Example.com") is True
        assert backend.last.method == "GET"
        assert backend.last.url.params["email"] == "owner@example.com"


class TestUpdateProfile:
    @pytest.mark.asyncio
    async def test_json_update(self, transport, backend):
        """Without an image the profile is sent as JSON."""
        backend.reply(httpx.Response(200, json=user_payload(phoneNumber="+216")))
        user = await transport.update_profile("access-1", "Sam", " +216 ", "TN", "Tunis", True, False)
        request = backend.last
        assert request.method == "PATCH"
        assert request.url.path == "/users/profile"
        assert body(request) == {
            "name": "Sam",
            "phoneNumber": "+216",
            "country": "TN",
            "city": "Tunis",
            "hasPhoto": True,
            "hasPets": False,
        }
        assert user.phone == "+216"

    @pytest.mark.asyncio
    async def test_multipart_update(self, transport, backend):
        """With an image the profile is sent as multipart with string booleans."""
        backend.reply(httpx.Response(200, json=user_payload()))
        await transport.update_profile("access-1", "Sam", "", None, "Tunis", True, True, image=b"\xff\xd8jpeg")
        request = backend.last
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        content = request.content
        assert b'name="image"; filename="avatar.jpg"' in content
        assert b'name="hasPhoto"\r\n\r\ntrue' in content
        assert b'name="city"\r\n\r\nTunis' in content
        assert b'name="phoneNumber"' not in content

    @pytest.mark.asyncio
    async def test_undecodable_update_raises_decoding_error(self, transport, backend):
        """A saved-but-unreadable answer should raise ResponseDecodingError."""
        backend.reply(httpx.Response(200, json={"ok": True}))
        with pytest.raises(ResponseDecodingError):
            await transport.update_profile("access-1", "Sam", None, None, None, False, False)
