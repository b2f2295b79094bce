"""
Session core implementation.

SessionManager owns the authentication lifecycle: restoring a session at
process start, password and provider sign-in, registration, email
verification, token refresh and logout. It keeps one SessionState snapshot
and publishes a new one after every transition.

Invariants:
    - Exactly one of Unauthenticated, PendingVerification, Authenticated holds
    - Transport and validation errors never escape a public operation; each
      failure becomes one signal (last_error, the verification state, or a
      navigation hint)
    - Tokens are written to the token store on every change and erased on logout
    - The pending signup password lives in memory only
    - Token refresh is single-flight: concurrent callers share one request
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterator, Optional

from shared.config import Settings, get_settings
from shared.exceptions import ValidationError
from modules.transport.exceptions import HTTPStatusError, ResponseDecodingError, TransportError

from .completion import ProfilePromptTracker
from .exceptions import TokenStoreError
from .interfaces import ITokenStore, IUserCache
from .merge import merge_users
from .messages import (
    APPLE_SIGNIN_MESSAGES,
    APPLE_SIGNUP_MESSAGES,
    FORGOT_PASSWORD_MESSAGES,
    GOOGLE_SIGNIN_MESSAGES,
    GOOGLE_SIGNUP_MESSAGES,
    INVALID_VERIFICATION_EMAIL_MESSAGE,
    PROFILE_UPDATE_MESSAGES,
    RESEND_MESSAGES,
    RESET_PASSWORD_MESSAGES,
    SIGN_IN_MESSAGES,
    SIGN_UP_MESSAGES,
    VERIFIED_SIGN_IN_MESSAGE,
    VERIFY_MESSAGES,
    ErrorMessages,
)
from .models import AppUser, AuthResponse, AuthTokens, SessionState, SessionStatus
from .state import LoginListener, SessionStateBroadcaster, StateListener
from .storage import JsonFileStore, KeyringTokenStore, UserProfileCache
from .validators import (
    is_valid_email,
    normalize_email,
    validate_code,
    validate_email,
    validate_password,
)

if TYPE_CHECKING:
    from modules.transport.interfaces import IAuthTransport

logger = logging.getLogger(__name__)

# Failures the session absorbs into state; anything else is a bug and propagates.
HANDLED_ERRORS = (TransportError, ValidationError)


def _trim(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


class SessionManager:
    """
    Authentication state machine for one signed-in device.

    Construct it once at the application root and hand it to whatever needs
    the session. The constructor loads the cached user synchronously so the
    UI can render immediately; call `await restore()` afterwards to validate
    stored tokens against the server.
    """

    def __init__(
        self,
        transport: "IAuthTransport",
        token_store: ITokenStore,
        user_cache: IUserCache,
        settings: Optional[Settings] = None,
    ):
        self._transport = transport
        self._token_store = token_store
        self._user_cache = user_cache
        self._settings = settings or get_settings()

        self._state = SessionState()
        self._broadcaster = SessionStateBroadcaster(self._state)
        self._batch_depth = 0
        self._prompt = ProfilePromptTracker()
        self._pending_password: Optional[str] = None
        self._refresh_task: Optional[asyncio.Future] = None

        self._load_cached_user()

    # ------------------------------------------------------------------
    # Observed state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def user(self) -> Optional[AppUser]:
        return self._state.user

    @property
    def tokens(self) -> Optional[AuthTokens]:
        return self._state.tokens

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def last_error(self) -> Optional[str]:
        return self._state.last_error

    @property
    def requires_email_verification(self) -> bool:
        return self._state.requires_email_verification

    @property
    def pending_email(self) -> Optional[str]:
        return self._state.pending_email

    @property
    def requires_profile_completion(self) -> bool:
        return self._state.requires_profile_completion

    @property
    def should_present_edit_profile(self) -> bool:
        return self._state.should_present_edit_profile

    @property
    def show_profile_completion_alert(self) -> bool:
        return self._state.show_profile_completion_alert

    @property
    def should_navigate_to_login(self) -> bool:
        return self._state.should_navigate_to_login

    @property
    def should_navigate_to_signup(self) -> bool:
        return self._state.should_navigate_to_signup

    @property
    def has_restored_session(self) -> bool:
        return self._state.has_restored_session

    @property
    def has_pending_signup(self) -> bool:
        """Whether a signup password is held for auto sign-in after verification."""
        return self._pending_password is not None

    def subscribe(self, listener: StateListener, replay: bool = True) -> Callable[[], None]:
        """Observe state snapshots; returns an unsubscribe callable."""
        return self._broadcaster.subscribe(listener, replay=replay)

    def add_login_listener(self, listener: LoginListener) -> Callable[[], None]:
        """Run `listener` every time the session becomes fully authenticated."""
        return self._broadcaster.add_login_listener(listener)

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------

    def _update(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)
        if self._batch_depth == 0:
            self._broadcaster.publish(self._state)

    @contextmanager
    def _batch(self) -> Iterator[None]:
        """Group several updates into one published snapshot. Never spans an await."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._broadcaster.publish(self._state)

    def _enter_authenticated(self) -> None:
        self._update(
            is_authenticated=True,
            requires_email_verification=False,
            pending_email=None,
            should_navigate_to_login=False,
            should_navigate_to_signup=False,
        )
        self._broadcaster.notify_logged_in()

    def _enter_pending_verification(self, email: str) -> None:
        self._update(
            is_authenticated=False,
            requires_email_verification=True,
            pending_email=email,
        )

    def _fail(self, messages: ErrorMessages, error: Exception, operation: str) -> None:
        status = getattr(error, "status", None)
        code = getattr(error, "code", type(error).__name__)
        logger.warning(
            f"{operation} failed: {code}" + (f" (HTTP {status})" if status else ""),
            extra={"operation": operation, "status_code": status},
        )
        self._update(last_error=messages.describe(error))

    def _set_tokens(self, tokens: Optional[AuthTokens]) -> None:
        self._update(tokens=tokens)
        try:
            if tokens is None:
                self._token_store.clear()
            else:
                self._token_store.save(tokens)
        except TokenStoreError as e:
            logger.warning(f"Could not persist tokens: {e.message}")

    def _profile_changes(self, user: Optional[AppUser]) -> dict[str, Any]:
        completion = self._prompt.evaluate(user)
        changes: dict[str, Any] = {
            "requires_profile_completion": completion.requires_completion,
            "should_present_edit_profile": False,
        }
        if completion.show_prompt:
            changes["show_profile_completion_alert"] = True
        elif not completion.requires_completion:
            changes["show_profile_completion_alert"] = False
        return changes

    def _set_user(self, user: AppUser) -> None:
        """Replace the user, keep the cache in sync and re-evaluate completion."""
        try:
            self._user_cache.save(user)
        except OSError as e:
            logger.warning(f"Could not cache user profile: {e}")
        self._update(user=user, **self._profile_changes(user))

    def _apply_server_user(self, server: AppUser) -> AppUser:
        merged = merge_users(server, self._state.user)
        self._set_user(merged)
        return merged

    def _load_cached_user(self) -> None:
        try:
            cached = self._user_cache.load()
        except OSError as e:
            logger.warning(f"Could not read cached user profile: {e}")
            return
        if cached is not None:
            logger.debug("Loaded cached user profile")
            self._update(user=cached, **self._profile_changes(cached))

    async def _establish(self, tokens: AuthTokens) -> AppUser:
        """Persist tokens, fetch the server user and merge it. Returns the server copy."""
        self._set_tokens(tokens)
        try:
            server = await self._transport.me(tokens.access_token)
        except TransportError:
            # Tokens without a confirmed user are not a session.
            self._set_tokens(None)
            raise
        self._apply_server_user(server)
        return server

    # ------------------------------------------------------------------
    # Restoration
    # ------------------------------------------------------------------

    async def restore(self) -> SessionState:
        """
        Validate stored tokens at process start.

        `/me` success decides between Authenticated and PendingVerification;
        failure tries one refresh, and a failed refresh ends the session
        (covers accounts deleted server-side).
        """
        try:
            await self._restore()
        finally:
            self._update(has_restored_session=True)
        return self._state

    async def _restore(self) -> None:
        try:
            tokens = self._token_store.load()
        except TokenStoreError as e:
            logger.warning(f"Could not read stored tokens: {e.message}")
            tokens = None

        if tokens is None:
            self._update(is_authenticated=False)
            return

        self._update(tokens=tokens)
        try:
            server = await self._transport.me(tokens.access_token)
        except TransportError as e:
            logger.info(f"Stored session rejected ({e.code}); trying token refresh")
            # A failed refresh logs out on its own.
            await self.refresh_tokens_if_possible()
            return

        user = self._apply_server_user(server)
        if server.is_verified is False:
            self._enter_pending_verification(user.email)
        else:
            self._enter_authenticated()

    # ------------------------------------------------------------------
    # Registration and password sign-in
    # ------------------------------------------------------------------

    async def sign_up(self, name: str, email: str, password: str) -> bool:
        """
        Register an owner account.

        Returns True when the account exists afterwards, whether the session
        ended Authenticated or PendingVerification.
        """
        self._update(last_error=None)
        try:
            clean_email = validate_email(email)
            validate_password(password, self._settings.min_password_length)

            response = await self._transport.register(name, clean_email, password)
            if response.message:
                logger.debug(f"Register: {response.message}")

            tokens = response.tokens
            if tokens is None:
                try:
                    login = await self._transport.login(clean_email, password)
                except HTTPStatusError as e:
                    if e.status not in (401, 403):
                        raise
                    logger.info("Account created; sign-in waits for email verification")
                    self._pending_password = password
                    self._enter_pending_verification(clean_email)
                    return True
                tokens = login.tokens

            server = await self._establish(tokens)
        except HANDLED_ERRORS as e:
            self._fail(SIGN_UP_MESSAGES, e, "sign_up")
            return False

        self._pending_password = None
        if response.verification_required or server.is_verified is False:
            self._enter_pending_verification(self._state.user.email)
        else:
            self._enter_authenticated()
        return True

    async def sign_in(self, email: str, password: str) -> None:
        """Sign in with email and password; inspect the state afterwards."""
        self._update(last_error=None, should_navigate_to_login=False, should_navigate_to_signup=False)
        clean_email = normalize_email(email)
        try:
            validate_email(clean_email)
            validate_password(password, 1)
            response = await self._transport.login(clean_email, password)
            server = await self._establish(response.tokens)
        except HTTPStatusError as e:
            if e.status == 403:
                logger.info("Sign-in blocked until the email is verified")
                self._enter_pending_verification(clean_email)
                return
            self._fail(SIGN_IN_MESSAGES, e, "sign_in")
            self._update(is_authenticated=False)
            return
        except HANDLED_ERRORS as e:
            self._fail(SIGN_IN_MESSAGES, e, "sign_in")
            self._update(is_authenticated=False)
            return

        if server.is_verified is False:
            self._enter_pending_verification(self._state.user.email)
        else:
            self._enter_authenticated()

    # ------------------------------------------------------------------
    # Email verification
    # ------------------------------------------------------------------

    async def verify_email(self, email: str, code: str) -> bool:
        """
        Confirm the email with a code.

        On success, signs in automatically with the pending signup password or
        the tokens already held; otherwise leaves the session Unauthenticated
        with a "please sign in" message.
        """
        self._update(last_error=None)

        candidate = (email or "").strip()
        if not candidate:
            candidate = self._state.pending_email or (self._state.user.email if self._state.user else "")
        resolved = normalize_email(candidate)
        if not is_valid_email(resolved):
            self._update(last_error=INVALID_VERIFICATION_EMAIL_MESSAGE)
            return False

        try:
            clean_code = validate_code(code)
        except ValidationError as e:
            self._fail(VERIFY_MESSAGES, e, "verify_email")
            return False

        password, self._pending_password = self._pending_password, None
        try:
            await self._transport.verify_email(resolved, clean_code)
        except TransportError as e:
            self._fail(VERIFY_MESSAGES, e, "verify_email")
            return False

        self._update(requires_email_verification=False, pending_email=None)

        if password is not None:
            try:
                response = await self._transport.login(resolved, password)
                await self._establish(response.tokens)
            except TransportError as e:
                logger.info(f"Auto sign-in after verification failed ({e.code})")
                self._update(is_authenticated=False, last_error=VERIFIED_SIGN_IN_MESSAGE)
                return True
            self._enter_authenticated()
            return True

        tokens = self._state.tokens
        if tokens is not None:
            try:
                server = await self._transport.me(tokens.access_token)
            except TransportError as e:
                logger.info(f"Could not load user after verification ({e.code})")
                self._update(is_authenticated=False, last_error=VERIFIED_SIGN_IN_MESSAGE)
                return True
            self._apply_server_user(server)
            self._enter_authenticated()
            return True

        self._update(is_authenticated=False, last_error=VERIFIED_SIGN_IN_MESSAGE)
        return True

    async def resend_verification(self, email: str) -> bool:
        """Ask the server for a new verification code."""
        self._update(last_error=None)
        try:
            clean_email = validate_email(email)
            response = await self._transport.resend_verification(clean_email)
        except HANDLED_ERRORS as e:
            self._fail(RESEND_MESSAGES, e, "resend_verification")
            return False
        logger.debug(f"Resend: {response.message}")
        return True

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str) -> bool:
        """Request a password reset code."""
        self._update(last_error=None)
        try:
            clean_email = validate_email(email)
            await self._transport.forgot_password(clean_email)
        except HANDLED_ERRORS as e:
            self._fail(FORGOT_PASSWORD_MESSAGES, e, "forgot_password")
            return False
        return True

    async def reset_password(self, email: str, code: str, new_password: str) -> bool:
        """Set a new password with the code from the reset email."""
        self._update(last_error=None)
        try:
            clean_email = validate_email(email)
            clean_code = validate_code(code)
            validate_password(new_password, self._settings.min_password_length)
            await self._transport.reset_password(clean_email, clean_code, new_password)
        except HANDLED_ERRORS as e:
            self._fail(RESET_PASSWORD_MESSAGES, e, "reset_password")
            return False
        return True

    # ------------------------------------------------------------------
    # Google / Apple
    # ------------------------------------------------------------------

    async def google_signup(self, id_token: str, email: str) -> None:
        await self._provider_signup(
            "google", email, lambda: self._transport.google(id_token), GOOGLE_SIGNUP_MESSAGES
        )

    async def google_signin(self, id_token: str, email: str) -> None:
        await self._provider_signin(
            "google", email, lambda: self._transport.google(id_token), GOOGLE_SIGNIN_MESSAGES
        )

    async def apple_signup(self, identity_token: str, email: str, name: Optional[str] = None) -> None:
        await self._provider_signup(
            "apple", email, lambda: self._transport.apple(identity_token, name), APPLE_SIGNUP_MESSAGES
        )

    async def apple_signin(self, identity_token: str, email: str, name: Optional[str] = None) -> None:
        await self._provider_signin(
            "apple", email, lambda: self._transport.apple(identity_token, name), APPLE_SIGNIN_MESSAGES
        )

    def _start_provider_flow(self) -> None:
        with self._batch():
            self._update(
                last_error=None,
                should_navigate_to_login=False,
                should_navigate_to_signup=False,
            )
            if not self._state.is_authenticated:
                self._update(requires_email_verification=False, pending_email=None)

    async def _provider_signup(
        self,
        provider: str,
        email: str,
        exchange: Callable[[], Awaitable[AuthResponse]],
        messages: ErrorMessages,
    ) -> None:
        """Existing account -> go to login; new account -> verify in-app before authenticating."""
        self._start_provider_flow()
        try:
            clean_email = validate_email(email)
            if await self._transport.check_email_exists(clean_email):
                logger.info(f"{provider} signup for an existing account; redirecting to login")
                self._update(is_authenticated=False, should_navigate_to_login=True)
                return
            response = await exchange()
            await self._establish(response.tokens)
        except HTTPStatusError as e:
            if e.status in (400, 409):
                self._update(is_authenticated=False, should_navigate_to_login=True)
                return
            self._fail(messages, e, f"{provider}_signup")
            self._update(is_authenticated=False)
            return
        except HANDLED_ERRORS as e:
            self._fail(messages, e, f"{provider}_signup")
            self._update(is_authenticated=False)
            return

        await self._require_in_app_verification(provider, clean_email)

    async def _provider_signin(
        self,
        provider: str,
        email: str,
        exchange: Callable[[], Awaitable[AuthResponse]],
        messages: ErrorMessages,
    ) -> None:
        """Unknown account -> go to signup without exchanging tokens; known -> verify in-app."""
        self._start_provider_flow()
        try:
            clean_email = validate_email(email)
            if not await self._transport.check_email_exists(clean_email):
                logger.info(f"{provider} sign-in for an unknown account; redirecting to signup")
                self._update(is_authenticated=False, should_navigate_to_signup=True)
                return
            response = await exchange()
            await self._establish(response.tokens)
        except HTTPStatusError as e:
            if e.status in (401, 404):
                with self._batch():
                    self._set_tokens(None)
                    self._update(is_authenticated=False, should_navigate_to_signup=True)
                return
            self._fail(messages, e, f"{provider}_signin")
            self._update(is_authenticated=False)
            return
        except HANDLED_ERRORS as e:
            self._fail(messages, e, f"{provider}_signin")
            self._update(is_authenticated=False)
            return

        await self._require_in_app_verification(provider, clean_email)

    async def _require_in_app_verification(self, provider: str, email: str) -> None:
        self._enter_pending_verification(email)
        try:
            await self._transport.resend_verification(email)
        except TransportError as e:
            logger.warning(f"Could not request a verification code after {provider} sign-in ({e.code})")

    # ------------------------------------------------------------------
    # Logout and refresh
    # ------------------------------------------------------------------

    async def logout(self) -> None:
        """End the session locally; server-side revocation is best effort."""
        refresh_token = self._state.tokens.refresh_token if self._state.tokens else None
        self._pending_password = None
        self._prompt.reset()

        if refresh_token:
            try:
                await self._transport.logout(refresh_token)
            except TransportError as e:
                logger.info(f"Server logout failed ({e.code}); clearing local session anyway")

        try:
            self._user_cache.clear()
        except OSError as e:
            logger.warning(f"Could not clear cached user profile: {e}")

        with self._batch():
            self._set_tokens(None)
            self._update(
                user=None,
                is_authenticated=False,
                requires_email_verification=False,
                pending_email=None,
                requires_profile_completion=False,
                should_present_edit_profile=False,
                show_profile_completion_alert=False,
                should_navigate_to_login=False,
                should_navigate_to_signup=False,
                last_error=None,
            )

    async def refresh_tokens_if_possible(self) -> None:
        """
        Exchange the refresh token for a new pair and reload the user.

        Concurrent calls join the refresh already in flight. Any failure,
        including having no refresh token, ends the session.
        """
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._refresh_tokens())
        await asyncio.shield(self._refresh_task)

    async def _refresh_tokens(self) -> None:
        tokens = self._state.tokens
        if tokens is None:
            logger.info("No refresh token available; ending session")
            await self.logout()
            return

        was_pending = self._state.requires_email_verification
        try:
            new_tokens = await self._transport.refresh(tokens.refresh_token)
            self._set_tokens(new_tokens)
            server = await self._transport.me(new_tokens.access_token)
        except TransportError as e:
            logger.warning(f"Token refresh failed ({e.code}); logging out")
            await self.logout()
            return

        user = self._apply_server_user(server)
        if was_pending or server.is_verified is False:
            self._enter_pending_verification(self._state.pending_email or user.email)
        else:
            self._enter_authenticated()

    async def refresh_user_data(self) -> None:
        """Re-fetch and merge the current user; failures are logged only."""
        tokens = self._state.tokens
        if tokens is None:
            return
        try:
            server = await self._transport.me(tokens.access_token)
        except TransportError as e:
            logger.info(f"Could not refresh user data ({e.code})")
            return
        self._apply_server_user(server)

    def authorized_headers(self) -> dict[str, str]:
        """Auth headers for collaborators making their own API requests."""
        if self._state.tokens is None:
            return {}
        return {"Authorization": f"Bearer {self._state.tokens.access_token}"}

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def update_profile(
        self,
        name: Optional[str],
        phone: Optional[str],
        country: Optional[str],
        city: Optional[str],
        has_photo: bool,
        has_pets: bool,
        image: Optional[bytes] = None,
    ) -> bool:
        """
        Save profile details (and optionally a new avatar).

        Without tokens the change is kept locally and False is returned. When
        the server saved but its response cannot be decoded, the canonical
        record is re-fetched and the submitted fields are applied on top.
        """
        current = self._state.user
        if current is None:
            return False
        self._update(last_error=None)

        name, phone, country, city = _trim(name), _trim(phone), _trim(country), _trim(city)
        submitted = dict(
            name=name, phone=phone, country=country, city=city,
            has_photo=has_photo, has_pets=has_pets,
        )

        tokens = self._state.tokens
        if tokens is None:
            logger.info("Profile update without a session; keeping changes locally")
            self._set_user(current.updating(**submitted))
            return False

        try:
            server = await self._transport.update_profile(
                tokens.access_token, name, phone, country, city, has_photo, has_pets, image
            )
        except ResponseDecodingError:
            logger.warning("Profile update response unreadable; re-fetching the user")
            try:
                refetched = await self._transport.me(tokens.access_token)
            except TransportError as e:
                self._fail(PROFILE_UPDATE_MESSAGES, e, "update_profile")
                return False
            self._set_user(merge_users(refetched, self._state.user).updating(**submitted))
            return True
        except TransportError as e:
            self._fail(PROFILE_UPDATE_MESSAGES, e, "update_profile")
            return False

        self._apply_server_user(server)
        return True

    def dismiss_profile_prompt(self) -> None:
        """The user chose "Later" on the completion prompt."""
        self._update(show_profile_completion_alert=False)

    def request_edit_profile(self) -> None:
        """The user accepted the completion prompt."""
        self._update(show_profile_completion_alert=False, should_present_edit_profile=True)

    def clear_navigation_hints(self) -> None:
        """Acknowledge should_navigate_to_login / should_navigate_to_signup."""
        self._update(should_navigate_to_login=False, should_navigate_to_signup=False)


def build_session_manager(
    settings: Optional[Settings] = None,
    transport: Optional["IAuthTransport"] = None,
) -> SessionManager:
    """Wire a SessionManager with the keychain, the on-disk cache and the HTTP transport."""
    from modules.transport.service import build_transport

    settings = settings or get_settings()
    token_store = KeyringTokenStore(
        settings.keyring_service,
        settings.access_token_key,
        settings.refresh_token_key,
    )
    user_cache = UserProfileCache(JsonFileStore(settings.user_cache_path), settings.user_cache_key)
    return SessionManager(
        transport=transport or build_transport(settings),
        token_store=token_store,
        user_cache=user_cache,
        settings=settings,
    )
