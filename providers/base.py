"""Base classes and models for identity providers."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, Field

from shared.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[Mapping[str, Any]], None]
ErrorCallback = Callable[[BaseException], None]
StartFlow = Callable[[SuccessCallback, ErrorCallback], None]


class ProviderCredential(BaseModel):
    """Result of a completed provider sign-in.

    Attributes:
        provider: "google" or "apple"
        identity_token: Token the backend exchanges for a session
        email: Email reported by the provider, if any
        display_name: Name reported by the provider, if any
    """

    model_config = {"frozen": True}

    provider: str
    identity_token: str = Field(..., min_length=1, repr=False)
    email: Optional[str] = None
    display_name: Optional[str] = None


class ProviderError(ExternalServiceError):
    """Raised when a provider SDK fails or returns an unusable result."""

    def __init__(self, message: str, provider: str, code: str = "PROVIDER_ERROR"):
        super().__init__(message, service=provider, code=code)
        self.provider = provider


class ProviderCancelledError(ProviderError):
    """Raised when the user dismissed the provider sheet. Not an error to show."""

    def __init__(self, provider: str):
        super().__init__(f"{provider} sign-in was cancelled", provider, code="PROVIDER_CANCELLED")


class IdentityProvider(ABC):
    """Abstract base class for identity providers.

    Every provider turns its SDK's interaction into one awaitable that
    yields a ProviderCredential, whatever shape the SDK reports in.
    """

    name: str = ""

    @abstractmethod
    async def authenticate(self) -> ProviderCredential:
        """Run the provider interaction.

        Returns:
            The credential to hand to the session manager

        Raises:
            ProviderCancelledError: The user backed out
            ProviderError: The SDK failed or returned no token
        """
        pass


class CallbackIdentityProvider(IdentityProvider):
    """Adapts SDKs that report through a pair of success/error callbacks.

    `start` kicks off the SDK flow and must eventually call exactly one of
    the two callbacks, from any thread. Later calls are ignored.
    """

    def __init__(self, start: StartFlow, timeout: Optional[float] = None):
        self._start = start
        self._timeout = timeout

    async def authenticate(self) -> ProviderCredential:
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def resolve(result: Mapping[str, Any]) -> None:
            if not future.done():
                future.set_result(result)

        def reject(error: BaseException) -> None:
            if not future.done():
                future.set_exception(error)

        self._start(
            lambda result: loop.call_soon_threadsafe(resolve, result),
            lambda error: loop.call_soon_threadsafe(reject, error),
        )

        try:
            if self._timeout is not None:
                result = await asyncio.wait_for(future, self._timeout)
            else:
                result = await future
        except asyncio.TimeoutError:
            raise ProviderError(f"{self.name} sign-in timed out", self.name, code="PROVIDER_TIMEOUT")
        except ProviderError:
            raise
        except Exception as e:
            logger.warning(f"{self.name} sign-in failed: {type(e).__name__}")
            raise ProviderError(str(e) or f"{self.name} sign-in failed", self.name)

        credential = self.to_credential(result)
        logger.debug(f"{self.name} sign-in produced a credential")
        return credential

    @abstractmethod
    def to_credential(self, result: Mapping[str, Any]) -> ProviderCredential:
        """Convert the SDK's success payload into a credential."""
        pass


def text_or_none(value: Any) -> Optional[str]:
    """Strip a string value; anything blank or non-string becomes None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None
