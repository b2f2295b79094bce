"""
Retrying JSON API client built on httpx.

Invariants:
    - Transient failures (timeouts, dropped connections, HTTP 502/503/504)
      are retried up to `retries` times with exponential backoff
    - Other 4xx/5xx answers fail immediately with HTTPStatusError
    - Every failure leaves this module as a TransportError subclass
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from .exceptions import (
    ConnectivityError,
    HTTPStatusError,
    ResponseDecodingError,
    TransportTimeoutError,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({502, 503, 504})


def server_message(response: httpx.Response) -> str:
    """Extract the human-readable message from an error response."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or f"HTTP {response.status_code}"

    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, list):
            message = "; ".join(str(part) for part in message)
        if isinstance(message, str) and message.strip():
            return message.strip()
    if isinstance(body, str) and body.strip():
        return body.strip()
    return f"HTTP {response.status_code}"


class APIClient:
    """
    Thin async JSON client for one backend base URL.

    The underlying httpx.AsyncClient can be injected (tests pass one built on
    httpx.MockTransport); otherwise the client creates and owns its own.
    """

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        default_timeout: float = 20.0,
        retry_delay: float = 0.75,
    ):
        if not base_url:
            raise ValueError("APIClient requires a base URL")
        self._base_url = base_url.rstrip("/")
        self._default_timeout = default_timeout
        self._retry_delay = retry_delay
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=default_timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{path.strip('/')}"

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[dict[str, str]] = None,
        json: Any = None,
        data: Optional[dict[str, str]] = None,
        files: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
        retries: int = 1,
        retry_delay: Optional[float] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (None when empty).

        Raises:
            HTTPStatusError: Non-2xx answer after retries
            TransportTimeoutError: The request timed out after retries
            ConnectivityError: The connection failed after retries
            ResponseDecodingError: A 2xx body was not valid JSON
        """
        url = self.url_for(path)
        request_headers = {"Accept": "application/json"}
        request_headers.update(headers or {})
        delay = self._retry_delay if retry_delay is None else retry_delay

        attempt = 0
        while True:
            logger.debug(f"{method} {url} (attempt {attempt + 1})")
            try:
                response = await self._client.request(
                    method,
                    url,
                    headers=request_headers,
                    json=json,
                    data=data,
                    files=files,
                    params=params,
                    timeout=timeout or self._default_timeout,
                )
            except httpx.TimeoutException as e:
                if attempt < retries:
                    attempt += 1
                    await self._backoff(attempt, delay, f"timeout on {method} {path}")
                    continue
                raise TransportTimeoutError(str(e) or "Request timed out")
            except httpx.NetworkError as e:
                if attempt < retries:
                    attempt += 1
                    await self._backoff(attempt, delay, f"network error on {method} {path}")
                    continue
                raise ConnectivityError(str(e) or "Network connection failed")
            except httpx.TransportError as e:
                raise ConnectivityError(str(e) or "Network connection failed")

            logger.debug(f"{response.status_code} {method} {url}")

            if response.is_success:
                return self._decode(response, path)

            if response.status_code in RETRYABLE_STATUSES and attempt < retries:
                attempt += 1
                await self._backoff(attempt, delay, f"HTTP {response.status_code} on {method} {path}")
                continue

            raise HTTPStatusError(response.status_code, server_message(response))

    async def _backoff(self, attempt: int, delay: float, reason: str) -> None:
        wait = delay * (2 ** (attempt - 1))
        logger.warning(f"Retrying after {reason} (retry {attempt}, waiting {wait:.2f}s)")
        if wait > 0:
            await asyncio.sleep(wait)

    @staticmethod
    def _decode(response: httpx.Response, path: str) -> Any:
        if not response.content or not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ResponseDecodingError(path.strip("/"), str(e))
