"""
Pytest fixtures for transport module tests.

Requests are answered by an httpx.MockTransport that replays a queue of
canned responses and records every request it saw.
"""

from typing import Callable, Union

import httpx
import pytest

from modules.transport.client import APIClient
from modules.transport.service import AuthTransportClient

Reply = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeBackend:
    """Replays queued replies in order; the last one repeats."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._replies: list[Reply] = []

    def reply(self, *replies: Reply) -> "FakeBackend":
        self._replies.extend(replies)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._replies:
            return httpx.Response(200, json={})
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return reply

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def http_client(backend) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def api(http_client) -> APIClient:
    return APIClient("https://api.test/", http_client=http_client, retry_delay=0)


@pytest.fixture
def transport(api, settings) -> AuthTransportClient:
    return AuthTransportClient(api=api, settings=settings)
