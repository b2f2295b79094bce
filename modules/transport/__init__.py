"""
Auth transport module.

Performs the network calls behind the session core and owns the wire
formats of the auth backend.

Public API:
- IAuthTransport: Interface for auth RPCs
- AuthTransportClient: httpx-backed implementation
- APIClient: Retrying JSON client
- Transport exceptions: HTTPStatusError, TransportTimeoutError, etc.
"""

from .interfaces import IAuthTransport
from .client import APIClient
from .service import AuthTransportClient, build_transport
from .exceptions import (
    TransportError,
    HTTPStatusError,
    TransportTimeoutError,
    ConnectivityError,
    ResponseDecodingError,
)

__all__ = [
    # Interface
    "IAuthTransport",
    # Implementations
    "APIClient",
    "AuthTransportClient",
    "build_transport",
    # Exceptions
    "TransportError",
    "HTTPStatusError",
    "TransportTimeoutError",
    "ConnectivityError",
    "ResponseDecodingError",
]
