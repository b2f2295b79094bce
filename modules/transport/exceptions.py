"""
Transport module exceptions.

Every failure the auth backend can produce surfaces as one of these types.
The session module classifies them into user-facing messages; nothing above
the transport sees httpx exceptions.
"""

from typing import Optional

from shared.exceptions import ExternalServiceError

SERVICE_NAME = "auth-api"


class TransportError(ExternalServiceError):
    """Base exception for auth transport failures."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, service=SERVICE_NAME, code=code, details=details)


class HTTPStatusError(TransportError):
    """Raised when the server answers with a non-2xx status."""

    def __init__(self, status: int, message: str):
        super().__init__(
            message or f"HTTP {status}",
            code="HTTP_STATUS",
            details={"status": status},
        )
        self.status = status


class TransportTimeoutError(TransportError):
    """Raised when the server did not answer in time."""

    def __init__(self, message: str = "Request timed out"):
        super().__init__(message, code="TIMEOUT")


class ConnectivityError(TransportError):
    """Raised on DNS failures, refused connections and dropped links."""

    def __init__(self, message: str = "Network connection failed"):
        super().__init__(message, code="CONNECTIVITY")


class ResponseDecodingError(TransportError):
    """Raised when a 2xx response body cannot be decoded into the expected payload."""

    def __init__(self, payload: str, message: str):
        super().__init__(
            f"Could not decode {payload} response: {message}",
            code="DECODING_ERROR",
            details={"payload": payload},
        )
        self.payload = payload
