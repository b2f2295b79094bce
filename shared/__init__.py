"""
Shared infrastructure for the session core.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- exceptions: Base exception classes
- observability: Logging setup and credential redaction

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .exceptions import (
    PetCareError,
    ValidationError,
    ExternalServiceError,
)
from .observability import TokenRedactionFilter, redact, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "PetCareError",
    "ValidationError",
    "ExternalServiceError",
    "TokenRedactionFilter",
    "redact",
    "setup_logging",
]
