"""
Centralized configuration for the pet-care session core.

All settings are loaded from environment variables with sensible defaults.
Storage identifiers default to the values the mobile client has always used,
so tokens and cached profiles written by earlier builds stay readable.
"""

from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "PetCare Session"
    app_version: str = "0.1.0"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    # Backend endpoints (auth falls back to the general API base)
    auth_base_url: str = ""
    api_base_url: str = "http://localhost:3000"

    # Request metadata sent on registration
    client_name: str = "python"
    preferred_language: str = "en"

    # Transport defaults
    request_timeout: float = 20.0  # seconds
    retry_delay: float = 0.75  # seconds, doubled on each retry

    # Secure token store (OS keychain)
    keyring_service: str = "vet.tn"
    access_token_key: str = "vet.tn.accessToken"
    refresh_token_key: str = "vet.tn.refreshToken"

    # User profile cache
    user_cache_path: Path = Path.home() / ".petcare" / "session_cache.json"
    user_cache_key: str = "AppUser.cache.v1"
    apple_email_key: str = "AppleSignInEmail"

    # Client-side validation
    min_password_length: int = 6

    @property
    def resolved_auth_base_url(self) -> str:
        """Base URL for auth endpoints, falling back to the general API URL."""
        return self.auth_base_url or self.api_base_url


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
