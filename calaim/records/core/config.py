"""Configuration management using Pydantic Settings.

Credentials are injected from the environment (or a ``.env`` file fed by a
secret store) and never written into source.
"""

from __future__ import annotations

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.credentials import Credentials
from .exceptions import ConfigurationError


class RecordsSettings(BaseSettings):
    """Engine settings loaded from ``CASPIO_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CASPIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Upstream
    base_url: str | None = None
    client_id: str | None = None
    client_secret: SecretStr | None = None

    # Pagination
    page_size: int = 1000
    max_pages: int = 10

    # Worker pool
    concurrency: int = 3

    # HTTP
    request_timeout: float = 30.0
    token_retries: int = 3
    token_backoff: float = 0.5

    def to_credentials(self) -> Credentials:
        """Build immutable credentials, failing fast when any part is missing."""
        missing = [
            name
            for name, value in (
                ("CASPIO_BASE_URL", self.base_url),
                ("CASPIO_CLIENT_ID", self.client_id),
                ("CASPIO_CLIENT_SECRET", self.client_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Caspio credentials not configured: {', '.join(missing)}")
        return Credentials(
            base_url=self.base_url,
            client_id=self.client_id,
            client_secret=self.client_secret,
        )


# Global settings instance
_settings: RecordsSettings | None = None


def get_settings() -> RecordsSettings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = RecordsSettings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None


def credentials_from_env() -> Credentials:
    """Read credentials from the current settings.

    Raises:
        ConfigurationError: If base URL, client id or client secret is unset
    """
    return get_settings().to_credentials()
