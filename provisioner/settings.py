"""
Central configuration using Pydantic BaseSettings.

Every field can be set through a PROVISIONER_-prefixed environment
variable or a .env file, e.g. PROVISIONER_BASE_URL=http://10.0.0.2:8080.

Usage:
    from provisioner.settings import get_settings

    settings = get_settings()
    print(settings.directory_url)

Lazy initialization: get_settings() creates the singleton on first call.
Tests can reset via get_settings.cache_clear().
"""

from functools import lru_cache
from typing import Optional
from urllib.parse import urljoin

from pydantic import field_validator
from pydantic_settings import BaseSettings

MIN_REFRESH_RATE = 1000  # ms


class ProvisionerSettings(BaseSettings):
    """Controller, transport and logging configuration."""

    model_config = {
        "env_prefix": "PROVISIONER_",
        "extra": "ignore",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    # API
    base_url: str = "http://localhost:8080"
    directory_path: str = "/api"
    request_timeout: float = 10.0

    # Polling (ms); unset means no periodic refresh
    refresh_rate: Optional[int] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: str = ""

    @field_validator("refresh_rate")
    @classmethod
    def validate_refresh_rate(cls, v: Optional[int]) -> Optional[int]:
        """Refresh rate must be at least MIN_REFRESH_RATE ms when set."""
        if v is not None and v < MIN_REFRESH_RATE:
            raise ValueError(f"refresh_rate must be at least {MIN_REFRESH_RATE}ms")
        return v

    @property
    def directory_url(self) -> str:
        return urljoin(self.base_url, self.directory_path)


@lru_cache(maxsize=1)
def get_settings() -> ProvisionerSettings:
    """
    Get the settings singleton.

    Tests can reset via: get_settings.cache_clear()
    """
    return ProvisionerSettings()
