from functools import lru_cache

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nexos_compat.core.errors import ConfigurationError

from .constants import NEXOS_API_BASE_URL
from .http import HTTPSettings
from .logging import LoggingSettings


__all__ = ["Settings", "get_settings"]


class Settings(BaseSettings):
    """
    Configuration settings for the nexos compatibility layer.

    Settings are loaded from environment variables prefixed with ``NEXOS_``
    and from a ``.env`` file. Nested settings use ``__`` as delimiter, e.g.
    ``NEXOS_LOGGING__LEVEL=DEBUG``.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEXOS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    base_url: str = Field(
        default=NEXOS_API_BASE_URL,
        description="Gateway base URL (OpenAI-compatible surface)",
    )

    api_key: SecretStr | None = Field(
        default=None,
        description="Gateway API key sent as a Bearer token",
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )

    http: HTTPSettings = Field(
        default_factory=HTTPSettings,
        description="HTTP client configuration settings",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate gateway base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Base URL must start with http:// or https://")
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process.

    Raises:
        ConfigurationError: If the environment holds invalid values
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
