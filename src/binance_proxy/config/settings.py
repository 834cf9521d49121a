"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation. A single Settings instance
is built at startup and handed to the executor, rate limiter and
admission gate.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from binance_proxy.config.constants import (
    BINANCE_REST_TESTNET_URL,
    BINANCE_REST_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_LIMIT_MAX_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
    DEFAULT_RETRY_BASE_DELAY_MS,
    DEFAULT_TIMEOUT_SECONDS,
)
from binance_proxy.core.types import Credentials


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Sensitive values use SecretStr for safe handling.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Exchange Credentials
    # =========================================================================

    binance_api_key: SecretStr | None = Field(
        default=None,
        description="Default Binance API key for account endpoints",
    )
    binance_secret_key: SecretStr | None = Field(
        default=None,
        description="Default Binance secret key for account endpoints",
    )

    # =========================================================================
    # Upstream Configuration
    # =========================================================================

    binance_base_url: str | None = Field(
        default=None,
        description="Override for the Binance REST base URL",
    )

    use_testnet: bool = Field(
        default=False,
        description="Use Binance testnet instead of production",
    )

    verify_ssl: bool = Field(
        default=True,
        description="Verify upstream TLS certificates and hostnames",
    )

    request_timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        gt=0.0,
        le=120.0,
        description="Per-attempt timeout for upstream requests",
    )

    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        le=10,
        description="Retries for 429 and 5xx responses",
    )

    retry_base_delay_ms: int = Field(
        default=DEFAULT_RETRY_BASE_DELAY_MS,
        ge=0,
        le=10_000,
        description="Linear backoff step between retries in milliseconds",
    )

    # =========================================================================
    # Admission
    # =========================================================================

    basic_auth_username: str | None = Field(
        default=None,
        description="Username required via HTTP Basic auth",
    )
    basic_auth_password: SecretStr | None = Field(
        default=None,
        description="Password required via HTTP Basic auth",
    )

    rate_limit_enabled: bool = Field(
        default=True,
        description="Rate limit account and trading routes",
    )

    rate_limit_window_seconds: int = Field(
        default=DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        ge=1,
        le=86_400,
        description="Fixed window length in seconds",
    )

    rate_limit_max_requests: int = Field(
        default=DEFAULT_RATE_LIMIT_MAX_REQUESTS,
        ge=1,
        description="Requests allowed per key per window",
    )

    # =========================================================================
    # Operation Mode
    # =========================================================================

    app_env: Literal["development", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    app_debug: bool = Field(
        default=False,
        description="Expose exception details in 500 responses",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional log file path",
    )

    # =========================================================================
    # Server
    # =========================================================================

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port")

    use_uvloop: bool = Field(
        default=True,
        description="Use uvloop for improved async performance",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator(
        "binance_api_key",
        "binance_secret_key",
        "binance_base_url",
        "basic_auth_username",
        "basic_auth_password",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Treat empty values from .env files as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("binance_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Endpoint paths start with a slash."""
        return v.rstrip("/") if v else v

    @model_validator(mode="after")
    def warn_insecure_tls(self) -> "Settings":
        """Warn if TLS verification is disabled in production."""
        if not self.verify_ssl and self.is_production:
            import warnings

            warnings.warn(
                "TLS verification is disabled in production",
                stacklevel=2,
            )
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def rest_base_url(self) -> str:
        """Base URL for upstream requests."""
        if self.binance_base_url:
            return self.binance_base_url
        return BINANCE_REST_TESTNET_URL if self.use_testnet else BINANCE_REST_URL

    @property
    def basic_auth_enabled(self) -> bool:
        """Basic auth is enforced only when both username and password are set."""
        return bool(self.basic_auth_username) and self.basic_auth_password is not None

    @property
    def default_credentials(self) -> Credentials:
        """Credentials configured for the process, possibly empty."""
        return Credentials(
            api_key=self.binance_api_key.get_secret_value() if self.binance_api_key else None,
            secret_key=(
                self.binance_secret_key.get_secret_value() if self.binance_secret_key else None
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()
