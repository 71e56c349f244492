import json
import re
from typing import Annotated, Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]

    parts = [p for p in re.split(r"[,\s]+", raw) if p]
    if "*" in parts:
        return ["*"]
    return parts


class AccessSettings(BaseSettings):
    """Settings consulted by the access gateway on every request.

    Kept separate from ``Settings`` and re-read per request through
    ``load_access_settings()`` so a rotated key is picked up without a restart.
    """

    # Expected value of the X-API-Key header for inbound requests
    external_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("VIDEO_ARCHIVING_API_KEY", "EXTERNAL_API_KEY"),
    )

    # development | production
    app_env: str = Field(
        default="production",
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV"),
    )

    @property
    def is_development(self) -> bool:
        return self.app_env.strip().lower() == "development"

    @property
    def expected_api_key(self) -> str | None:
        key = self.external_api_key.strip()
        return key or None

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )


def load_access_settings() -> AccessSettings:
    """Read access settings fresh from the environment."""
    return AccessSettings()


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    app_env: str = Field(
        default="production",
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV"),
    )

    # PostgreSQL settings
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "crosslink"
    db_password: str = "crosslink"
    db_name: str = "video_archiving"

    db_pool_size: int = 10
    db_max_overflow: int = 5
    db_pool_timeout: int = 30
    db_pool_recycle: int = 300
    db_pool_pre_ping: bool = True
    db_command_timeout: float = 30.0  # Per-command timeout in seconds

    # Explicit DATABASE_URL (takes priority over db_* settings)
    database_url_override: str = Field(default="", validation_alias="DATABASE_URL")

    @property
    def database_url(self) -> str:
        """Build database connection URL.

        Priority:
        1. database_url_override (from DATABASE_URL env var or .env file)
        2. Built from db_* settings
        """
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}@"
            f"{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # Peer systems. Each side only needs the peer it calls.
    efiling_api_url: str = "http://localhost:5000/api/external"
    efiling_api_key: str = ""
    video_archiving_api_url: str = "http://localhost:3000/api/external"
    video_archiving_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("VIDEO_ARCHIVING_API_KEY", "EXTERNAL_API_KEY"),
    )

    # Upper bound for a whole peer call (connect + read)
    peer_timeout: float = 10.0

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 5.0
    httpx_read_timeout: float = 10.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    # Rate limiting settings (fixed window, per API key)
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 60

    # Requests under this prefix go through the access gateway
    protected_path_prefix: str = "/api/external"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # CORS settings
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator("rate_limit_max_requests", "rate_limit_window_seconds")
    @classmethod
    def validate_rate_limit_positive(cls, v: int) -> int:
        """Validate rate limit values are positive."""
        if v < 1:
            raise ValueError("Rate limit values must be at least 1")
        return v

    @field_validator(
        "peer_timeout",
        "httpx_connect_timeout",
        "httpx_read_timeout",
        "db_command_timeout",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @field_validator("db_pool_size", "db_max_overflow")
    @classmethod
    def validate_pool_size_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("pool size values must be at least 1")
        return v

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )


# Global settings instance
settings = Settings()
