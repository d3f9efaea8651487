"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from arbwatch.config.constants import (
    BACKFILL_LINE_LIMIT,
    BRIDGE_STATUS_INTERVAL,
    DEFAULT_BRIDGE_URL,
    DEFAULT_CORS_ORIGIN,
    DEFAULT_HOST,
    DEFAULT_LOG_PATH,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PORT,
    DIRECT_STATUS_INTERVAL,
    PROFIT_HISTORY_LIMIT,
    VIEWER_QUEUE_SIZE,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Deployment
    # =========================================================================

    mode: Literal["direct", "bridge"] = Field(
        default="direct",
        description="direct: tail the bot log; bridge: relay the bot's event stream",
    )

    host: str = Field(
        default=DEFAULT_HOST,
        description="Interface the viewer server binds to",
    )

    port: int = Field(
        default=DEFAULT_PORT,
        ge=1,
        le=65535,
        description="Port the viewer server listens on",
    )

    cors_origins: list[str] = Field(
        default_factory=lambda: [DEFAULT_CORS_ORIGIN],
        description="Origins allowed to call the HTTP API",
    )

    # =========================================================================
    # Log Ingestion
    # =========================================================================

    log_path: Path = Field(
        default=Path(DEFAULT_LOG_PATH),
        description="Bot log file tailed for new lines",
    )

    history_path: Path | None = Field(
        default=None,
        description="Log replayed at startup (defaults to log_path)",
    )

    backfill: bool = Field(
        default=True,
        description="Seed aggregate state from the history log at startup",
    )

    backfill_lines: int = Field(
        default=BACKFILL_LINE_LIMIT,
        ge=0,
        le=100_000,
        description="Number of trailing history lines to replay",
    )

    tail_from_start: bool = Field(
        default=False,
        description="Start the live tail at offset 0 instead of the current end",
    )

    watch_strategy: Literal["poll", "notify"] = Field(
        default="poll",
        description="poll: fixed interval stat; notify: filesystem events",
    )

    poll_interval: float = Field(
        default=DEFAULT_POLL_INTERVAL,
        gt=0.0,
        le=60.0,
        description="Seconds between polls (fallback timeout for notify)",
    )

    # =========================================================================
    # Aggregation & Broadcast
    # =========================================================================

    profit_history_size: int = Field(
        default=PROFIT_HISTORY_LIMIT,
        ge=1,
        le=10_000,
        description="Maximum profit history entries kept",
    )

    status_interval: float | None = Field(
        default=None,
        gt=0.0,
        description="Seconds between systemStatus pushes (mode default if unset)",
    )

    viewer_queue_size: int = Field(
        default=VIEWER_QUEUE_SIZE,
        ge=1,
        le=100_000,
        description="Messages buffered per viewer before it is dropped",
    )

    # =========================================================================
    # Upstream Feeds
    # =========================================================================

    bridge_url: str = Field(
        default=DEFAULT_BRIDGE_URL,
        description="Bot event stream relayed in bridge mode",
    )

    ethereum_ws_url: str | None = Field(
        default=None,
        description="Chain WebSocket endpoint for block numbers (disabled if unset)",
    )

    # =========================================================================
    # Operation
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional file for the monitor's own log output",
    )

    use_uvloop: bool = Field(
        default=True,
        description="Use uvloop for improved async performance",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("bridge_url", "ethereum_ws_url", mode="after")
    @classmethod
    def validate_ws_url(cls, v: str | None) -> str | None:
        """Ensure upstream endpoints are WebSocket URLs."""
        if v is None:
            return v
        if not v.startswith(("ws://", "wss://")):
            raise ValueError(f"Expected a ws:// or wss:// URL, got {v!r}")
        return v

    @field_validator("ethereum_ws_url", mode="before")
    @classmethod
    def empty_url_is_unset(cls, v: object) -> object:
        """Treat an empty env value as not configured."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def effective_history_path(self) -> Path:
        """Log replayed at startup."""
        return self.history_path or self.log_path

    @property
    def effective_status_interval(self) -> float:
        """systemStatus cadence for the configured mode."""
        if self.status_interval is not None:
            return self.status_interval
        if self.mode == "bridge":
            return BRIDGE_STATUS_INTERVAL
        return DIRECT_STATUS_INTERVAL


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()
