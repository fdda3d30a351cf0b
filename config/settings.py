"""
Application settings loaded from environment variables.

Uses Pydantic Settings for type-safe configuration with validation.
All settings can be overridden via environment variables or .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from libs.alpaca.account_stream import LIVE_STREAM_HOST, PAPER_STREAM_HOST
from libs.alpaca.market_data_stream import MARKET_DATA_STREAM_HOST


class Settings(BaseSettings):
    """
    Client configuration.

    All settings are loaded from environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Alpaca API Configuration
    alpaca_api_key_id: str = Field(
        default="",
        description="Alpaca API key ID",
    )
    alpaca_api_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Alpaca API secret key",
    )
    alpaca_paper: bool = Field(
        default=True,
        description="Use the paper trading endpoints",
    )
    alpaca_data_feed: Literal["iex", "sip"] = Field(
        default="iex",
        description="Market data feed for the stock stream",
    )

    # Account Snapshot Polling
    poll_interval_ms: int = Field(
        default=10_000,
        ge=100,
        description="Milliseconds between account snapshot cycles",
    )

    # WebSocket Configuration
    stream_open_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed to open a WebSocket (TCP + TLS + handshake)",
    )
    stream_close_timeout: float = Field(
        default=2.0,
        gt=0,
        description="Seconds to wait for the WebSocket closing handshake",
    )

    # Caller-level reconnect policy (sessions never reconnect themselves)
    reconnect_max_attempts: int = Field(default=10, ge=1)
    reconnect_base_delay: float = Field(default=5.0, ge=0)
    reconnect_max_delay: float = Field(default=300.0, ge=0)

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @property
    def trading_stream_url(self) -> str:
        host = PAPER_STREAM_HOST if self.alpaca_paper else LIVE_STREAM_HOST
        return f"wss://{host}/stream"

    @property
    def market_data_stream_url(self) -> str:
        return f"wss://{MARKET_DATA_STREAM_HOST}/v2/{self.alpaca_data_feed}"

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.

    Returns:
        Settings instance with all configuration loaded.

    Example:
        >>> settings = get_settings()
        >>> settings.poll_interval_ms
        10000
    """
    return Settings()
