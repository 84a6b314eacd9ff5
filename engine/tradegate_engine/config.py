"""
Configuration management for the TradeGate engine.

Uses pydantic-settings for type-safe environment variable handling.
Broker credentials are loaded from environment variables only - never from
files in the repo.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tradegate_engine.logging import get_logger

logger = get_logger(__name__)


class ConfigurationError(Exception):
    """Raised when the process is configured in a way that cannot trade safely."""

    def __init__(self, message: str, blockers: list[str] | None = None):
        super().__init__(message)
        self.blockers = blockers or []


class TradingMode(str, Enum):
    """Trading mode: PAPER routes to the simulated broker, LIVE to Dhan."""

    PAPER = "PAPER"
    LIVE = "LIVE"


class AppEnvironment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All sensitive values use SecretStr to prevent accidental logging.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRADEGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application mode
    mode: TradingMode = Field(
        default=TradingMode.PAPER,
        alias="TRADING_MODE",
        description="Trading mode: PAPER (simulated fills) or LIVE (broker)",
    )
    env: AppEnvironment = Field(
        default=AppEnvironment.DEVELOPMENT,
        description="Application environment",
    )

    # Server configuration
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=5001, ge=1024, le=65535, description="Server port")

    # Data paths
    data_dir: Path = Field(
        default=Path("./data"),
        description="Root directory for audit ledger and halt state",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Dhan broker credentials (loaded from env, never from files)
    dhan_client_id: SecretStr | None = Field(
        default=None,
        alias="DHAN_CLIENT_ID",
        description="Dhan client id",
    )
    dhan_access_token: SecretStr | None = Field(
        default=None,
        alias="DHAN_ACCESS_TOKEN",
        description="Dhan access token",
    )
    dhan_base_url: str = Field(
        default="https://api.dhan.co/v2",
        alias="DHAN_BASE_URL",
        description="Dhan REST API base URL",
    )

    # Broker transport
    broker_timeout_s: float = Field(
        default=5.0,
        alias="BROKER_TIMEOUT_S",
        description="Deadline for a single order placement before it is rejected",
        gt=0,
        le=60,
    )
    broker_max_retries: int = Field(
        default=2,
        alias="BROKER_MAX_RETRIES",
        description="Retry attempts for idempotent broker reads (placements never retry)",
        ge=0,
        le=10,
    )
    broker_rate_limit_rps: float = Field(
        default=10.0,
        alias="BROKER_RATE_LIMIT_RPS",
        description="Broker API rate limit (requests per second)",
        gt=0,
        le=100,
    )
    broker_rate_limit_burst: int = Field(
        default=10,
        alias="BROKER_RATE_LIMIT_BURST",
        description="Broker API rate limit burst allowance",
        ge=1,
        le=100,
    )

    # Order defaults forwarded to the broker
    default_exchange: str = Field(default="NSE", alias="DEFAULT_EXCHANGE")
    product_type: str = Field(default="INTRADAY", alias="PRODUCT_TYPE")
    order_validity: str = Field(default="DAY", alias="ORDER_VALIDITY")

    # Simulated broker
    sim_latency_ms: int = Field(
        default=300,
        alias="SIM_LATENCY_MS",
        description="Artificial fill latency of the simulated broker",
        ge=0,
        le=10000,
    )
    sim_success_probability: float = Field(
        default=0.95,
        alias="SIM_SUCCESS_PROBABILITY",
        description="Probability that a simulated order is filled",
        ge=0.0,
        le=1.0,
    )

    # Risk
    rate_limit_window_s: int = Field(
        default=60,
        alias="RATE_LIMIT_WINDOW_S",
        description="Trailing window for the per-account order rate limit",
        ge=1,
        le=3600,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("data_dir")
    @classmethod
    def ensure_data_dir_exists(cls, v: Path) -> Path:
        """Ensure data directory exists."""
        v.mkdir(parents=True, exist_ok=True)
        return v.resolve()

    @property
    def is_live(self) -> bool:
        """Check if live trading was requested."""
        return self.mode == TradingMode.LIVE

    @property
    def has_broker_credentials(self) -> bool:
        """Check if Dhan credentials are configured."""
        return all(
            [
                self.dhan_client_id is not None and self.dhan_client_id.get_secret_value(),
                self.dhan_access_token is not None
                and self.dhan_access_token.get_secret_value(),
            ]
        )

    @property
    def effective_mode(self) -> TradingMode:
        """LIVE only when requested and credentials are present."""
        if self.is_live and self.has_broker_credentials:
            return TradingMode.LIVE
        return TradingMode.PAPER

    def get_live_blockers(self) -> list[str]:
        """Get list of missing LIVE configuration items."""
        blockers = []
        if not self.is_live:
            return blockers
        if self.dhan_client_id is None or not self.dhan_client_id.get_secret_value():
            blockers.append("DHAN_CLIENT_ID not set")
        if self.dhan_access_token is None or not self.dhan_access_token.get_secret_value():
            blockers.append("DHAN_ACCESS_TOKEN not set")
        return blockers

    def get_redacted_config(self) -> dict[str, str | int | float | bool]:
        """
        Get configuration dict with sensitive values redacted.
        Safe for logging and API responses.
        """
        return {
            "mode": self.mode.value,
            "effective_mode": self.effective_mode.value,
            "env": self.env.value,
            "host": self.host,
            "port": self.port,
            "data_dir": str(self.data_dir),
            "log_level": self.log_level,
            "broker_configured": self.has_broker_credentials,
            "broker_base_url": self.dhan_base_url,
            "broker_timeout_s": self.broker_timeout_s,
        }


def validate_startup(settings: Settings, strict: bool = False) -> list[str]:
    """
    Check the trading configuration at startup.

    LIVE without credentials degrades to simulated fills. With strict=True
    (production) the same condition is fatal.

    Returns:
        List of blockers (empty when the requested mode is fully usable)

    Raises:
        ConfigurationError: strict mode and LIVE credentials are missing
    """
    blockers = settings.get_live_blockers()
    if blockers:
        if strict:
            raise ConfigurationError(
                "LIVE trading requested but broker credentials are missing",
                blockers=blockers,
            )
        logger.warning(
            "LIVE trading requested but not configured (%s); using simulated broker",
            ", ".join(blockers),
        )
    return blockers


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure single instance throughout application.
    """
    return Settings()


def get_settings_dep() -> Settings:
    """
    Dependency for FastAPI routes to get settings.
    Allows for easy dependency override in tests.
    """
    return get_settings()
