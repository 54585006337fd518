"""Environment configuration using pydantic-settings."""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field, PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from stockwatch.domain.rules import MIN_HISTORY_BARS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: PostgresDsn = Field(
        ...,
        alias="DATABASE_URL",
        description="PostgreSQL connection string for the alert store",
    )
    database_pool_size: int = Field(default=5, alias="DATABASE_POOL_SIZE")

    # Monitoring schedule
    monitor_interval_minutes: float = Field(default=15, gt=0, alias="MONITOR_INTERVAL_MINUTES")
    monitor_tick_timeout_seconds: float = Field(
        default=600,
        gt=0,
        alias="MONITOR_TICK_TIMEOUT_SECONDS",
        description="Abandon unfinished symbols after this long",
    )
    monitor_max_concurrency: int = Field(default=5, ge=1, alias="MONITOR_MAX_CONCURRENCY")
    monitor_history_bars: int = Field(
        default=MIN_HISTORY_BARS, ge=MIN_HISTORY_BARS, alias="MONITOR_HISTORY_BARS"
    )

    # Market hours
    market_hours_only: bool = Field(default=True, alias="MARKET_HOURS_ONLY")
    market_timezone: str = Field(default="America/New_York", alias="MARKET_TIMEZONE")
    market_open: str = Field(default="09:30", pattern=r"^\d{2}:\d{2}$", alias="MARKET_OPEN")
    market_close: str = Field(default="16:00", pattern=r"^\d{2}:\d{2}$", alias="MARKET_CLOSE")

    # Alerts
    default_cooldown_minutes: int = Field(default=60, ge=0, alias="DEFAULT_COOLDOWN_MINUTES")

    # Price data cache
    quote_cache_ttl_seconds: int = Field(default=300, ge=0, alias="QUOTE_CACHE_TTL_SECONDS")
    history_cache_ttl_seconds: int = Field(default=900, ge=0, alias="HISTORY_CACHE_TTL_SECONDS")

    # Yahoo Finance
    yahoo_auto_adjust: bool = Field(default=True, alias="YAHOO_AUTO_ADJUST")

    # Notifications
    discord_webhook_url: str = Field(default="", alias="DISCORD_WEBHOOK_URL")
    notification_timeout_seconds: float = Field(default=10.0, alias="NOTIFICATION_TIMEOUT_SECONDS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def monitor_interval(self) -> timedelta:
        """Time between monitoring ticks."""
        return timedelta(minutes=self.monitor_interval_minutes)

    @property
    def default_cooldown(self) -> timedelta:
        """Cooldown applied to alerts created without one."""
        return timedelta(minutes=self.default_cooldown_minutes)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
