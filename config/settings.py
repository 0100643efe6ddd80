"""
Settings Module for Healthcheck Monitor

Configuration management using Pydantic Settings.
Supports environment variables, .env files, and runtime configuration.
Includes validation, type checking, and sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from enum import Enum

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.constants import Defaults, Limits, Statistics


class Environment(str, Enum):
    """Application environment enumeration."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseType(str, Enum):
    """Supported database types."""
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


class BaseSettingsConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True
    )


class DatabaseSettings(BaseSettingsConfig):
    """
    Database Configuration Settings

    Supports PostgreSQL (production) and SQLite (development).
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        extra="ignore"
    )

    type: DatabaseType = Field(
        default=DatabaseType.SQLITE,
        description="Database type: postgresql or sqlite"
    )

    # PostgreSQL settings
    host: str = Field(
        default="localhost",
        description="Database host address"
    )
    port: int = Field(
        default=5432,
        ge=1,
        le=65535,
        description="Database port number"
    )
    name: str = Field(
        default="healthcheck",
        min_length=1,
        max_length=64,
        description="Database name"
    )
    user: str = Field(
        default="postgres",
        min_length=1,
        max_length=64,
        description="Database username"
    )
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password"
    )

    # SQLite settings
    sqlite_path: Path = Field(
        default=Path("data/healthcheck.db"),
        description="Path to SQLite database file"
    )

    # Explicit URL wins over everything above (used by tests and tooling)
    url_override: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy async URL"
    )

    # Connection pool settings
    pool_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Connection pool size"
    )
    max_overflow: int = Field(
        default=20,
        ge=0,
        le=100,
        description="Maximum overflow connections"
    )
    pool_timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Pool connection timeout in seconds"
    )
    pool_recycle: int = Field(
        default=1800,
        ge=60,
        le=7200,
        description="Connection recycle time in seconds"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL queries (debug mode)"
    )

    @property
    def url(self) -> str:
        """Generate database URL based on configuration."""
        if self.url_override:
            return self.url_override

        if self.type == DatabaseType.SQLITE:
            self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite+aiosqlite:///{self.sqlite_path}"

        elif self.type == DatabaseType.POSTGRESQL:
            password = self.password.get_secret_value()
            return (
                f"postgresql+asyncpg://{self.user}:{password}"
                f"@{self.host}:{self.port}/{self.name}"
            )

        raise ValueError(f"Unsupported database type: {self.type}")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @field_validator("sqlite_path")
    @classmethod
    def validate_sqlite_path(cls, v: Path) -> Path:
        """Validate and normalize SQLite path."""
        if not v.suffix:
            v = v.with_suffix(".db")
        return v


class MonitoringSettings(BaseSettingsConfig):
    """
    Monitoring Engine Configuration Settings

    Controls the per-tick monitor cap, probe defaults and the
    thresholds used by the aggregation layer.
    """

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_file=".env",
        extra="ignore"
    )

    max_checks_per_tick: int = Field(
        default=Limits.MAX_CHECKS_PER_TICK,
        ge=1,
        le=10000,
        description="Maximum active monitors fetched per tick"
    )
    max_body_length: int = Field(
        default=Limits.MAX_BODY_LENGTH,
        ge=0,
        description="Response bodies longer than this are not stored"
    )
    default_timeout_ms: int = Field(
        default=Defaults.TIMEOUT_MS,
        ge=100,
        le=120000,
        description="Probe timeout used when a monitor has none"
    )
    user_agent: str = Field(
        default=Defaults.USER_AGENT,
        description="User agent string for probe requests"
    )
    follow_redirects: bool = Field(
        default=True,
        description="Follow HTTP redirects while probing"
    )
    verify_ssl: bool = Field(
        default=True,
        description="Verify TLS certificates while probing"
    )

    # Aggregation
    history_limit: int = Field(
        default=Limits.HISTORY_POINTS,
        ge=1,
        le=1000,
        description="Points in the per-monitor recent history"
    )
    status_page_days: int = Field(
        default=Limits.STATUS_PAGE_DAYS,
        ge=1,
        le=365,
        description="Days shown per monitor on the status page"
    )
    default_stats_window_minutes: int = Field(
        default=Defaults.STATS_WINDOW_MINUTES,
        ge=1,
        description="Lookback window for per-monitor stats"
    )
    uptime_windows: Tuple[int, ...] = Field(
        default=Statistics.UPTIME_WINDOWS,
        description="Windows (minutes) accepted by the uptime overview"
    )
    operational_threshold: float = Field(
        default=Statistics.OPERATIONAL_THRESHOLD,
        ge=0,
        le=100,
        description="Minimum uptime % classified as operational"
    )
    degraded_threshold: float = Field(
        default=Statistics.DEGRADED_THRESHOLD,
        ge=0,
        le=100,
        description="Minimum uptime % classified as degraded"
    )

    @field_validator("uptime_windows", mode="before")
    @classmethod
    def parse_windows(cls, v: Any) -> Any:
        """Parse uptime windows from a comma separated string."""
        if isinstance(v, str):
            return tuple(int(x.strip()) for x in v.split(",") if x.strip())
        return v

    @model_validator(mode="after")
    def validate_thresholds(self) -> "MonitoringSettings":
        """Validate threshold relationships."""
        if self.degraded_threshold > self.operational_threshold:
            raise ValueError("degraded_threshold cannot exceed operational_threshold")
        return self


class RetentionSettings(BaseSettingsConfig):
    """
    Log Retention Settings

    The cleanup job runs once a day at the configured UTC time.
    """

    model_config = SettingsConfigDict(
        env_prefix="RETENTION_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(default=True, description="Run the daily cleanup job")
    days: int = Field(
        default=7,
        ge=1,
        le=3650,
        description="Logs older than this many days are deleted"
    )
    run_hour_utc: int = Field(default=19, ge=0, le=23)
    run_minute_utc: int = Field(default=0, ge=0, le=59)


class NotificationSettings(BaseSettingsConfig):
    """
    Notification Settings

    Status changes are emailed through the SendGrid v3 API when an
    API key is configured.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(default=True, description="Send status change emails")
    sendgrid_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="SendGrid API key"
    )
    api_url: str = Field(
        default="https://api.sendgrid.com/v3/mail/send",
        description="SendGrid mail endpoint"
    )
    recipient: str = Field(
        default="devops@example.com",
        description="Address receiving status change emails"
    )
    sender_email: str = Field(default="noreply@example.com")
    sender_name: str = Field(default="Healthcheck Monitor")
    timezone: str = Field(
        default="UTC",
        description="Timezone used to render event timestamps"
    )
    timeout: float = Field(default=10.0, gt=0, le=120)

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.sendgrid_api_key.get_secret_value())


class LoggingSettings(BaseSettingsConfig):
    """
    Logging Configuration Settings
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore"
    )

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Minimum logging level"
    )
    to_console: bool = Field(default=True)
    to_file: bool = Field(default=False)
    directory: Path = Field(
        default=Path("logs"),
        description="Directory for log files"
    )
    file_name: str = Field(default="healthcheck.log")
    rotation: str = Field(default="10 MB")
    retention: str = Field(default="14 days")
    serialize: bool = Field(
        default=False,
        description="Write file logs as JSON lines"
    )
    colorize: bool = Field(default=True)


class ServerSettings(BaseSettingsConfig):
    """HTTP server exposing health, stats and status page data."""

    model_config = SettingsConfigDict(
        env_prefix="SERVER_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(default=True)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)


class Settings(BaseSettingsConfig):
    """
    Main Settings Class

    Aggregates all settings sections and provides the main
    configuration interface for the application.
    """

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    debug: bool = Field(default=False)

    app_name: str = Field(default="Healthcheck Monitor")
    app_version: str = Field(default="1.0.0")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    retention: RetentionSettings = Field(default_factory=RetentionSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @model_validator(mode="after")
    def configure_for_environment(self) -> "Settings":
        """Apply environment-specific configuration."""
        if self.is_production:
            self.debug = False
            self.database.echo = False
        elif self.debug and self.logging.level == LogLevel.INFO:
            self.logging.level = LogLevel.DEBUG
        return self

    def to_dict(self, *, exclude_secrets: bool = True) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        data = self.model_dump(mode="json")

        if exclude_secrets:
            def remove_secrets(obj: Any) -> Any:
                if isinstance(obj, dict):
                    return {
                        k: remove_secrets(v)
                        for k, v in obj.items()
                        if "password" not in k.lower()
                        and "secret" not in k.lower()
                        and "api_key" not in k.lower()
                    }
                return obj

            data = remove_secrets(data)

        return data


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
