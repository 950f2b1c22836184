"""
Centralized Configuration Module using Pydantic Settings

Type-safe, environment-based configuration for the inventory service. Values
come from the process environment and an optional .env file. The flat
Settings class exposes grouped views (database, circuit breaker, storage,
rate limiting, logging, application) through read-only properties.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from invport.core.config.constants import DEFAULT_IMAGE_BASE_URL, DEFAULT_ODBC_DRIVER


class DatabaseSettings(BaseSettings):
    """
    Azure SQL connection and pool configuration.

    The connection string is resolved from three variables in priority order;
    the first non-blank value wins.
    """

    SQL_CONN_STRING: str | None = Field(default=None, description="SQL connection string (priority 1)")
    AZURE_SQL_CONNECTION_STRING: str | None = Field(default=None, description="SQL connection string (priority 2)")
    AZURE_ADMIN_SQL_CONN_STRING: str | None = Field(default=None, description="SQL connection string (priority 3)")

    DB_ODBC_DRIVER: str = Field(default=DEFAULT_ODBC_DRIVER, description="ODBC driver used when the connection string names none")
    DB_POOL_MIN_SIZE: int = Field(default=2, ge=0, description="Minimum pooled connections")
    DB_POOL_MAX_SIZE: int = Field(default=10, ge=1, description="Maximum pooled connections")
    DB_CONNECT_TIMEOUT: float = Field(default=15.0, gt=0, description="Login timeout for one pool open attempt in seconds")
    DB_QUERY_TIMEOUT: float = Field(default=30.0, gt=0, description="Timeout for one statement once a pool is acquired, in seconds")
    DB_CONNECT_ATTEMPTS: int = Field(default=3, ge=1, description="Pool open attempts per acquisition")
    DB_CONNECT_RETRY_DELAY: float = Field(default=1.0, ge=0, description="Base delay between open attempts in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)

    @property
    def connection_string(self) -> str | None:
        """First non-blank connection string in priority order, or None."""
        for candidate in (
            self.SQL_CONN_STRING,
            self.AZURE_SQL_CONNECTION_STRING,
            self.AZURE_ADMIN_SQL_CONN_STRING,
        ):
            if candidate and candidate.strip():
                return candidate.strip()
        return None


class CircuitBreakerSettings(BaseSettings):
    """
    Circuit breaker configuration for the database acquisition path.

    STAGE-CB: Circuit breaker thresholds
    """

    CB_FAILURE_THRESHOLD: int = Field(default=5, ge=1, description="Consecutive failures before opening circuit")
    CB_RECOVERY_TIMEOUT: float = Field(default=60.0, gt=0, description="Seconds before a probe is allowed")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class StorageSettings(BaseSettings):
    """Blob storage configuration for vehicle image folders."""

    AZURE_STORAGE_CONNECTION_STRING: str | None = Field(default=None, description="Blob storage connection string")
    AZURE_STORAGE_CONTAINER: str | None = Field(default=None, description="Overrides the container derived from the image base URL")
    IMGBaseURL: str | None = Field(default=None, description="Image base URL (priority 1)")
    NEXT_PUBLIC_IMG_BASE_URL: str | None = Field(default=None, description="Image base URL (priority 2)")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)

    @property
    def image_base_url(self) -> str:
        """Configured image base URL with a guaranteed trailing slash."""
        base = self.IMGBaseURL or self.NEXT_PUBLIC_IMG_BASE_URL or DEFAULT_IMAGE_BASE_URL
        return base if base.endswith("/") else base + "/"


class RateLimitSettings(BaseSettings):
    """
    Rate limiting configuration.

    STAGE-3: Rate limiting thresholds

    Inbound limits use slowapi (moving window, in-memory). Outbound throttling
    paces the services' own database and storage calls.
    """

    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Enable inbound per-client limits")
    RATE_LIMIT_DEFAULT: str = Field(default="100/minute", description="Default inbound rate limit")
    OUTBOUND_THROTTLE_ENABLED: bool = Field(default=False, description="Throttle outbound database/storage calls")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Invport Inventory API", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="/api", description="Prefix for every API route")

    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from invport.core.config.settings import get_settings

        settings = get_settings()
        conn = settings.database.connection_string
        threshold = settings.circuit_breaker.CB_FAILURE_THRESHOLD
    """

    # Database settings
    SQL_CONN_STRING: str | None = Field(default=None, description="SQL connection string (priority 1)")
    AZURE_SQL_CONNECTION_STRING: str | None = Field(default=None, description="SQL connection string (priority 2)")
    AZURE_ADMIN_SQL_CONN_STRING: str | None = Field(default=None, description="SQL connection string (priority 3)")
    DB_ODBC_DRIVER: str = Field(default=DEFAULT_ODBC_DRIVER, description="ODBC driver used when the connection string names none")
    DB_POOL_MIN_SIZE: int = Field(default=2, ge=0, description="Minimum pooled connections")
    DB_POOL_MAX_SIZE: int = Field(default=10, ge=1, description="Maximum pooled connections")
    DB_CONNECT_TIMEOUT: float = Field(default=15.0, gt=0, description="Login timeout for one pool open attempt in seconds")
    DB_QUERY_TIMEOUT: float = Field(default=30.0, gt=0, description="Timeout for one statement once a pool is acquired, in seconds")
    DB_CONNECT_ATTEMPTS: int = Field(default=3, ge=1, description="Pool open attempts per acquisition")
    DB_CONNECT_RETRY_DELAY: float = Field(default=1.0, ge=0, description="Base delay between open attempts in seconds")

    # Circuit Breaker settings
    CB_FAILURE_THRESHOLD: int = Field(default=5, ge=1, description="Consecutive failures before opening circuit")
    CB_RECOVERY_TIMEOUT: float = Field(default=60.0, gt=0, description="Seconds before a probe is allowed")

    # Storage settings
    AZURE_STORAGE_CONNECTION_STRING: str | None = Field(default=None, description="Blob storage connection string")
    AZURE_STORAGE_CONTAINER: str | None = Field(default=None, description="Overrides the container derived from the image base URL")
    IMGBaseURL: str | None = Field(default=None, description="Image base URL (priority 1)")
    NEXT_PUBLIC_IMG_BASE_URL: str | None = Field(default=None, description="Image base URL (priority 2)")

    # Rate Limiting settings
    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Enable inbound per-client limits")
    RATE_LIMIT_DEFAULT: str = Field(default="100/minute", description="Default inbound rate limit")
    OUTBOUND_THROTTLE_ENABLED: bool = Field(default=False, description="Throttle outbound database/storage calls")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Invport Inventory API", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    API_BASE_PATH: str = Field(default="/api", description="Prefix for every API route")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("DB_POOL_MAX_SIZE")
    @classmethod
    def validate_pool_bounds(cls, v, info):
        """Pool maximum may not be below the minimum."""
        minimum = info.data.get("DB_POOL_MIN_SIZE", 0)
        if v < minimum:
            raise ValueError(f"DB_POOL_MAX_SIZE ({v}) must be >= DB_POOL_MIN_SIZE ({minimum})")
        return v

    @property
    def sql_connection_string(self) -> str | None:
        """First non-blank SQL connection string in priority order."""
        return self.database.connection_string

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return DatabaseSettings(
            SQL_CONN_STRING=self.SQL_CONN_STRING,
            AZURE_SQL_CONNECTION_STRING=self.AZURE_SQL_CONNECTION_STRING,
            AZURE_ADMIN_SQL_CONN_STRING=self.AZURE_ADMIN_SQL_CONN_STRING,
            DB_ODBC_DRIVER=self.DB_ODBC_DRIVER,
            DB_POOL_MIN_SIZE=self.DB_POOL_MIN_SIZE,
            DB_POOL_MAX_SIZE=self.DB_POOL_MAX_SIZE,
            DB_CONNECT_TIMEOUT=self.DB_CONNECT_TIMEOUT,
            DB_QUERY_TIMEOUT=self.DB_QUERY_TIMEOUT,
            DB_CONNECT_ATTEMPTS=self.DB_CONNECT_ATTEMPTS,
            DB_CONNECT_RETRY_DELAY=self.DB_CONNECT_RETRY_DELAY,
        )

    @property
    def circuit_breaker(self) -> CircuitBreakerSettings:
        """Get circuit breaker settings."""
        return CircuitBreakerSettings(
            CB_FAILURE_THRESHOLD=self.CB_FAILURE_THRESHOLD,
            CB_RECOVERY_TIMEOUT=self.CB_RECOVERY_TIMEOUT,
        )

    @property
    def storage(self) -> StorageSettings:
        """Get blob storage settings."""
        return StorageSettings(
            AZURE_STORAGE_CONNECTION_STRING=self.AZURE_STORAGE_CONNECTION_STRING,
            AZURE_STORAGE_CONTAINER=self.AZURE_STORAGE_CONTAINER,
            IMGBaseURL=self.IMGBaseURL,
            NEXT_PUBLIC_IMG_BASE_URL=self.NEXT_PUBLIC_IMG_BASE_URL,
        )

    @property
    def rate_limit(self) -> RateLimitSettings:
        """Get rate limit settings."""
        return RateLimitSettings(
            RATE_LIMIT_ENABLED=self.RATE_LIMIT_ENABLED,
            RATE_LIMIT_DEFAULT=self.RATE_LIMIT_DEFAULT,
            OUTBOUND_THROTTLE_ENABLED=self.OUTBOUND_THROTTLE_ENABLED,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
            API_BASE_PATH=self.API_BASE_PATH,
            CORS_ORIGINS=self.CORS_ORIGINS,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
