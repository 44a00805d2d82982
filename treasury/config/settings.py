"""
Application settings and configuration management using Pydantic BaseSettings.
"""

from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Environment enumeration"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class DatabaseConfig(BaseSettings):
    """Database configuration settings."""
    path: str = Field(default="treasury.db")
    connection_timeout: float = Field(default=30.0)
    enable_foreign_keys: bool = Field(default=True)

    model_config = SettingsConfigDict(env_prefix="DB_", extra="ignore")

    @property
    def absolute_path(self) -> str:
        """Get absolute path to the database file."""
        if self.path == ":memory:":
            return self.path
        return str(Path(self.path).resolve())


class SecurityConfig(BaseSettings):
    """Security configuration settings."""
    secret_key: str = Field(default="dev-secret-key-change-in-production-0000")
    token_max_age_minutes: int = Field(default=480, gt=0)
    bcrypt_rounds: int = Field(default=12, ge=4, le=15)
    token_salt: str = Field(default="treasury-auth")

    model_config = SettingsConfigDict(env_prefix="SECURITY_", extra="ignore")

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if len(v) < 32:
            raise ValueError("Secret key must be at least 32 characters long")
        return v


class RateLimitConfig(BaseSettings):
    """Rate limiting configuration. Windows are expressed in seconds."""
    enabled: bool = Field(default=True)
    redis_url: Optional[str] = Field(default=None)
    auth_max_requests: int = Field(default=10)
    auth_window_seconds: int = Field(default=15 * 60)
    api_max_requests: int = Field(default=100)
    api_window_seconds: int = Field(default=60)
    write_max_requests: int = Field(default=30)
    write_window_seconds: int = Field(default=60)
    health_max_requests: int = Field(default=60)
    health_window_seconds: int = Field(default=60)

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_", extra="ignore")


class TreasuryConfig(BaseSettings):
    """Business defaults for forecasting, recurrences and alerting."""
    default_months_ahead: int = Field(default=6, ge=1, le=24)
    max_occurrences: int = Field(default=100, gt=0)
    occurrence_horizon_months: int = Field(default=12, gt=0)
    stale_data_hours: int = Field(default=48, gt=0)
    forecast_months: int = Field(default=4, ge=1, le=24)
    runway_horizon_months: int = Field(default=3, ge=1)
    runway_alert_days: int = Field(default=30)
    low_credit_ratio: Decimal = Field(default=Decimal("0.2"))
    expiring_credit_days: int = Field(default=90)
    duplicate_similarity_threshold: float = Field(default=0.8, ge=0, le=1)
    max_duplicate_suggestions: int = Field(default=5)

    model_config = SettingsConfigDict(env_prefix="TREASURY_", extra="ignore")


class AppConfig(BaseSettings):
    """Application configuration settings."""
    environment: Environment = Field(default=Environment.DEVELOPMENT)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    title: str = Field(default="WINFIN Treasury API")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT


class Settings(BaseSettings):
    """Centralized application settings manager using Pydantic BaseSettings."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    app: AppConfig = Field(default_factory=AppConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    treasury: TreasuryConfig = Field(default_factory=TreasuryConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def __init__(self, **kwargs):
        self._load_env_file()
        super().__init__(**kwargs)

    @staticmethod
    def _load_env_file() -> None:
        """Load environment variables from .env file so nested configs see them."""
        env_file = Path(".env")
        if env_file.exists():
            load_dotenv(env_file)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
