"""Application settings.

Everything is read from environment variables (or a local .env file) via
pydantic-settings, using the field name or its alias as the variable name.
"""

import logging
import secrets
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Runtime configuration for the dashboard API and its scheduled jobs."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # =========================================================================
    # Environment Detection
    # =========================================================================

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        alias="ENVIRONMENT",
    )

    # Application
    app_name: str = "Cyber Risk Dashboard"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = "sqlite:///./data/cyber_risk.db"

    # =========================================================================
    # Authentication
    # =========================================================================

    jwt_secret_key: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = Field(default=30, alias="JWT_ACCESS_TOKEN_EXPIRE_MINUTES")

    # =========================================================================
    # Microsoft Graph
    # =========================================================================

    # Fallback app registration used when a connection has no credentials
    azure_client_id: str | None = None
    azure_client_secret: str | None = None

    graph_api_base: str = Field(default="https://graph.microsoft.com/v1.0", alias="GRAPH_API_BASE")
    graph_timeout_seconds: float = Field(default=30.0, alias="GRAPH_TIMEOUT_SECONDS")
    graph_max_retries: int = Field(default=3, alias="GRAPH_MAX_RETRIES")

    # =========================================================================
    # Scoring & Scheduling
    # =========================================================================

    scores_cron_secret: str | None = Field(default=None, alias="SCORES_CRON_SECRET")
    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    daily_scores_hour: int = Field(default=2, ge=0, le=23, alias="DAILY_SCORES_HOUR")
    secure_score_snapshot_enabled: bool = Field(default=True, alias="SECURE_SCORE_SNAPSHOT_ENABLED")
    secure_score_history_retention_months: int = Field(default=12, alias="SECURE_SCORE_HISTORY_RETENTION_MONTHS")
    secure_score_lookback_days: int = Field(default=2 * 365, alias="SECURE_SCORE_LOOKBACK_DAYS")

    # Invites
    invite_expiry_days: int = Field(default=7, alias="INVITE_EXPIRY_DAYS")

    # =========================================================================
    # Email (invites and report delivery)
    # =========================================================================

    # Front end that serves the invite acceptance page
    app_base_url: str = Field(default="http://localhost:3000", alias="APP_BASE_URL")
    # Delivery is off while SMTP_HOST is unset
    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    # Implicit TLS (usually port 465); otherwise STARTTLS is used
    smtp_secure: bool = Field(default=False, alias="SMTP_SECURE")
    smtp_user: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASS")
    smtp_timeout_seconds: float = Field(default=30.0, alias="SMTP_TIMEOUT_SECONDS")
    email_from: str = Field(default="reports@cyberrisk.example.com", alias="SMTP_FROM")

    # CORS (RESTRICTED in production - no wildcards allowed)
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    cors_allow_methods: list[str] = Field(default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "PATCH"])
    cors_allow_headers: list[str] = Field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = True

    # Rate limiting backend (falls back to in-process counters when unset)
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")

    # Database Configuration
    database_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    database_max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW")
    database_pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT")
    slow_query_threshold_ms: float = Field(default=500.0, alias="SLOW_QUERY_THRESHOLD_MS")
    enable_query_logging: bool = Field(default=False, alias="ENABLE_QUERY_LOGGING")

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("environment", mode="before")
    @classmethod
    def normalise_environment(cls, v: str | None) -> str:
        return (v or "development").strip().lower()

    @field_validator("cors_origins", "cors_allow_methods", mode="before")
    @classmethod
    def split_csv(cls, v: str | list[str]) -> list[str]:
        """Accept comma separated env values for list settings."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("jwt_secret_key")
    @classmethod
    def warn_short_jwt_secret(cls, v: str) -> str:
        if len(v) < 32:
            logger.warning("JWT_SECRET_KEY is shorter than 32 characters; issued tokens are easy to forge")
        return v

    @model_validator(mode="after")
    def check_production_settings(self):
        """Refuse debug mode and open CORS outside development.

        A missing cron secret only warns: the daily run endpoint then rejects
        every call and the in-process scheduler still scores tenants.
        """
        self.cors_allow_methods = [method.upper() for method in self.cors_allow_methods]

        if self.environment == "production":
            if self.debug:
                logger.error("DEBUG=true is not allowed when ENVIRONMENT=production")
                raise ValueError("DEBUG cannot be True in production environment")
            if "*" in self.cors_origins:
                logger.error("CORS_ORIGINS contains '*' in production")
                raise ValueError("Wildcard CORS origin (*) not allowed in production")
            if self.cors_origins in ([], ["http://localhost:3000"]):
                logger.error("CORS_ORIGINS still has the development default in production")
                raise ValueError("CORS origins must be explicitly configured in production")
        elif self.debug and self.environment != "development":
            logger.warning(f"DEBUG mode enabled in {self.environment} environment")

        if not self.scores_cron_secret:
            logger.warning("SCORES_CRON_SECRET is not set; POST /api/v1/scores/run-daily will reject every call")

        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Settings are read from the environment once per process."""
    return Settings()
