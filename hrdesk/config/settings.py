"""Application settings using Pydantic BaseSettings."""

import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_db_path() -> str:
    """Get absolute path to default SQLite database."""
    # hrdesk/config/ -> hrdesk/
    config_dir = os.path.dirname(os.path.abspath(__file__))
    package_dir = os.path.dirname(config_dir)
    db_path = os.path.join(package_dir, "data", "hrdesk.db")
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    environment: str = Field(default="development")
    # Bind to 127.0.0.1 by default; use 0.0.0.0 only in containers.
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    # Security
    cors_origins: str = Field(default="http://localhost:3000")
    max_request_bytes: int = Field(default=1048576)

    # Authentication (tokens are issued by an external login service)
    session_cookie_name: str = Field(default="hrdesk_session")
    session_ttl_seconds: int = Field(default=604800)

    # Database
    database_url: str = Field(default_factory=_get_default_db_path)

    # Generation provider
    # "openai_compat" talks to any /chat/completions endpoint with tool calling,
    # "mock" is the deterministic provider used in tests and CI.
    provider_mode: str = Field(default="openai_compat")
    provider_base_url: str = Field(default="http://127.0.0.1:1234/v1")
    provider_api_key: str = Field(default="")
    provider_model: str = Field(default="gpt-oss-120b")
    provider_timeout_seconds: int = Field(default=60)
    provider_temperature: float = Field(default=0.2)

    # Chat turns
    chat_max_steps: int = Field(default=5)
    chat_finalize_max_attempts: int = Field(default=3)
    chat_finalize_retry_delay_seconds: float = Field(default=0.2)
    chat_history_limit: int = Field(default=1000)
    sse_ping_interval_seconds: int = Field(default=10)

    # Payroll
    payroll_standard_period_hours: float = Field(default=160)
    payroll_overtime_multiplier: float = Field(default=1.5)

    # Audit
    audit_query_default_limit: int = Field(default=100)
    audit_query_max_limit: int = Field(default=500)

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    @property
    def docs_url(self) -> str | None:
        """Return docs URL outside production, else None."""
        return None if self.is_production else "/docs"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        vv = (v or "").strip().lower()
        if vv not in {"development", "staging", "production", "test"}:
            raise ValueError("ENVIRONMENT must be one of: development, staging, production, test")
        return vv

    @field_validator("provider_mode")
    @classmethod
    def validate_provider_mode(cls, v: str) -> str:
        vv = (v or "").strip().lower()
        if vv not in {"openai_compat", "mock"}:
            raise ValueError("PROVIDER_MODE must be one of: openai_compat, mock")
        return vv

    @model_validator(mode="after")
    def validate_cross_field_constraints(self) -> "Settings":
        if self.chat_max_steps < 1:
            raise ValueError("CHAT_MAX_STEPS must be at least 1")
        if self.chat_finalize_max_attempts < 1:
            raise ValueError("CHAT_FINALIZE_MAX_ATTEMPTS must be at least 1")
        if self.payroll_standard_period_hours <= 0:
            raise ValueError("PAYROLL_STANDARD_PERIOD_HOURS must be positive")
        if self.audit_query_default_limit > self.audit_query_max_limit:
            raise ValueError("AUDIT_QUERY_DEFAULT_LIMIT cannot exceed AUDIT_QUERY_MAX_LIMIT")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
