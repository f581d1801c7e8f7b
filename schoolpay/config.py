"""SchoolPay settings, read from the environment and an optional .env file."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ASYNC_DRIVER_PREFIXES = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
}


class Settings(BaseSettings):
    """Service settings.

    ``APP_SECRET_KEY`` and ``DATABASE_URL`` are required; everything else has
    a default suitable for local development.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service
    app_name: str = "SchoolPay"
    app_env: Literal["development", "staging", "production", "testing"] = "development"
    app_secret_key: str
    app_debug: bool = False
    app_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    app_base_url: str = "http://localhost:8000"

    # Database
    database_url: str
    database_pool_size: int = Field(20, ge=1)
    database_max_overflow: int = Field(10, ge=0)

    # Access tokens are minted by the identity provider
    jwt_secret_key: str | None = None
    jwt_algorithm: str = "HS256"

    # Payroll
    attendance_divisor_days: int = Field(30, ge=1, description="Days in a notional salary month")
    backdate_warning_days: int = Field(365, ge=0)
    rejection_reason_min_length: int = Field(5, ge=1)
    rejection_reason_max_length: int = Field(500, ge=1)

    @model_validator(mode="after")
    def check_rejection_reason_bounds(self) -> "Settings":
        if self.rejection_reason_min_length > self.rejection_reason_max_length:
            raise ValueError("rejection_reason_min_length exceeds rejection_reason_max_length")
        return self

    @property
    def effective_jwt_secret(self) -> str:
        """Secret used to verify access tokens; defaults to the app secret."""
        return self.jwt_secret_key or self.app_secret_key

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def async_database_url(self) -> str:
        """Database URL rewritten for the asyncpg driver where needed."""
        for prefix, replacement in ASYNC_DRIVER_PREFIXES.items():
            if self.database_url.startswith(prefix):
                return self.database_url.replace(prefix, replacement, 1)
        return self.database_url

    @property
    def uses_sqlite(self) -> bool:
        """True for SQLite URLs (tests and local tooling)."""
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
