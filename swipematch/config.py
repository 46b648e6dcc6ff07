"""Configuration management for the SwipeMatch service."""

from datetime import timedelta
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application Configuration
    APP_NAME: str = "SwipeMatch"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    DEBUG: bool = Field(default=False)

    # Storage Configuration
    STORAGE_BACKEND: Literal["memory", "sql"] = "memory"
    DATABASE_URL: str = "sqlite:///./swipematch.db"
    STORAGE_TIMEOUT_SECONDS: float = 5.0

    # Sentry Configuration
    SENTRY_DSN: str | None = None

    # API Configuration
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Credit Ledger Configuration
    DAILY_CREDIT_ALLOWANCE: int = 10
    CREDIT_RESET_HOURS: float = 24.0

    # Reputation Configuration
    SCORE_INITIAL: float = 100.0
    SCORE_LIKE_INCREMENT: float = 2.0
    SCORE_DISLIKE_DECREMENT: float = 1.0
    SCORE_FLOOR: float = 10.0

    @field_validator("DEBUG", mode="before")
    @classmethod
    def set_debug(cls, v: Any, info: ValidationInfo) -> bool:
        """Enable debug mode if ENVIRONMENT is development."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str) and v:
            return v.lower() in {"1", "true", "yes", "on"}
        return bool(info.data.get("ENVIRONMENT", "").lower() == "development")

    @field_validator("DAILY_CREDIT_ALLOWANCE")
    @classmethod
    def validate_allowance(cls, v: int) -> int:
        """Reject negative allowances."""
        if v < 0:
            raise ValueError("DAILY_CREDIT_ALLOWANCE must be non-negative")
        return v

    @field_validator("CREDIT_RESET_HOURS", "STORAGE_TIMEOUT_SECONDS")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Durations must be strictly positive."""
        if v <= 0:
            raise ValueError("Durations must be positive")
        return v

    @field_validator("SCORE_FLOOR")
    @classmethod
    def validate_floor(cls, v: float, info: ValidationInfo) -> float:
        """The score floor may not sit above the initial score."""
        initial = info.data.get("SCORE_INITIAL")
        if initial is not None and v > initial:
            raise ValueError("SCORE_FLOOR must not exceed SCORE_INITIAL")
        return v

    @property
    def credit_reset_interval(self) -> timedelta:
        """Time after which a user's credits are replenished."""
        return timedelta(hours=self.CREDIT_RESET_HOURS)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore")


# Create a global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Return the settings instance."""
    return settings
