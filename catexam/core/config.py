"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "catexam API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # Database
    DATABASE_URL: str = "sqlite:///./catexam.db"

    # CAT exam defaults (NCLEX-RN variable-length format)
    # Used by ExamConfig.from_settings(); individual sessions may override them.
    CAT_MIN_QUESTIONS: int = Field(default=60, ge=0)
    CAT_MAX_QUESTIONS: int = Field(default=145, ge=1)
    CAT_TIME_LIMIT_SECONDS: float = Field(default=18000, gt=0)  # 5 hours
    CAT_PASSING_THRESHOLD: float = 0.0  # logit scale
    CAT_STOPPING_SE: float = Field(default=0.30, gt=0)
    CAT_CONFIDENCE_LEVEL: float = Field(
        default=0.95,
        gt=0.5,
        lt=1.0,
        description="Probability required for a confident pass/fail decision",
    )
    # Content balancing (categories below this share of answered items are boosted)
    CAT_CATEGORY_SHARE_THRESHOLD: float = Field(default=0.15, ge=0.0, le=1.0)
    # Boosted item must carry at least this fraction of the maximum information
    CAT_CATEGORY_INFORMATION_TOLERANCE: float = Field(default=0.70, ge=0.0, le=1.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_question_bounds(self) -> Self:
        """Validate that the CAT question floor does not exceed the ceiling."""
        if self.CAT_MIN_QUESTIONS > self.CAT_MAX_QUESTIONS:
            raise ValueError(
                f"CAT_MIN_QUESTIONS ({self.CAT_MIN_QUESTIONS}) must not exceed "
                f"CAT_MAX_QUESTIONS ({self.CAT_MAX_QUESTIONS})"
            )
        return self


settings = Settings()
