"""
Exam configuration passed explicitly into the session controller.

Defaults follow the NCLEX-RN variable-length format (60-145 questions,
5 hours, SE 0.30, 95% confidence). ``ExamConfig.from_settings()`` derives the
defaults from application settings so deployments can tune them through the
environment.
"""

from typing import Dict, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from catexam.core.cat.stopping_rules import (
    CONFIDENCE_LEVEL,
    MAX_QUESTIONS,
    MIN_QUESTIONS,
    STOPPING_SE,
    TIME_LIMIT_SECONDS,
)
from catexam.core.config import settings


class CategoryBounds(BaseModel):
    """Per-category item-count bounds for content balancing."""

    model_config = ConfigDict(frozen=True)

    min: int = Field(
        default=0,
        ge=0,
        description="Items wanted before the category stops being prioritized",
    )
    max: Optional[int] = Field(
        default=None, ge=0, description="Hard cap on items from the category"
    )

    @model_validator(mode="after")
    def validate_range(self) -> Self:
        if self.max is not None and self.max < self.min:
            raise ValueError(f"max ({self.max}) must be >= min ({self.min})")
        return self


class ExamConfig(BaseModel):
    """Configuration of one adaptive exam.

    A snapshot is stored on each session, so a session always finishes under
    the rules it started with.
    """

    model_config = ConfigDict(frozen=True)

    min_questions: int = Field(default=MIN_QUESTIONS, ge=0)
    max_questions: int = Field(default=MAX_QUESTIONS, ge=1)
    time_limit_seconds: float = Field(default=TIME_LIMIT_SECONDS, gt=0)
    passing_threshold: float = 0.0
    stopping_se: float = Field(default=STOPPING_SE, gt=0)
    confidence_level: float = Field(default=CONFIDENCE_LEVEL, gt=0.5, lt=1.0)
    category_distribution: Dict[str, CategoryBounds] = Field(default_factory=dict)

    theta_min: float = -4.0
    theta_max: float = 4.0
    default_se: float = Field(default=1.0, gt=0)

    # Category balancing: a category below this share of answered items is
    # under-represented; its best item may replace the most informative item
    # if it carries at least this fraction of the maximum information.
    category_share_threshold: float = Field(default=0.15, ge=0.0, le=1.0)
    category_information_tolerance: float = Field(default=0.70, ge=0.0, le=1.0)
    category_balance_window: int = Field(default=10, ge=1)

    # Randomesque exposure control; 1 always administers the argmax item
    randomesque_k: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def validate_ranges(self) -> Self:
        if self.min_questions > self.max_questions:
            raise ValueError(
                f"min_questions ({self.min_questions}) must not exceed "
                f"max_questions ({self.max_questions})"
            )
        if self.theta_min >= self.theta_max:
            raise ValueError(
                f"theta_min ({self.theta_min}) must be below theta_max ({self.theta_max})"
            )
        if not self.theta_min <= self.passing_threshold <= self.theta_max:
            raise ValueError(
                f"passing_threshold ({self.passing_threshold}) must lie within "
                f"[{self.theta_min}, {self.theta_max}]"
            )
        return self

    @property
    def theta_bounds(self) -> tuple[float, float]:
        return (self.theta_min, self.theta_max)

    @classmethod
    def from_settings(cls, overrides: Optional[dict] = None) -> "ExamConfig":
        """Build a config from application settings plus optional overrides."""
        values = {
            "min_questions": settings.CAT_MIN_QUESTIONS,
            "max_questions": settings.CAT_MAX_QUESTIONS,
            "time_limit_seconds": settings.CAT_TIME_LIMIT_SECONDS,
            "passing_threshold": settings.CAT_PASSING_THRESHOLD,
            "stopping_se": settings.CAT_STOPPING_SE,
            "confidence_level": settings.CAT_CONFIDENCE_LEVEL,
            "category_share_threshold": settings.CAT_CATEGORY_SHARE_THRESHOLD,
            "category_information_tolerance": (
                settings.CAT_CATEGORY_INFORMATION_TOLERANCE
            ),
        }
        if overrides:
            values.update(overrides)
        return cls(**values)

    def with_overrides(self, overrides: Optional[dict]) -> "ExamConfig":
        """Return a validated copy with the given fields replaced."""
        if not overrides:
            return self
        return type(self)(**{**self.model_dump(), **overrides})
