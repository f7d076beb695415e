"""
Pydantic schemas for adaptive exam session endpoints.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional, Union


class StartSessionRequest(BaseModel):
    """Schema for starting an adaptive exam session."""

    subject_id: str = Field(
        ..., min_length=1, max_length=255, description="Test-taker identifier"
    )
    config: Optional[Dict[str, Any]] = Field(
        None,
        description=(
            "Exam configuration overrides (e.g. min_questions, max_questions, "
            "time_limit_seconds, passing_threshold, stopping_se, confidence_level, "
            "category_distribution)"
        ),
    )

    @field_validator("subject_id")
    @classmethod
    def validate_subject_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("subject_id must not be blank")
        return v


class SubmitAnswerRequest(BaseModel):
    """Schema for submitting the answer to the presented item."""

    item_id: str = Field(..., min_length=1, description="ID of the item being answered")
    answer: Union[str, List[str]] = Field(
        ..., description="Selected option id, or list of option ids"
    )
    time_spent: float = Field(..., description="Seconds spent on this item")


class ItemPresentation(BaseModel):
    """Item as shown to the test-taker (never includes the answer key)."""

    id: str = Field(..., description="Item ID")
    category: str = Field(..., description="Content category")
    item_type: str = Field(..., description="Item format")


class ConfidenceIntervalSchema(BaseModel):
    lower: float = Field(..., description="Lower bound of the ability interval")
    upper: float = Field(..., description="Upper bound of the ability interval")


class CategoryTallySchema(BaseModel):
    correct: int
    total: int


class SessionResponse(BaseModel):
    """Schema for an exam session snapshot."""

    session_id: str = Field(..., description="Exam session ID")
    subject_id: str = Field(..., description="Test-taker identifier")
    status: str = Field(
        ..., description="Session status (not_started, in_progress, completed)"
    )
    theta: float = Field(..., description="Current ability estimate (logits)")
    se: float = Field(..., description="Standard error of the ability estimate")
    confidence_interval: ConfidenceIntervalSchema
    passing_probability: float = Field(
        ..., description="Probability that ability is above the passing standard"
    )
    answered_count: int
    correct_count: int
    time_spent: float = Field(..., description="Elapsed seconds")
    time_limit: float = Field(..., description="Time budget in seconds")
    current_item_id: Optional[str] = Field(
        None, description="Item currently presented, if any"
    )
    stop_reason: Optional[str] = None
    result: Optional[str] = Field(None, description="pass, fail or undetermined")
    category_tally: Dict[str, CategoryTallySchema] = Field(default_factory=dict)


class StartSessionResponse(BaseModel):
    session: SessionResponse
    first_item: Optional[ItemPresentation] = Field(
        None, description="First item; null when the bank is empty"
    )


class SubmitAnswerResponse(BaseModel):
    """Schema for the outcome of one answer."""

    correct: bool
    partial_credit: float = Field(
        ..., description="Partial-credit score (select-all items; informational)"
    )
    explanation: Optional[str] = None
    session: SessionResponse
    next_item: Optional[ItemPresentation] = None
    completed: bool
    result: Optional[str] = None


class CategoryPerformanceSchema(BaseModel):
    category: str
    label: str
    correct: int
    total: int
    percentage: int
    status: str = Field(..., description="above, near or below")


class DifficultyBandSchema(BaseModel):
    answered: int
    correct: int


class TimeAnalysisSchema(BaseModel):
    total_seconds: float
    average_per_question: float
    fastest_question: float
    slowest_question: float


class SessionReportResponse(BaseModel):
    """Schema for the result report of a completed session."""

    session_id: str
    subject_id: str
    result: Optional[str]
    passed: bool
    stop_reason: Optional[str]
    theta: float
    se: float
    confidence_interval: ConfidenceIntervalSchema
    passing_probability: float
    total_questions: int
    correct_answers: int
    score_percentage: float
    time_analysis: TimeAnalysisSchema
    category_performance: List[CategoryPerformanceSchema]
    difficulty_breakdown: Dict[str, DifficultyBandSchema]
    strengths: List[str]
    areas_for_improvement: List[str]
    recommendations: List[str]


class SessionHistoryResponse(BaseModel):
    subject_id: str
    sessions: List[SessionReportResponse]
    total_count: int
