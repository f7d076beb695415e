"""
CAT (Computerized Adaptive Testing) engine for catexam.

This module provides the 3PL item response model, ability estimation, item
selection, stopping rules and the session state machine.
"""

from .ability_estimation import estimate_ability_mle
from .answer_scoring import AnswerEvaluation, ItemType, evaluate_answer
from .content_balancing import CategoryTally, apply_category_caps, is_underrepresented
from .engine import (
    CATSession,
    CATSessionManager,
    CATStepResult,
    ItemResponse,
    SessionStatus,
)
from .exam_config import CategoryBounds, ExamConfig
from .exceptions import (
    CATError,
    ExhaustedError,
    InvalidInputError,
    InvalidStateError,
    ItemNotFoundError,
    NotFoundError,
    SessionNotFoundError,
)
from .irt import IRTParams, fisher_information, normal_cdf, probability_correct
from .item_selection import select_next_item
from .precision import confidence_interval, passing_probability, standard_error
from .report import SessionReport, build_session_report
from .service import CATExamService, StartSessionResult, SubmitAnswerResult
from .stopping_rules import (
    ExamResult,
    StopReason,
    StoppingDecision,
    check_stopping_criteria,
)
from .storage import (
    CalibratedItem,
    InMemoryItemRepository,
    InMemorySessionStore,
    ItemRepository,
    SessionStore,
)

__all__ = [
    "IRTParams",
    "probability_correct",
    "fisher_information",
    "normal_cdf",
    "estimate_ability_mle",
    "standard_error",
    "confidence_interval",
    "passing_probability",
    "check_stopping_criteria",
    "StoppingDecision",
    "StopReason",
    "ExamResult",
    "select_next_item",
    "CategoryTally",
    "apply_category_caps",
    "is_underrepresented",
    "evaluate_answer",
    "AnswerEvaluation",
    "ItemType",
    "CATSessionManager",
    "CATSession",
    "CATStepResult",
    "ItemResponse",
    "SessionStatus",
    "CATExamService",
    "StartSessionResult",
    "SubmitAnswerResult",
    "SessionReport",
    "build_session_report",
    "ExamConfig",
    "CategoryBounds",
    "CalibratedItem",
    "ItemRepository",
    "SessionStore",
    "InMemoryItemRepository",
    "InMemorySessionStore",
    "CATError",
    "NotFoundError",
    "SessionNotFoundError",
    "ItemNotFoundError",
    "InvalidStateError",
    "InvalidInputError",
    "ExhaustedError",
]
