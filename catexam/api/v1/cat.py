"""
Adaptive exam session endpoints.
"""
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from fastapi import APIRouter, Depends, Query, status

from catexam.core.cat.engine import CATSession
from catexam.core.cat.exam_config import ExamConfig
from catexam.core.cat.exceptions import (
    CATError,
    InvalidInputError,
    InvalidStateError,
    ItemNotFoundError,
    NotFoundError,
    SessionNotFoundError,
)
from catexam.core.cat.report import SessionReport
from catexam.core.cat.service import DEFAULT_HISTORY_LIMIT, CATExamService
from catexam.core.cat.storage import CalibratedItem
from catexam.core.db_error_handling import DatabaseOperationError
from catexam.core.error_responses import (
    ErrorMessages,
    raise_bad_request,
    raise_conflict,
    raise_not_found,
    raise_server_error,
)
from catexam.schemas.cat_sessions import (
    CategoryPerformanceSchema,
    CategoryTallySchema,
    ConfidenceIntervalSchema,
    DifficultyBandSchema,
    ItemPresentation,
    SessionHistoryResponse,
    SessionReportResponse,
    SessionResponse,
    StartSessionRequest,
    StartSessionResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
    TimeAnalysisSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_HISTORY_LIMIT = 100

_exam_service: Optional[CATExamService] = None


def get_exam_service() -> CATExamService:
    """
    Dependency returning the process-wide exam service.

    Built on first use from the SQL stores and the settings-derived exam
    configuration. Tests override this dependency.
    """
    global _exam_service
    if _exam_service is None:
        from catexam.db.repositories import SqlItemRepository, SqlSessionStore
        from catexam.models import SessionLocal

        _exam_service = CATExamService(
            item_repository=SqlItemRepository(SessionLocal),
            session_store=SqlSessionStore(SessionLocal),
            config=ExamConfig.from_settings(),
        )
    return _exam_service


@contextmanager
def translate_cat_errors() -> Generator[None, None, None]:
    """Map engine and storage failures to HTTP errors."""
    try:
        yield
    except SessionNotFoundError as e:
        raise_not_found(ErrorMessages.session_not_found(e.session_id))
    except ItemNotFoundError as e:
        raise_not_found(ErrorMessages.item_not_found(e.item_id))
    except NotFoundError as e:
        raise_not_found(ErrorMessages.invalid_input(e.message))
    except InvalidStateError as e:
        if "subject_id" in e.context and "session_id" in e.context:
            raise_conflict(ErrorMessages.active_session_exists(e.context["session_id"]))
        raise_conflict(ErrorMessages.invalid_input(e.message))
    except (InvalidInputError, CATError) as e:
        raise_bad_request(ErrorMessages.invalid_input(e.message))
    except DatabaseOperationError as e:
        logger.error(f"Exam operation failed: {e.message}")
        raise_server_error(ErrorMessages.EXAM_OPERATION_FAILED)


def build_item_presentation(
    item: Optional[CalibratedItem],
) -> Optional[ItemPresentation]:
    if item is None:
        return None
    return ItemPresentation(id=item.id, category=item.category, item_type=item.item_type)


def build_session_response(session: CATSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        subject_id=session.subject_id,
        status=session.status.value,
        theta=session.theta,
        se=session.se,
        confidence_interval=ConfidenceIntervalSchema(
            lower=session.ci_lower, upper=session.ci_upper
        ),
        passing_probability=session.passing_probability,
        answered_count=session.answered_count,
        correct_count=session.correct_count,
        time_spent=session.time_spent,
        time_limit=session.time_limit,
        current_item_id=session.current_item_id,
        stop_reason=session.stop_reason.value if session.stop_reason else None,
        result=session.result.value if session.result else None,
        category_tally={
            category: CategoryTallySchema(correct=t.correct, total=t.total)
            for category, t in session.category_tally.items()
        },
    )


def build_report_response(report: SessionReport) -> SessionReportResponse:
    lower, upper = report.confidence_interval
    return SessionReportResponse(
        session_id=report.session_id,
        subject_id=report.subject_id,
        result=report.result.value if report.result else None,
        passed=report.passed,
        stop_reason=report.stop_reason,
        theta=report.theta,
        se=report.se,
        confidence_interval=ConfidenceIntervalSchema(lower=lower, upper=upper),
        passing_probability=report.passing_probability,
        total_questions=report.total_questions,
        correct_answers=report.correct_answers,
        score_percentage=report.score_percentage,
        time_analysis=TimeAnalysisSchema(
            total_seconds=report.time_analysis.total_seconds,
            average_per_question=report.time_analysis.average_per_question,
            fastest_question=report.time_analysis.fastest_question,
            slowest_question=report.time_analysis.slowest_question,
        ),
        category_performance=[
            CategoryPerformanceSchema(
                category=c.category,
                label=c.label,
                correct=c.correct,
                total=c.total,
                percentage=c.percentage,
                status=c.status,
            )
            for c in report.category_performance
        ],
        difficulty_breakdown={
            name: DifficultyBandSchema(answered=band.answered, correct=band.correct)
            for name, band in report.difficulty_breakdown.items()
        },
        strengths=list(report.strengths),
        areas_for_improvement=list(report.areas_for_improvement),
        recommendations=list(report.recommendations),
    )


@router.post(
    "/sessions",
    response_model=StartSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_session(
    request: StartSessionRequest,
    service: CATExamService = Depends(get_exam_service),
):
    """
    Start an adaptive exam session and return its first item.

    A subject can only have one session in progress; starting another
    returns 409 with the ID of the existing session.
    """
    with translate_cat_errors():
        started = service.start_session(request.subject_id, config=request.config)

    return StartSessionResponse(
        session=build_session_response(started.session),
        first_item=build_item_presentation(started.first_item),
    )


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(
    session_id: str,
    service: CATExamService = Depends(get_exam_service),
):
    """Get the current state of an exam session."""
    with translate_cat_errors():
        session = service.get_session(session_id)
    return build_session_response(session)


@router.post("/sessions/{session_id}/answers", response_model=SubmitAnswerResponse)
def submit_answer(
    session_id: str,
    request: SubmitAnswerRequest,
    service: CATExamService = Depends(get_exam_service),
):
    """
    Submit the answer to the presented item.

    Returns correctness, the updated estimates and the next item, or the
    final result when the exam stopped.
    """
    with translate_cat_errors():
        outcome = service.submit_answer(
            session_id=session_id,
            item_id=request.item_id,
            answer=request.answer,
            time_spent=request.time_spent,
        )

    return SubmitAnswerResponse(
        correct=outcome.correct,
        partial_credit=outcome.partial_credit,
        explanation=outcome.explanation,
        session=build_session_response(outcome.session),
        next_item=build_item_presentation(outcome.next_item),
        completed=outcome.completed,
        result=outcome.result.value if outcome.result else None,
    )


@router.post("/sessions/{session_id}/end", response_model=SessionReportResponse)
def end_session(
    session_id: str,
    service: CATExamService = Depends(get_exam_service),
):
    """End an exam session early and return its report."""
    with translate_cat_errors():
        report = service.end_session(session_id)
    return build_report_response(report)


@router.get("/sessions/{session_id}/result", response_model=SessionReportResponse)
def get_result(
    session_id: str,
    service: CATExamService = Depends(get_exam_service),
):
    """Get the report of a completed exam session."""
    with translate_cat_errors():
        report = service.get_result(session_id)
    return build_report_response(report)


@router.get(
    "/subjects/{subject_id}/history", response_model=SessionHistoryResponse
)
def get_history(
    subject_id: str,
    limit: int = Query(
        DEFAULT_HISTORY_LIMIT,
        ge=1,
        le=MAX_HISTORY_LIMIT,
        description="Maximum number of sessions to return",
    ),
    service: CATExamService = Depends(get_exam_service),
):
    """Get a subject's completed sessions, newest first."""
    with translate_cat_errors():
        reports = service.get_history(subject_id, limit=limit)

    sessions = [build_report_response(r) for r in reports]
    return SessionHistoryResponse(
        subject_id=subject_id, sessions=sessions, total_count=len(sessions)
    )
