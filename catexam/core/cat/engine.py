"""
CATSessionManager: state machine for adaptive exam sessions.

Scores answers, re-estimates ability (MLE), updates the precision figures and
evaluates the stopping rules. The manager never touches storage: all state
lives in the CATSession object, which ``CATExamService`` loads and saves.

Session lifecycle (strictly monotonic, no resume):

    not_started -> in_progress -> completed
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from catexam.core.cat.ability_estimation import estimate_ability_mle
from catexam.core.cat.answer_scoring import Answer, AnswerEvaluation, evaluate_answer
from catexam.core.cat.content_balancing import CategoryTally
from catexam.core.cat.exam_config import ExamConfig
from catexam.core.cat.exceptions import InvalidInputError, InvalidStateError
from catexam.core.cat.irt import IRTParams
from catexam.core.cat.item_selection import select_next_item
from catexam.core.cat.precision import (
    confidence_interval,
    passing_probability,
    standard_error,
    z_for_confidence,
)
from catexam.core.cat.stopping_rules import (
    ExamResult,
    StopReason,
    StoppingDecision,
    check_stopping_criteria,
    determine_result,
)
from catexam.core.cat.storage import CalibratedItem

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Exam session status."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Allowed forward transitions
_TRANSITIONS = {
    SessionStatus.NOT_STARTED: {SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED},
    SessionStatus.IN_PROGRESS: {SessionStatus.COMPLETED},
    SessionStatus.COMPLETED: set(),
}


@dataclass(frozen=True)
class ItemResponse:
    """Single answered item, with the item parameters as they were when answered."""

    item_id: str
    is_correct: bool
    time_spent: float
    theta_after: float
    se_after: float
    params: IRTParams
    category: str
    answer: Tuple[str, ...] = ()
    partial_credit: float = 0.0


@dataclass
class CATSession:
    """In-memory representation of an adaptive exam session."""

    session_id: str
    subject_id: str
    config: ExamConfig
    status: SessionStatus = SessionStatus.NOT_STARTED
    theta: float = 0.0
    se: float = 1.0
    ci_lower: float = 0.0
    ci_upper: float = 0.0
    passing_probability: float = 0.5
    time_spent: float = 0.0
    responses: List[ItemResponse] = field(default_factory=list)
    category_tally: Dict[str, CategoryTally] = field(default_factory=dict)
    current_item_id: Optional[str] = None
    stop_reason: Optional[StopReason] = None
    result: Optional[ExamResult] = None
    # Theta recorded after each response
    theta_history: List[float] = field(default_factory=list)

    @property
    def answered_item_ids(self) -> List[str]:
        return [r.item_id for r in self.responses]

    @property
    def answered_count(self) -> int:
        return len(self.responses)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.responses if r.is_correct)

    @property
    def time_limit(self) -> float:
        return self.config.time_limit_seconds

    @property
    def time_remaining(self) -> float:
        return max(0.0, self.time_limit - self.time_spent)

    @property
    def confidence_interval(self) -> Tuple[float, float]:
        return (self.ci_lower, self.ci_upper)

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.IN_PROGRESS

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED


@dataclass
class CATStepResult:
    """Result after processing a single response."""

    evaluation: AnswerEvaluation
    response: ItemResponse
    decision: StoppingDecision

    @property
    def should_stop(self) -> bool:
        return self.decision.should_stop

    @property
    def stop_reason(self) -> StopReason:
        return self.decision.reason


class CATSessionManager:
    """
    State machine for adaptive exam sessions.

    Manages:
    - Session initialization and start (first item presented at theta=0)
    - Answer scoring and ability re-estimation using MLE
    - SE, confidence interval and passing probability updates
    - Stopping rule evaluation and finalization
    - Next-item selection with category balancing
    """

    PRIOR_THETA = 0.0  # Starting ability

    def __init__(self, rng: Optional[random.Random] = None):
        # Only used when a config enables randomesque exposure control
        self.rng = rng

    def initialize(
        self, session_id: str, subject_id: str, config: ExamConfig
    ) -> CATSession:
        """
        Create a new CATSession in the not_started state.

        Args:
            session_id: Unique session identifier.
            subject_id: Test-taker identifier.
            config: Exam configuration, stored on the session.

        Returns:
            CATSession with initial estimates (theta=0, SE=default).
        """
        session = CATSession(
            session_id=session_id,
            subject_id=subject_id,
            config=config,
            theta=self.PRIOR_THETA,
            se=config.default_se,
        )
        self._update_precision(session)
        return session

    def start(
        self, session: CATSession, first_item: Optional[CalibratedItem]
    ) -> CATSession:
        """
        Move a session to in_progress and present its first item.

        An empty bank ends the session immediately with stop reason
        ``no_items_available`` and result ``undetermined``.
        """
        self._transition(session, SessionStatus.IN_PROGRESS)
        session.theta = self.PRIOR_THETA
        session.se = session.config.default_se
        self._update_precision(session)

        if first_item is None:
            self.exhaust(session)
            return session

        session.current_item_id = first_item.id
        logger.info(
            f"Started CAT session {session.session_id} for subject "
            f"{session.subject_id}; first item {first_item.id}"
        )
        return session

    def process_response(
        self,
        session: CATSession,
        item: CalibratedItem,
        answer: Answer,
        time_spent: float,
    ) -> CATStepResult:
        """
        Process a single answer and update the session state.

        This method mutates the session in-place:
        - Scores the answer and appends the response to the history
        - Updates the category tally and elapsed time
        - Re-estimates theta using MLE, then SE, CI and passing probability
        - Checks stopping criteria and finalizes the session on stop

        Args:
            session: The current CATSession (mutated in-place).
            item: The item being answered.
            answer: Submitted option id(s).
            time_spent: Seconds spent on this item (caller-supplied).

        Returns:
            CATStepResult with the evaluation and stopping decision.

        Raises:
            InvalidStateError: If the session is not in progress.
            InvalidInputError: If the time is negative, the answer malformed,
                or the item was already answered or not the presented item.
        """
        if session.status != SessionStatus.IN_PROGRESS:
            raise InvalidStateError(
                f"Cannot answer in a session that is {session.status.value}",
                {"session_id": session.session_id},
            )
        if time_spent < 0:
            raise InvalidInputError(
                "Time spent must be non-negative", {"time_spent": time_spent}
            )
        if item.id in session.answered_item_ids:
            raise InvalidInputError(
                "Item already answered in this session",
                {"session_id": session.session_id, "item_id": item.id},
            )
        if session.current_item_id is not None and item.id != session.current_item_id:
            raise InvalidInputError(
                "Item is not the one currently presented",
                {
                    "session_id": session.session_id,
                    "item_id": item.id,
                    "current_item_id": session.current_item_id,
                },
            )

        evaluation = evaluate_answer(answer, item.correct_answers, item.item_type)
        config = session.config

        history = [(r.params, r.is_correct) for r in session.responses]
        history.append((item.params, evaluation.is_correct))
        theta = estimate_ability_mle(
            history, theta_min=config.theta_min, theta_max=config.theta_max
        )

        session.theta = theta
        session.se = standard_error(
            theta, [params for params, _ in history], default=config.default_se
        )
        self._update_precision(session)

        response = ItemResponse(
            item_id=item.id,
            is_correct=evaluation.is_correct,
            time_spent=time_spent,
            theta_after=session.theta,
            se_after=session.se,
            params=item.params,
            category=item.category,
            answer=tuple([answer] if isinstance(answer, str) else answer),
            partial_credit=evaluation.partial_credit,
        )
        session.responses.append(response)
        session.category_tally.setdefault(item.category, CategoryTally()).record(
            evaluation.is_correct
        )
        session.time_spent += time_spent
        session.theta_history.append(theta)
        session.current_item_id = None

        decision = check_stopping_criteria(
            num_items=session.answered_count,
            time_spent=session.time_spent,
            se=session.se,
            passing_probability=session.passing_probability,
            min_items=config.min_questions,
            max_items=config.max_questions,
            time_limit=config.time_limit_seconds,
            stopping_se=config.stopping_se,
            confidence_level=config.confidence_level,
        )

        logger.debug(
            f"Session {session.session_id}: Response #{session.answered_count} "
            f"({item.id}, correct={evaluation.is_correct}) -> "
            f"theta={session.theta:.3f}, SE={session.se:.3f}, "
            f"P(pass)={session.passing_probability:.4f}, "
            f"stop={decision.should_stop}"
        )

        if decision.should_stop:
            self.finalize(session, decision.reason)

        return CATStepResult(evaluation=evaluation, response=response, decision=decision)

    def select_next_item(
        self, session: CATSession, item_pool: Sequence[CalibratedItem]
    ) -> Optional[CalibratedItem]:
        """Pick the next item for a session using its configuration."""
        config = session.config
        return select_next_item(
            item_pool=item_pool,
            theta=session.theta,
            answered_ids=session.answered_item_ids,
            category_tally=session.category_tally,
            category_distribution=config.category_distribution,
            share_threshold=config.category_share_threshold,
            information_tolerance=config.category_information_tolerance,
            balance_window=config.category_balance_window,
            randomesque_k=config.randomesque_k,
            rng=self.rng,
        )

    def present(self, session: CATSession, item: CalibratedItem) -> None:
        """Record the item shown to the test-taker next."""
        if session.status != SessionStatus.IN_PROGRESS:
            raise InvalidStateError(
                f"Cannot present an item in a session that is {session.status.value}",
                {"session_id": session.session_id},
            )
        session.current_item_id = item.id

    def finalize(
        self,
        session: CATSession,
        stop_reason: StopReason,
        result: Optional[ExamResult] = None,
    ) -> CATSession:
        """
        Complete the session. Called exactly once per session.

        Args:
            session: The session to complete (mutated in-place).
            stop_reason: Why the session stopped.
            result: Explicit result; derived from the passing probability
                when omitted.

        Returns:
            The completed session.
        """
        self._transition(session, SessionStatus.COMPLETED)
        if result is None:
            result = determine_result(
                session.passing_probability, has_responses=bool(session.responses)
            )
        session.stop_reason = stop_reason
        session.result = result
        session.current_item_id = None

        logger.info(
            f"Session {session.session_id} finalized: "
            f"result={result.value}, reason={stop_reason.value}, "
            f"theta={session.theta:.3f}, SE={session.se:.3f}, "
            f"items={session.answered_count}, correct={session.correct_count}"
        )
        return session

    def end_early(self, session: CATSession) -> CATSession:
        """Administrative early end; bypasses the stopping rules."""
        if session.status == SessionStatus.COMPLETED:
            raise InvalidStateError(
                "Session is already completed", {"session_id": session.session_id}
            )
        return self.finalize(session, StopReason.USER_ENDED)

    def exhaust(self, session: CATSession) -> CATSession:
        """Forced stop when the item bank has nothing left to offer."""
        logger.warning(
            f"Session {session.session_id}: no eligible items after "
            f"{session.answered_count} responses; stopping"
        )
        return self.finalize(
            session, StopReason.NO_ITEMS_AVAILABLE, ExamResult.UNDETERMINED
        )

    def _update_precision(self, session: CATSession) -> None:
        config = session.config
        session.ci_lower, session.ci_upper = confidence_interval(
            session.theta,
            session.se,
            z=z_for_confidence(config.confidence_level),
            bounds=config.theta_bounds,
        )
        session.passing_probability = passing_probability(
            session.theta, session.se, config.passing_threshold
        )

    def _transition(self, session: CATSession, new_status: SessionStatus) -> None:
        if new_status not in _TRANSITIONS[session.status]:
            raise InvalidStateError(
                f"Cannot move session from {session.status.value} "
                f"to {new_status.value}",
                {"session_id": session.session_id},
            )
        session.status = new_status
