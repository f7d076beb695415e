"""
CATExamService: storage orchestration for adaptive exam sessions.

Wraps the pure CATSessionManager with the item repository and session store.
Every mutating call loads an independent copy of the session, applies the
state machine and saves exactly once, so a failure anywhere before the save
leaves the last persisted state intact.

Concurrency: calls that mutate a session (and session creation for a
subject) are serialized with a per-key ``threading.Lock``; different sessions
proceed in parallel. Locks live only while some caller holds them.
"""

import logging
import random
import threading
import uuid
import weakref
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from catexam.core.cat.answer_scoring import Answer
from catexam.core.cat.engine import CATSession, CATSessionManager, SessionStatus
from catexam.core.cat.exam_config import ExamConfig
from catexam.core.cat.exceptions import (
    ExhaustedError,
    InvalidInputError,
    InvalidStateError,
    ItemNotFoundError,
    SessionNotFoundError,
)
from catexam.core.cat.report import SessionReport, build_session_report
from catexam.core.cat.stopping_rules import ExamResult
from catexam.core.cat.storage import CalibratedItem, ItemRepository, SessionStore

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


@dataclass
class StartSessionResult:
    session: CATSession
    first_item: Optional[CalibratedItem]


@dataclass
class SubmitAnswerResult:
    """Outcome of one submitted answer."""

    correct: bool
    partial_credit: float
    explanation: Optional[str]
    session: CATSession
    next_item: Optional[CalibratedItem]
    completed: bool
    result: Optional[ExamResult]


class CATExamService:
    """
    Public operations of the adaptive exam engine.

    Args:
        item_repository: Source of calibrated items and exposure counters.
        session_store: Persistence for sessions.
        config: Default exam configuration; per-session overrides are
            validated against it.
        rng: Optional Random instance (randomesque exposure control only).
    """

    def __init__(
        self,
        item_repository: ItemRepository,
        session_store: SessionStore,
        config: Optional[ExamConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.items = item_repository
        self.sessions = session_store
        self.config = config if config is not None else ExamConfig()
        self.manager = CATSessionManager(rng=rng)
        self._registry_lock = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def start_session(
        self,
        subject_id: str,
        config: Optional[Union[ExamConfig, Mapping[str, Any]]] = None,
    ) -> StartSessionResult:
        """
        Create a session and present its first item.

        Args:
            subject_id: Test-taker identifier.
            config: Full configuration, or a mapping of fields overriding the
                service default.

        Returns:
            StartSessionResult with the session and its first item (None when
            the bank is empty, in which case the session is already completed).

        Raises:
            InvalidInputError: If the subject id or configuration is invalid.
            InvalidStateError: If the subject already has a session in progress.
        """
        if not subject_id:
            raise InvalidInputError("Subject id must be non-empty")
        exam_config = self._resolve_config(config)

        with self._lock_for(f"subject:{subject_id}"):
            active = self.sessions.find_active(subject_id)
            if active is not None:
                raise InvalidStateError(
                    "Subject already has an exam session in progress",
                    {"subject_id": subject_id, "session_id": active.session_id},
                )

            session = self.manager.initialize(
                session_id=uuid.uuid4().hex,
                subject_id=subject_id,
                config=exam_config,
            )
            first_item = self.manager.select_next_item(
                session, self._eligible_pool(session_id=session.session_id)
            )
            self.manager.start(session, first_item)
            self.sessions.save(session)

        return StartSessionResult(session=session, first_item=first_item)

    def submit_answer(
        self,
        session_id: str,
        item_id: str,
        answer: Answer,
        time_spent: float,
    ) -> SubmitAnswerResult:
        """
        Score an answer, update the estimates and pick the next item.

        Raises:
            SessionNotFoundError: Unknown session.
            ItemNotFoundError: Unknown item.
            InvalidStateError: Session not in progress.
            InvalidInputError: Malformed answer, negative time, repeated item.

        Exposure counters are updated after the session is saved. If that
        update fails, its error propagates but the answer is already recorded
        and the session has moved on to the next item.
        """
        with self._lock_for(f"session:{session_id}"):
            session = self._load(session_id)
            if session.status != SessionStatus.IN_PROGRESS:
                raise InvalidStateError(
                    f"Cannot answer in a session that is {session.status.value}",
                    {"session_id": session_id},
                )
            item = self.items.get_item(item_id)
            if item is None:
                raise ItemNotFoundError(item_id)

            step = self.manager.process_response(session, item, answer, time_spent)

            next_item = None
            if not step.should_stop:
                pool = self._eligible_pool(
                    session.answered_item_ids, session_id=session_id
                )
                next_item = self.manager.select_next_item(session, pool)
                if next_item is None:
                    self.manager.exhaust(session)
                else:
                    self.manager.present(session, next_item)

            self.sessions.save(session)
            try:
                self.items.increment_exposure(item.id, step.evaluation.is_correct)
            except Exception:
                logger.error(
                    f"Exposure update failed after the answer was saved "
                    f"(session_id={session_id}, item_id={item.id})"
                )
                raise

        return SubmitAnswerResult(
            correct=step.evaluation.is_correct,
            partial_credit=step.evaluation.partial_credit,
            explanation=item.explanation,
            session=session,
            next_item=next_item,
            completed=session.is_completed,
            result=session.result,
        )

    def end_session(self, session_id: str) -> SessionReport:
        """
        End a session early with stop reason ``user_ended``.

        Raises:
            SessionNotFoundError: Unknown session.
            InvalidStateError: Session already completed.
        """
        with self._lock_for(f"session:{session_id}"):
            session = self._load(session_id)
            self.manager.end_early(session)
            self.sessions.save(session)

        return build_session_report(session)

    def get_result(self, session_id: str) -> SessionReport:
        """
        Report of a completed session. Read-only.

        Raises:
            SessionNotFoundError: Unknown session.
            InvalidStateError: Session not completed yet.
        """
        session = self._load(session_id)
        if not session.is_completed:
            raise InvalidStateError(
                f"Result is not available for a session that is {session.status.value}",
                {"session_id": session_id},
            )
        return build_session_report(session)

    def get_session(self, session_id: str) -> CATSession:
        """Snapshot of a session in any state."""
        return self._load(session_id)

    def get_history(
        self, subject_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> List[SessionReport]:
        """Reports of a subject's completed sessions, newest first."""
        if limit < 1:
            raise InvalidInputError("History limit must be positive", {"limit": limit})
        return [
            build_session_report(session)
            for session in self.sessions.list_for_subject(subject_id, limit)
        ]

    def _resolve_config(
        self, config: Optional[Union[ExamConfig, Mapping[str, Any]]]
    ) -> ExamConfig:
        if config is None:
            return self.config
        if isinstance(config, ExamConfig):
            return config
        try:
            return self.config.with_overrides(dict(config))
        except ValidationError as e:
            raise InvalidInputError(
                "Invalid exam configuration", {"errors": e.error_count()}
            ) from e

    def _load(self, session_id: str) -> CATSession:
        session = self.sessions.load(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _eligible_pool(
        self, exclude_ids: Iterable[str] = (), session_id: Optional[str] = None
    ) -> List[CalibratedItem]:
        # An adapter reporting exhaustion yields an empty pool, which the
        # manager turns into a no_items_available stop
        try:
            return self.items.eligible_items(exclude_ids, active_only=True)
        except ExhaustedError as e:
            logger.info(f"Item bank exhausted (session_id={session_id}): {e}")
            return []

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock
