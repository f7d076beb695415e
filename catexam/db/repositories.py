"""
SQLAlchemy-backed item repository and session store.

Both classes take a session factory (``sessionmaker``) and open a short-lived
database session per call. Writes are wrapped in ``handle_db_error`` so a
failure rolls back and leaves the previously stored state intact.

Usage:
    from catexam.models import SessionLocal

    items = SqlItemRepository(SessionLocal)
    sessions = SqlSessionStore(SessionLocal)
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload, sessionmaker

from catexam.core.cat.content_balancing import CategoryTally
from catexam.core.cat.engine import CATSession, ItemResponse, SessionStatus
from catexam.core.cat.exam_config import ExamConfig
from catexam.core.cat.exceptions import ItemNotFoundError
from catexam.core.cat.irt import IRTParams
from catexam.core.cat.stopping_rules import ExamResult, StopReason
from catexam.core.cat.storage import CalibratedItem
from catexam.core.db_error_handling import handle_db_error
from catexam.models.models import CATItem, CATResponseRecord, CATSessionRecord

logger = logging.getLogger(__name__)


def item_from_record(record: CATItem) -> CalibratedItem:
    return CalibratedItem(
        id=record.id,
        category=record.category,
        params=IRTParams(
            a=record.irt_discrimination,
            b=record.irt_difficulty,
            c=record.irt_guessing,
        ),
        correct_answers=tuple(record.correct_answers or ()),
        item_type=record.item_type,
        explanation=record.explanation,
        is_active=record.is_active,
        times_administered=record.times_administered,
        times_correct=record.times_correct,
    )


class SqlItemRepository:
    """Item bank stored in the ``cat_items`` table."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def add(self, item: CalibratedItem) -> None:
        """Insert or replace an item (bank loading and tests)."""
        with self._session_factory() as db:
            with handle_db_error(db, "store item"):
                db.merge(
                    CATItem(
                        id=item.id,
                        category=item.category,
                        item_type=item.item_type,
                        correct_answers=list(item.correct_answers),
                        explanation=item.explanation,
                        irt_discrimination=item.params.a,
                        irt_difficulty=item.params.b,
                        irt_guessing=item.params.c,
                        is_active=item.is_active,
                        times_administered=item.times_administered,
                        times_correct=item.times_correct,
                    )
                )
                db.commit()

    def eligible_items(
        self, exclude_ids: Iterable[str], active_only: bool = True
    ) -> List[CalibratedItem]:
        excluded = list(set(exclude_ids))
        query = select(CATItem)
        if excluded:
            query = query.where(CATItem.id.not_in(excluded))
        if active_only:
            query = query.where(CATItem.is_active.is_(True))
        with self._session_factory() as db:
            return [item_from_record(r) for r in db.scalars(query).all()]

    def get_item(self, item_id: str) -> Optional[CalibratedItem]:
        with self._session_factory() as db:
            record = db.get(CATItem, item_id)
            return item_from_record(record) if record is not None else None

    def increment_exposure(self, item_id: str, was_correct: bool) -> None:
        """Atomically bump the exposure counters (single UPDATE statement)."""
        values = {"times_administered": CATItem.times_administered + 1}
        if was_correct:
            values["times_correct"] = CATItem.times_correct + 1

        with self._session_factory() as db:
            with handle_db_error(db, "update item exposure"):
                result = db.execute(
                    update(CATItem).where(CATItem.id == item_id).values(**values)
                )
                if result.rowcount == 0:
                    raise ItemNotFoundError(item_id)
                db.commit()


class SqlSessionStore:
    """Exam sessions stored in ``cat_sessions`` / ``cat_responses``.

    Responses are append-only: ``save`` inserts the responses the stored copy
    does not have yet and updates the session row in the same transaction.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def load(self, session_id: str) -> Optional[CATSession]:
        with self._session_factory() as db:
            record = self._get_record(db, session_id)
            return self._to_session(record) if record is not None else None

    def save(self, session: CATSession) -> None:
        with self._session_factory() as db:
            with handle_db_error(db, "save exam session"):
                record = self._get_record(db, session.session_id)
                if record is None:
                    record = CATSessionRecord(
                        public_id=session.session_id,
                        subject_id=session.subject_id,
                    )
                    db.add(record)

                self._apply(record, session)

                stored = len(record.responses)
                for position, response in enumerate(
                    session.responses[stored:], start=stored + 1
                ):
                    record.responses.append(self._to_response_record(position, response))

                db.commit()

    def find_active(self, subject_id: str) -> Optional[CATSession]:
        query = (
            select(CATSessionRecord)
            .options(selectinload(CATSessionRecord.responses))
            .where(
                CATSessionRecord.subject_id == subject_id,
                CATSessionRecord.status == SessionStatus.IN_PROGRESS,
            )
            .order_by(CATSessionRecord.id.desc())
            .limit(1)
        )
        with self._session_factory() as db:
            record = db.scalars(query).first()
            return self._to_session(record) if record is not None else None

    def list_for_subject(self, subject_id: str, limit: int) -> List[CATSession]:
        """Completed sessions of a subject, newest first."""
        query = (
            select(CATSessionRecord)
            .options(selectinload(CATSessionRecord.responses))
            .where(
                CATSessionRecord.subject_id == subject_id,
                CATSessionRecord.status == SessionStatus.COMPLETED,
            )
            .order_by(CATSessionRecord.id.desc())
            .limit(limit)
        )
        with self._session_factory() as db:
            return [self._to_session(r) for r in db.scalars(query).all()]

    def _get_record(self, db: Session, session_id: str) -> Optional[CATSessionRecord]:
        query = (
            select(CATSessionRecord)
            .options(selectinload(CATSessionRecord.responses))
            .where(CATSessionRecord.public_id == session_id)
        )
        return db.scalars(query).first()

    @staticmethod
    def _apply(record: CATSessionRecord, session: CATSession) -> None:
        if (
            session.status == SessionStatus.COMPLETED
            and record.status != SessionStatus.COMPLETED
        ):
            record.completed_at = datetime.now(timezone.utc)
        record.status = session.status
        record.theta = session.theta
        record.se = session.se
        record.ci_lower = session.ci_lower
        record.ci_upper = session.ci_upper
        record.passing_probability = session.passing_probability
        record.time_spent = session.time_spent
        record.current_item_id = session.current_item_id
        record.stop_reason = session.stop_reason.value if session.stop_reason else None
        record.result = session.result.value if session.result else None
        record.config = session.config.model_dump(mode="json")
        record.category_tally = {
            category: {"correct": tally.correct, "total": tally.total}
            for category, tally in session.category_tally.items()
        }
        record.theta_history = list(session.theta_history)

    @staticmethod
    def _to_response_record(position: int, response: ItemResponse) -> CATResponseRecord:
        return CATResponseRecord(
            position=position,
            item_id=response.item_id,
            category=response.category,
            answer=list(response.answer),
            is_correct=response.is_correct,
            partial_credit=response.partial_credit,
            time_spent=response.time_spent,
            theta_after=response.theta_after,
            se_after=response.se_after,
            irt_discrimination=response.params.a,
            irt_difficulty=response.params.b,
            irt_guessing=response.params.c,
        )

    @staticmethod
    def _to_session(record: CATSessionRecord) -> CATSession:
        tally: Dict[str, CategoryTally] = {
            category: CategoryTally(correct=counts["correct"], total=counts["total"])
            for category, counts in (record.category_tally or {}).items()
        }
        responses = [
            ItemResponse(
                item_id=r.item_id,
                is_correct=r.is_correct,
                time_spent=r.time_spent,
                theta_after=r.theta_after,
                se_after=r.se_after,
                params=IRTParams(
                    a=r.irt_discrimination, b=r.irt_difficulty, c=r.irt_guessing
                ),
                category=r.category,
                answer=tuple(r.answer or ()),
                partial_credit=r.partial_credit,
            )
            for r in record.responses
        ]
        return CATSession(
            session_id=record.public_id,
            subject_id=record.subject_id,
            config=ExamConfig.model_validate(record.config),
            status=record.status,
            theta=record.theta,
            se=record.se,
            ci_lower=record.ci_lower,
            ci_upper=record.ci_upper,
            passing_probability=record.passing_probability,
            time_spent=record.time_spent,
            responses=responses,
            category_tally=tally,
            current_item_id=record.current_item_id,
            stop_reason=StopReason(record.stop_reason) if record.stop_reason else None,
            result=ExamResult(record.result) if record.result else None,
            theta_history=list(record.theta_history or []),
        )
