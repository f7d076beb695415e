"""
Storage interfaces consumed by the exam service, plus in-memory adapters.

The service depends only on the two protocols below. ``InMemoryItemRepository``
and ``InMemorySessionStore`` are thread-safe reference implementations used
by tests and single-process deployments; ``catexam.db.repositories`` provides
the SQLAlchemy-backed versions.
"""

import copy
import threading
from dataclasses import dataclass, replace
from typing import (
    TYPE_CHECKING,
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    runtime_checkable,
)

from catexam.core.cat.answer_scoring import ItemType
from catexam.core.cat.exceptions import ItemNotFoundError
from catexam.core.cat.irt import IRTParams

if TYPE_CHECKING:
    from catexam.core.cat.engine import CATSession


@dataclass(frozen=True)
class CalibratedItem:
    """A bank item with calibrated 3PL parameters.

    Exposure counters are owned by the repository; the copy handed to the
    engine is a snapshot.
    """

    id: str
    category: str
    params: IRTParams
    correct_answers: Tuple[str, ...]
    item_type: str = ItemType.MULTIPLE_CHOICE.value
    explanation: Optional[str] = None
    is_active: bool = True
    times_administered: int = 0
    times_correct: int = 0


@runtime_checkable
class ItemRepository(Protocol):
    """Read access to the item bank plus atomic exposure counters.

    ``eligible_items`` may raise ``ExhaustedError`` instead of returning an
    empty list when the bank cannot serve a session; the exam service treats
    both the same way and stops the session with ``no_items_available``.
    """

    def eligible_items(
        self, exclude_ids: Iterable[str], active_only: bool = True
    ) -> List[CalibratedItem]:
        ...

    def get_item(self, item_id: str) -> Optional[CalibratedItem]:
        ...

    def increment_exposure(self, item_id: str, was_correct: bool) -> None:
        ...


@runtime_checkable
class SessionStore(Protocol):
    """Persistence for exam sessions.

    ``load`` returns an independent copy (or None for an unknown id), so a
    call that fails before ``save`` leaves the stored state untouched.
    """

    def load(self, session_id: str) -> Optional["CATSession"]:
        ...

    def save(self, session: "CATSession") -> None:
        ...

    def find_active(self, subject_id: str) -> Optional["CATSession"]:
        ...

    def list_for_subject(self, subject_id: str, limit: int) -> List["CATSession"]:
        ...


class InMemoryItemRepository:
    """Thread-safe in-memory item bank."""

    def __init__(self, items: Sequence[CalibratedItem] = ()):
        self._lock = threading.Lock()
        self._items: Dict[str, CalibratedItem] = {}
        for item in items:
            self.add(item)

    def add(self, item: CalibratedItem) -> None:
        with self._lock:
            self._items[item.id] = item

    def eligible_items(
        self, exclude_ids: Iterable[str], active_only: bool = True
    ) -> List[CalibratedItem]:
        excluded = set(exclude_ids)
        with self._lock:
            return [
                item
                for item in self._items.values()
                if item.id not in excluded and (item.is_active or not active_only)
            ]

    def get_item(self, item_id: str) -> Optional[CalibratedItem]:
        with self._lock:
            return self._items.get(item_id)

    def increment_exposure(self, item_id: str, was_correct: bool) -> None:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                raise ItemNotFoundError(item_id)
            self._items[item_id] = replace(
                item,
                times_administered=item.times_administered + 1,
                times_correct=item.times_correct + (1 if was_correct else 0),
            )


class InMemorySessionStore:
    """Thread-safe in-memory session store holding deep copies."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # Insertion order doubles as creation order for history listings
        self._sessions: Dict[str, "CATSession"] = {}

    def load(self, session_id: str) -> Optional["CATSession"]:
        with self._lock:
            session = self._sessions.get(session_id)
            return copy.deepcopy(session) if session is not None else None

    def save(self, session: "CATSession") -> None:
        with self._lock:
            self._sessions[session.session_id] = copy.deepcopy(session)

    def find_active(self, subject_id: str) -> Optional["CATSession"]:
        with self._lock:
            for session in self._sessions.values():
                if session.subject_id == subject_id and session.is_active:
                    return copy.deepcopy(session)
        return None

    def list_for_subject(self, subject_id: str, limit: int) -> List["CATSession"]:
        """Completed sessions of a subject, newest first."""
        with self._lock:
            matches = [
                session
                for session in reversed(list(self._sessions.values()))
                if session.subject_id == subject_id and session.is_completed
            ]
            return [copy.deepcopy(s) for s in matches[:limit]]
