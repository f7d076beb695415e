"""
Pytest configuration and shared fixtures for testing.
"""
from contextlib import asynccontextmanager
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from catexam.api.v1.cat import get_exam_service
from catexam.core.cat.exam_config import ExamConfig
from catexam.core.cat.irt import IRTParams
from catexam.core.cat.service import CATExamService
from catexam.core.cat.storage import (
    CalibratedItem,
    InMemoryItemRepository,
    InMemorySessionStore,
)
from catexam.main import app
from catexam.models import Base, make_engine

DEFAULT_CATEGORY = "management_of_care"


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests (skips schema creation on the configured database)."""
    yield


app.router.lifespan_context = _test_lifespan


def _make_item(
    item_id: str,
    a: float = 1.0,
    b: float = 0.0,
    c: float = 0.2,
    category: str = DEFAULT_CATEGORY,
    item_type: str = "multiple_choice",
    correct_answers: tuple = ("A",),
    **kwargs,
) -> CalibratedItem:
    return CalibratedItem(
        id=item_id,
        category=category,
        params=IRTParams(a=a, b=b, c=c),
        correct_answers=correct_answers,
        item_type=item_type,
        explanation=kwargs.pop("explanation", f"Rationale for {item_id}"),
        **kwargs,
    )


@pytest.fixture
def make_item() -> Callable[..., CalibratedItem]:
    """Factory for calibrated items (defaults: a=1, b=0, c=0.2, key 'A')."""
    return _make_item


@pytest.fixture
def three_item_bank() -> list:
    """Reference bank: {1.0, 0, .2}, {1.2, 1.0, .2}, {0.8, -1.0, .2}.

    At theta=0 the information ranking is i3 > i1 > i2.
    """
    return [
        _make_item("i1", a=1.0, b=0.0, c=0.2),
        _make_item("i2", a=1.2, b=1.0, c=0.2),
        _make_item("i3", a=0.8, b=-1.0, c=0.2),
    ]


@pytest.fixture
def exam_config() -> ExamConfig:
    """Short exam: confidence stop allowed from 5 items, hard stop at 10."""
    return ExamConfig(min_questions=5, max_questions=10, time_limit_seconds=3600)


@pytest.fixture
def item_repository(three_item_bank) -> InMemoryItemRepository:
    return InMemoryItemRepository(three_item_bank)


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def exam_service(item_repository, session_store, exam_config) -> CATExamService:
    return CATExamService(
        item_repository=item_repository,
        session_store=session_store,
        config=exam_config,
    )


@pytest.fixture
def sql_session_factory() -> Generator[sessionmaker, None, None]:
    """Fresh in-memory SQLite database per test."""
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(exam_service) -> Generator[TestClient, None, None]:
    """Test client wired to the in-memory exam service."""
    app.dependency_overrides[get_exam_service] = lambda: exam_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
