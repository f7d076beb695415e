"""
Database base configuration for SQLAlchemy models.

This module uses SQLAlchemy 2.0 style with DeclarativeBase. The engine and
session factory are built from ``settings.DATABASE_URL``; ``make_engine`` is
exposed so tests and scripts can bind to another database.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from catexam.core.config import settings


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a sync engine for the given URL.

    SQLite connections are shared across threads (the service serializes
    writes per session); in-memory SQLite uses a single static connection so
    every session sees the same database.
    """
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True  # Verify connections are alive before using them
    return create_engine(database_url, **kwargs)


engine = make_engine(settings.DATABASE_URL, echo=settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """
    SQLAlchemy 2.0 declarative base class with type annotation support.
    """

    pass
