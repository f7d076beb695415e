"""
SQL persistence adapters for the exam engine.
"""
from .repositories import SqlItemRepository, SqlSessionStore

__all__ = ["SqlItemRepository", "SqlSessionStore"]
