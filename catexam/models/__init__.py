"""
Models package for catexam.
"""
from .base import Base, engine, SessionLocal, make_engine
from .models import CATItem, CATSessionRecord, CATResponseRecord

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "make_engine",
    "CATItem",
    "CATSessionRecord",
    "CATResponseRecord",
]
