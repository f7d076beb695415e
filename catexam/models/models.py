"""
Database models for the adaptive exam engine.
"""
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from catexam.core.cat.engine import SessionStatus

from .base import Base


class CATItem(Base):
    """Calibrated item of the exam bank."""

    __tablename__ = "cat_items"

    id = Column(String(64), primary_key=True)
    category = Column(String(100), nullable=False, index=True)
    item_type = Column(String(50), nullable=False, default="multiple_choice")
    stem = Column(Text, nullable=True)  # Display text; not used by the engine
    options = Column(JSON, nullable=True)  # Display options; not used by the engine
    correct_answers = Column(JSON, nullable=False)  # Ordered list of option ids
    explanation = Column(Text, nullable=True)

    # 3PL parameters
    irt_discrimination = Column(Float, nullable=False)
    irt_difficulty = Column(Float, nullable=False)
    irt_guessing = Column(Float, nullable=False, default=0.0)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Exposure counters, only ever changed with atomic UPDATE ... SET n = n + 1
    times_administered = Column(Integer, default=0, nullable=False)
    times_correct = Column(Integer, default=0, nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "irt_discrimination >= 0.5 AND irt_discrimination <= 2.5",
            name="ck_cat_items_discrimination_range",
        ),
        CheckConstraint(
            "irt_difficulty >= -3 AND irt_difficulty <= 3",
            name="ck_cat_items_difficulty_range",
        ),
        CheckConstraint(
            "irt_guessing >= 0 AND irt_guessing < 0.35",
            name="ck_cat_items_guessing_range",
        ),
    )


class CATSessionRecord(Base):
    """Persisted adaptive exam session."""

    __tablename__ = "cat_sessions"

    # Surrogate key keeps creation order; public_id is the id clients see
    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(32), nullable=False, unique=True, index=True)
    subject_id = Column(String(255), nullable=False, index=True)
    status = Column(
        Enum(SessionStatus), default=SessionStatus.NOT_STARTED, nullable=False
    )

    theta = Column(Float, nullable=False, default=0.0)
    se = Column(Float, nullable=False, default=1.0)
    ci_lower = Column(Float, nullable=False)
    ci_upper = Column(Float, nullable=False)
    passing_probability = Column(Float, nullable=False)
    time_spent = Column(Float, nullable=False, default=0.0)

    current_item_id = Column(String(64), nullable=True)
    stop_reason = Column(String(50), nullable=True)
    result = Column(String(20), nullable=True)

    config = Column(JSON, nullable=False)  # ExamConfig snapshot
    category_tally = Column(JSON, nullable=False)  # {category: {correct, total}}
    theta_history = Column(JSON, nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)

    responses = relationship(
        "CATResponseRecord",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="CATResponseRecord.position",
    )

    __table_args__ = (Index("ix_cat_sessions_subject_status", "subject_id", "status"),)


class CATResponseRecord(Base):
    """One answered item of a session, with the item parameters at answer time."""

    __tablename__ = "cat_responses"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(
        Integer,
        ForeignKey("cat_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False)  # 1-based question number
    item_id = Column(
        String(64), ForeignKey("cat_items.id"), nullable=False, index=True
    )
    category = Column(String(100), nullable=False)
    answer = Column(JSON, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    partial_credit = Column(Float, nullable=False, default=0.0)
    time_spent = Column(Float, nullable=False)
    theta_after = Column(Float, nullable=False)
    se_after = Column(Float, nullable=False)
    irt_discrimination = Column(Float, nullable=False)
    irt_difficulty = Column(Float, nullable=False)
    irt_guessing = Column(Float, nullable=False)
    answered_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    session = relationship("CATSessionRecord", back_populates="responses")

    __table_args__ = (
        UniqueConstraint("session_id", "position", name="uq_cat_responses_position"),
        UniqueConstraint("session_id", "item_id", name="uq_cat_responses_item"),
    )
