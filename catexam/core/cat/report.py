"""
Result reports for completed exam sessions.

A report is a pure function of the session: building it twice yields the
same output, and nothing is written back.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from catexam.core.cat.engine import CATSession
from catexam.core.cat.stopping_rules import ExamResult

# Category performance bands (percent correct)
ABOVE_STANDARD_PERCENT = 70
BELOW_STANDARD_PERCENT = 50

# Difficulty bands on the IRT b parameter
EASY_DIFFICULTY_MAX = -1.0
HARD_DIFFICULTY_MIN = 1.0

# NCLEX-RN client needs categories
CATEGORY_LABELS: Dict[str, str] = {
    "management_of_care": "Management of Care",
    "safety_infection_control": "Safety & Infection Control",
    "health_promotion": "Health Promotion & Maintenance",
    "psychosocial_integrity": "Psychosocial Integrity",
    "basic_care_comfort": "Basic Care & Comfort",
    "pharmacological_therapies": "Pharmacological Therapies",
    "reduction_of_risk": "Reduction of Risk Potential",
    "physiological_adaptation": "Physiological Adaptation",
}

FAIL_RECOMMENDATIONS = (
    "Schedule additional practice CAT sessions",
    "Review rationales for all missed questions",
    "Consider targeted content review in weak areas",
)
PASS_RECOMMENDATIONS = (
    "Continue regular practice to maintain readiness",
    "Focus on maintaining consistent study habits",
)
UNDETERMINED_RECOMMENDATIONS = (
    "Complete a full-length practice CAT session to obtain a pass/fail estimate",
)


@dataclass(frozen=True)
class CategoryPerformance:
    category: str
    label: str
    correct: int
    total: int
    percentage: int
    status: str  # "above" | "near" | "below"


@dataclass(frozen=True)
class DifficultyBand:
    answered: int = 0
    correct: int = 0


@dataclass(frozen=True)
class TimeAnalysis:
    total_seconds: float
    average_per_question: float
    fastest_question: float
    slowest_question: float


@dataclass(frozen=True)
class SessionReport:
    """Outcome and diagnostics of a completed session."""

    session_id: str
    subject_id: str
    result: Optional[ExamResult]
    passed: bool
    stop_reason: Optional[str]
    theta: float
    se: float
    confidence_interval: Tuple[float, float]
    passing_probability: float
    total_questions: int
    correct_answers: int
    score_percentage: float
    time_analysis: TimeAnalysis
    category_performance: List[CategoryPerformance] = field(default_factory=list)
    difficulty_breakdown: Dict[str, DifficultyBand] = field(default_factory=dict)
    strengths: List[str] = field(default_factory=list)
    areas_for_improvement: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def category_label(category: str) -> str:
    """Human-readable category name."""
    if category in CATEGORY_LABELS:
        return CATEGORY_LABELS[category]
    return category.replace("_", " ").title()


def category_status(percentage: float) -> str:
    if percentage >= ABOVE_STANDARD_PERCENT:
        return "above"
    if percentage < BELOW_STANDARD_PERCENT:
        return "below"
    return "near"


def difficulty_band(b: float) -> str:
    if b < EASY_DIFFICULTY_MAX:
        return "easy"
    if b > HARD_DIFFICULTY_MIN:
        return "hard"
    return "medium"


def build_session_report(session: CATSession) -> SessionReport:
    """
    Derive the result report of a session.

    Args:
        session: Session to report on (normally completed).

    Returns:
        SessionReport with category, difficulty and timing breakdowns.
    """
    categories = []
    for category in sorted(session.category_tally):
        tally = session.category_tally[category]
        categories.append(
            CategoryPerformance(
                category=category,
                label=category_label(category),
                correct=tally.correct,
                total=tally.total,
                percentage=round(tally.percentage),
                status=category_status(tally.percentage),
            )
        )

    bands = {"easy": [0, 0], "medium": [0, 0], "hard": [0, 0]}
    for response in session.responses:
        band = bands[difficulty_band(response.params.b)]
        band[0] += 1
        if response.is_correct:
            band[1] += 1
    difficulty_breakdown = {
        name: DifficultyBand(answered=answered, correct=correct)
        for name, (answered, correct) in bands.items()
    }

    times = [r.time_spent for r in session.responses]
    time_analysis = TimeAnalysis(
        total_seconds=session.time_spent,
        average_per_question=sum(times) / len(times) if times else 0.0,
        fastest_question=min(times) if times else 0.0,
        slowest_question=max(times) if times else 0.0,
    )

    strengths = [c.label for c in categories if c.status == "above"]
    areas_for_improvement = [c.label for c in categories if c.status == "below"]
    recommendations = [
        f"Focus additional study time on {label}" for label in areas_for_improvement
    ]
    if session.result == ExamResult.FAIL:
        recommendations.extend(FAIL_RECOMMENDATIONS)
    elif session.result == ExamResult.PASS:
        recommendations.extend(PASS_RECOMMENDATIONS)
    else:
        recommendations.extend(UNDETERMINED_RECOMMENDATIONS)

    answered = session.answered_count
    return SessionReport(
        session_id=session.session_id,
        subject_id=session.subject_id,
        result=session.result,
        passed=session.result == ExamResult.PASS,
        stop_reason=session.stop_reason.value if session.stop_reason else None,
        theta=session.theta,
        se=session.se,
        confidence_interval=session.confidence_interval,
        passing_probability=session.passing_probability,
        total_questions=answered,
        correct_answers=session.correct_count,
        score_percentage=(
            round(session.correct_count / answered * 100, 1) if answered else 0.0
        ),
        time_analysis=time_analysis,
        category_performance=categories,
        difficulty_breakdown=difficulty_breakdown,
        strengths=strengths,
        areas_for_improvement=areas_for_improvement,
        recommendations=recommendations,
    )
