"""
gamify.engine.scoring — Quiz Attempt Scoring
=============================================

Pure calculation of the points a quiz attempt earns.  The weights are data
(stored in the ``settings`` table and editable through the API); this
module only applies them.

Formula::

    confidence = Σ ±high  (confidence >= 3, correct / wrong)
               + Σ ±low   (confidence <  3, correct / wrong)
    bonus      = confidence
               + hint_count * hint_penalty
               + streaks * streak_bonus
               + (ideal_time - time_taken) * time_weight
               + (attempt_count - 1) * attempt_penalty

    first attempt:  points_added = max(0, floor(base_points + bonus))
    retries:        points_added = max(0, floor(bonus))

This module is pure calculation — no database I/O.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any

from gamify.constants import DEFAULT_SCORING_WEIGHTS, HIGH_CONFIDENCE_THRESHOLD

__all__ = [
    "QuestionGrade",
    "QuizAttempt",
    "ScoreBreakdown",
    "ScoreResult",
    "ScoringWeights",
    "calculate_confidence_score",
    "calculate_score",
]


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    high_weight: float = DEFAULT_SCORING_WEIGHTS["high_weight"]
    low_weight: float = DEFAULT_SCORING_WEIGHTS["low_weight"]
    hint_penalty: float = DEFAULT_SCORING_WEIGHTS["hint_penalty"]
    streak_bonus: float = DEFAULT_SCORING_WEIGHTS["streak_bonus"]
    time_weight: float = DEFAULT_SCORING_WEIGHTS["time_weight"]
    attempt_penalty: float = DEFAULT_SCORING_WEIGHTS["attempt_penalty"]

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ScoringWeights:
        """Build from a stored mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: float(v) for k, v in raw.items() if k in known})

    def merged(self, **changes: float) -> ScoringWeights:
        """Return a copy with *changes* applied.  Unknown names raise."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown scoring weight(s): {', '.join(sorted(unknown))}")
        return replace(self, **{k: float(v) for k, v in changes.items()})

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class QuestionGrade:
    """One graded question: self-reported confidence (1..5) and correctness."""

    confidence: int
    correct: bool
    question_id: str | None = None


@dataclass(frozen=True, slots=True)
class QuizAttempt:
    """Everything needed to score one attempt.

    ``metric_id`` names the points metric the score is credited to.
    """

    user_id: str
    metric_id: int
    grades: list[QuestionGrade] = field(default_factory=list)
    base_points: float = 0
    hint_count: int = 0
    streaks: int = 0
    time_taken: float = 0
    ideal_time: float = 0
    attempt_count: int = 1
    quiz_id: str | None = None
    attempt_id: str | None = None

    @property
    def is_first_attempt(self) -> bool:
        return self.attempt_count <= 1


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    base_points: float
    confidence_score: float
    total_hint_penalty: float
    streak_bonus_total: float
    time_bonus: float
    total_attempt_penalty: float

    @property
    def bonus(self) -> float:
        return (
            self.confidence_score
            + self.total_hint_penalty
            + self.streak_bonus_total
            + self.time_bonus
            + self.total_attempt_penalty
        )


@dataclass
class ScoreResult:
    """Final scoring output."""

    points_added: int
    total_score: float
    breakdown: ScoreBreakdown

    def to_dict(self) -> dict[str, Any]:
        return {
            "points_added": self.points_added,
            "total_score": self.total_score,
            "breakdown": asdict(self.breakdown),
        }


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------
def calculate_confidence_score(
    grades: Iterable[QuestionGrade], weights: ScoringWeights,
) -> float:
    """Reward confident correct answers and penalise confident wrong ones.

    High-confidence answers (>= 3) swing by ``high_weight``, the rest by
    ``low_weight``.
    """
    score: float = 0
    for grade in grades:
        weight = (
            weights.high_weight
            if grade.confidence >= HIGH_CONFIDENCE_THRESHOLD
            else weights.low_weight
        )
        score += weight if grade.correct else -weight
    return score


def calculate_score(
    attempt: QuizAttempt,
    weights: ScoringWeights | None = None,
    *,
    running_total: float = 0,
) -> ScoreResult:
    """Score *attempt* and add the result to *running_total*.

    Base points are only granted on the first attempt; retries earn the
    bonus alone.  Points never go negative.
    """
    weights = weights or ScoringWeights()

    breakdown = ScoreBreakdown(
        base_points=attempt.base_points,
        confidence_score=calculate_confidence_score(attempt.grades, weights),
        total_hint_penalty=attempt.hint_count * weights.hint_penalty,
        streak_bonus_total=attempt.streaks * weights.streak_bonus,
        time_bonus=(attempt.ideal_time - attempt.time_taken) * weights.time_weight,
        total_attempt_penalty=(attempt.attempt_count - 1) * weights.attempt_penalty,
    )

    raw = breakdown.bonus
    if attempt.is_first_attempt:
        raw += attempt.base_points

    points_added = max(0, math.floor(raw))
    return ScoreResult(
        points_added=points_added,
        total_score=running_total + points_added,
        breakdown=breakdown,
    )
