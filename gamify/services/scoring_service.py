"""
gamify.services.scoring_service — Scoring Weights & Attempt Scoring
====================================================================

The scoring weights are one JSON row in the ``settings`` table
(``scoring.weights``), created with defaults on first read.  Scoring an
attempt reads the user's running total for the attempt's points metric,
applies :func:`~gamify.engine.scoring.calculate_score`, and credits the
points through the metric trigger with an explicit value, all in one
transaction.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from gamify.constants import SCORING_WEIGHTS_KEY
from gamify.database.engine import get_session
from gamify.database.models import GameMetric, Setting, UserGameMetric
from gamify.engine.events import MetricIncrement, MetricTrigger, MetricTriggerResponse
from gamify.engine.scoring import QuizAttempt, ScoreResult, ScoringWeights, calculate_score
from gamify.errors import ValidationError
from gamify.services.crud import get_or_raise

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from gamify.services.trigger_service import TriggerService

logger = logging.getLogger(__name__)


@dataclass
class ScoredAttempt:
    """A score plus whatever the metric trigger did with it."""

    score: ScoreResult
    trigger: MetricTriggerResponse = field(default_factory=MetricTriggerResponse)

    def to_dict(self) -> dict[str, Any]:
        return {**self.score.to_dict(), **self.trigger.to_dict()}


# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------
def _load_weights(session: Session) -> ScoringWeights:
    row = session.get(Setting, SCORING_WEIGHTS_KEY)
    if row is None:
        weights = ScoringWeights()
        session.add(Setting(
            key=SCORING_WEIGHTS_KEY,
            value_json=json.dumps(weights.to_dict()),
            category="scoring",
            description="Weights for the quiz attempt scoring formula",
        ))
        session.flush()
        logger.info("Created default scoring weights")
        return weights
    try:
        return ScoringWeights.from_dict(json.loads(row.value_json))
    except (json.JSONDecodeError, TypeError, ValueError):
        logger.warning("Stored scoring weights are unreadable; using defaults")
        return ScoringWeights()


def get_weights(engine: Engine) -> ScoringWeights:
    """Current weights, creating the default row if none exists."""
    with get_session(engine) as session:
        return _load_weights(session)


def update_weights(engine: Engine, **changes: float) -> ScoringWeights:
    """Merge *changes* into the stored weights and persist the result.

    Raises
    ------
    ValidationError
        A name in *changes* is not a weight.
    """
    with get_session(engine) as session:
        current = _load_weights(session)
        try:
            weights = current.merged(**changes)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        row = session.get(Setting, SCORING_WEIGHTS_KEY)
        row.value_json = json.dumps(weights.to_dict())
    logger.info("Scoring weights updated: %s", ", ".join(sorted(changes)) or "no changes")
    return weights


# ---------------------------------------------------------------------------
# Attempts
# ---------------------------------------------------------------------------
def score_attempt(
    engine: Engine, triggers: TriggerService, attempt: QuizAttempt,
) -> ScoredAttempt:
    """Score *attempt* and credit the points to ``attempt.metric_id``.

    Nothing is written when the attempt earns zero points.
    """
    with get_session(engine) as session:
        get_or_raise(session, GameMetric, attempt.metric_id, "Metric")
        weights = _load_weights(session)
        running_total = session.scalar(
            select(UserGameMetric.value).where(
                UserGameMetric.user_id == attempt.user_id,
                UserGameMetric.metric_id == attempt.metric_id,
            )
        ) or 0

        score = calculate_score(attempt, weights, running_total=running_total)
        logger.info(
            "Scored attempt for user %s (attempt #%d): +%d points",
            attempt.user_id, attempt.attempt_count, score.points_added,
        )
        if score.points_added <= 0:
            return ScoredAttempt(score=score)

        response = triggers.apply(
            session,
            MetricTrigger(
                user_id=attempt.user_id,
                metrics=[MetricIncrement(metric_id=attempt.metric_id, value=score.points_added)],
            ),
        )
        return ScoredAttempt(score=score, trigger=response)
