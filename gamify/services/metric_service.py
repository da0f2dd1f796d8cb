"""
gamify.services.metric_service — Game Metrics & User Metric Values
===================================================================

CRUD for metric definitions (``game_metrics``) and the per-user counters
(``user_game_metrics``).  Counters are normally created and moved by the
metric trigger; the user-metric functions here are for administration
(seeding, correcting, resetting).

Deleting a metric removes everything keyed on it in the same transaction:
user counters, rules, achievements and their unlock entries.  PostgreSQL
would cascade these through the foreign keys anyway; doing it explicitly
keeps SQLite (tests, local dev) consistent.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select

from gamify.database.engine import get_session
from gamify.database.models import (
    GameMetric,
    GameMetricType,
    MetricAchievement,
    Rule,
    UserAchievementEntry,
    UserGameMetric,
)
from gamify.errors import NotFoundError, ValidationError
from gamify.services.crud import apply_changes, create_row, get_or_raise

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _validated_type(metric_type: str) -> str:
    try:
        return GameMetricType(metric_type).value
    except ValueError:
        allowed = ", ".join(t.value for t in GameMetricType)
        raise ValidationError(
            f"Unknown metric type {metric_type!r}; expected one of: {allowed}"
        ) from None


# ---------------------------------------------------------------------------
# Game metrics
# ---------------------------------------------------------------------------
def create_metric(
    engine: Engine,
    *,
    name: str,
    units: str,
    description: str | None = None,
    type: str = GameMetricType.NUMBER.value,
    default_increment_value: float = 1,
) -> GameMetric:
    with get_session(engine) as session:
        return create_row(session, GameMetric(
            name=name,
            description=description,
            type=_validated_type(type),
            units=units,
            default_increment_value=default_increment_value,
        ))


def get_metric(engine: Engine, metric_id: int) -> GameMetric:
    with get_session(engine) as session:
        return get_or_raise(session, GameMetric, metric_id, "Metric")


def list_metrics(engine: Engine) -> list[GameMetric]:
    with get_session(engine) as session:
        return list(session.scalars(select(GameMetric).order_by(GameMetric.id)).all())


def update_metric(engine: Engine, metric_id: int, **changes: Any) -> GameMetric:
    if "type" in changes:
        changes["type"] = _validated_type(changes["type"])
    with get_session(engine) as session:
        metric = get_or_raise(session, GameMetric, metric_id, "Metric")
        applied = apply_changes(metric, changes)
        session.flush()
        session.refresh(metric)
        logger.info("Updated metric %d: %s", metric.id, ", ".join(applied) or "no changes")
        return metric


def delete_metric(engine: Engine, metric_id: int) -> int:
    """Delete a metric and everything keyed on it.

    Returns the number of user counters removed.
    """
    with get_session(engine) as session:
        metric = get_or_raise(session, GameMetric, metric_id, "Metric")

        achievement_ids = select(MetricAchievement.id).where(
            MetricAchievement.metric_id == metric_id
        )
        session.execute(
            delete(UserAchievementEntry).where(
                UserAchievementEntry.achievement_id.in_(achievement_ids)
            )
        )
        achievements = session.execute(
            delete(MetricAchievement).where(MetricAchievement.metric_id == metric_id)
        ).rowcount or 0
        rules = session.execute(
            delete(Rule).where(Rule.metric_id == metric_id)
        ).rowcount or 0
        counters = session.execute(
            delete(UserGameMetric).where(UserGameMetric.metric_id == metric_id)
        ).rowcount or 0
        session.delete(metric)

    logger.info(
        "Deleted metric %d with %d user counter(s), %d rule(s), %d achievement(s)",
        metric_id, counters, rules, achievements,
    )
    return counters


# ---------------------------------------------------------------------------
# User metric values
# ---------------------------------------------------------------------------
def create_user_metric(
    engine: Engine, *, user_id: str, metric_id: int, value: float = 0,
) -> UserGameMetric:
    """Create a counter for ``(user_id, metric_id)``.

    Raises :class:`ConflictError` (via the session) if the pair exists.
    """
    with get_session(engine) as session:
        get_or_raise(session, GameMetric, metric_id, "Metric")
        return create_row(session, UserGameMetric(
            user_id=user_id,
            metric_id=metric_id,
            value=value,
            last_updated=datetime.now(UTC),
        ))


def list_user_metrics(engine: Engine, user_id: str) -> list[UserGameMetric]:
    """All counters of *user_id*.  Raises :class:`NotFoundError` if there are none."""
    with get_session(engine) as session:
        rows = list(session.scalars(
            select(UserGameMetric)
            .where(UserGameMetric.user_id == user_id)
            .order_by(UserGameMetric.metric_id)
        ).all())
    if not rows:
        raise NotFoundError(f"No metrics found for user {user_id}")
    return rows


def update_user_metric(engine: Engine, user_metric_id: int, value: float) -> UserGameMetric:
    """Overwrite a counter's value."""
    with get_session(engine) as session:
        row = get_or_raise(session, UserGameMetric, user_metric_id, "User metric")
        row.value = value
        row.last_updated = datetime.now(UTC)
        session.flush()
        logger.info("Set user metric %d (user %s) to %s", row.id, row.user_id, value)
        return row


def delete_user_metric(engine: Engine, user_metric_id: int) -> None:
    with get_session(engine) as session:
        row = get_or_raise(session, UserGameMetric, user_metric_id, "User metric")
        session.delete(row)
    logger.info("Deleted user metric %d", user_metric_id)
