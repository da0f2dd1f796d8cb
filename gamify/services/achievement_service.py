"""
gamify.services.achievement_service — Achievements & User Unlocks
==================================================================

CRUD for metric-threshold achievements, plus reading and pruning the
achievements a user has unlocked.  Unlocks are written by the metric
trigger, never here.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select

from gamify.database.engine import get_session
from gamify.database.models import (
    AchievementTrigger,
    GameMetric,
    MetricAchievement,
    UserAchievementEntry,
    UserGameAchievement,
)
from gamify.engine.events import UnlockedAchievement
from gamify.errors import NotFoundError
from gamify.services.crud import apply_changes, create_row, get_or_raise

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Achievement definitions
# ---------------------------------------------------------------------------
def create_achievement(
    engine: Engine,
    *,
    name: str,
    description: str,
    badge_url: str,
    metric_id: int,
    metric_count: float,
) -> MetricAchievement:
    with get_session(engine) as session:
        get_or_raise(session, GameMetric, metric_id, "Metric")
        return create_row(session, MetricAchievement(
            name=name,
            description=description,
            badge_url=badge_url,
            trigger=AchievementTrigger.METRIC.value,
            metric_id=metric_id,
            metric_count=metric_count,
        ))


def get_achievement(engine: Engine, achievement_id: int) -> MetricAchievement:
    with get_session(engine) as session:
        return get_or_raise(session, MetricAchievement, achievement_id, "Achievement")


def list_achievements(engine: Engine, metric_id: int | None = None) -> list[MetricAchievement]:
    """All achievements, or only those on *metric_id*, lowest threshold first."""
    stmt = select(MetricAchievement).order_by(
        MetricAchievement.metric_id, MetricAchievement.metric_count, MetricAchievement.id
    )
    if metric_id is not None:
        stmt = stmt.where(MetricAchievement.metric_id == metric_id)
    with get_session(engine) as session:
        return list(session.scalars(stmt).all())


def update_achievement(engine: Engine, achievement_id: int, **changes: Any) -> MetricAchievement:
    with get_session(engine) as session:
        achievement = get_or_raise(session, MetricAchievement, achievement_id, "Achievement")
        if "metric_id" in changes:
            get_or_raise(session, GameMetric, changes["metric_id"], "Metric")
        applied = apply_changes(achievement, changes, frozen_keys=("id", "created_at", "trigger"))
        session.flush()
        logger.info(
            "Updated achievement %d: %s", achievement.id, ", ".join(applied) or "no changes"
        )
        return achievement


def delete_achievement(engine: Engine, achievement_id: int) -> int:
    """Delete an achievement and every user's unlock of it.

    Returns the number of unlock entries removed.
    """
    with get_session(engine) as session:
        achievement = get_or_raise(session, MetricAchievement, achievement_id, "Achievement")
        removed = session.execute(
            delete(UserAchievementEntry).where(
                UserAchievementEntry.achievement_id == achievement_id
            )
        ).rowcount or 0
        session.delete(achievement)
    logger.info("Deleted achievement %d with %d unlock(s)", achievement_id, removed)
    return removed


# ---------------------------------------------------------------------------
# User unlocks
# ---------------------------------------------------------------------------
def get_user_achievements(engine: Engine, user_id: str) -> list[UnlockedAchievement]:
    """Achievements unlocked by *user_id*, oldest unlock first.

    Raises
    ------
    NotFoundError
        The user has no achievement record.
    """
    with get_session(engine) as session:
        record = session.scalar(
            select(UserGameAchievement).where(UserGameAchievement.user_id == user_id)
        )
        if record is None:
            raise NotFoundError(f"No achievements found for user {user_id}")
        rows = session.execute(
            select(UserAchievementEntry, MetricAchievement)
            .join(MetricAchievement, UserAchievementEntry.achievement_id == MetricAchievement.id)
            .where(UserAchievementEntry.record_id == record.id)
            .order_by(UserAchievementEntry.unlocked_at, MetricAchievement.id)
        ).all()
        return [
            UnlockedAchievement(
                achievement_id=achievement.id,
                name=achievement.name,
                description=achievement.description,
                badge_url=achievement.badge_url,
                unlocked_at=entry.unlocked_at,
            )
            for entry, achievement in rows
        ]


def remove_user_achievement(engine: Engine, user_id: str, achievement_id: int) -> None:
    """Take one achievement away from a user.

    Raises
    ------
    NotFoundError
        The user has no record, or does not hold the achievement.
    """
    with get_session(engine) as session:
        record = session.scalar(
            select(UserGameAchievement).where(UserGameAchievement.user_id == user_id)
        )
        if record is None:
            raise NotFoundError(f"No achievements found for user {user_id}")
        entry = session.get(UserAchievementEntry, (record.id, achievement_id))
        if entry is None:
            raise NotFoundError(f"User {user_id} does not hold achievement {achievement_id}")
        session.delete(entry)
    logger.info("Removed achievement %d from user %s", achievement_id, user_id)
