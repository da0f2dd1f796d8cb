"""
gamify.services.trigger_service — Rule Evaluation & Metric Trigger Engine
==========================================================================

The two write paths of the engine:

* :meth:`TriggerService.event_trigger` validates an event payload against
  the event's schema, evaluates every rule attached to the event, and hands
  the matching metrics to the metric trigger.
* :meth:`TriggerService.metric_trigger` increments metrics for a user,
  re-reads the new values, and records every achievement whose threshold
  the new values meet.

Everything for one trigger happens inside one session, i.e. one
transaction: the bulk increment, the re-read, the qualification check and
the unlock writes commit together or roll back together.  Increments are
``INSERT ... ON CONFLICT DO UPDATE`` on the ``(user_id, metric_id)`` unique
constraint, so concurrent triggers for the same user never lose an update.
"""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, bindparam, select, text
from sqlalchemy.orm import Session

from gamify.constants import REPORT_QUALIFYING, UNLOCK_REPORT_MODES
from gamify.database.engine import get_session
from gamify.database.models import (
    Event,
    GameMetric,
    MetricAchievement,
    Rule,
    UserAchievementEntry,
    UserGameAchievement,
    UserGameMetric,
)
from gamify.engine.achievements import qualifying_achievements, select_reported
from gamify.engine.events import (
    EventTrigger,
    MetricIncrement,
    MetricTrigger,
    MetricTriggerResponse,
    UnlockedAchievement,
    UpdatedMetric,
)
from gamify.engine.logic import JsonLogicEvaluator, LogicEvaluator
from gamify.engine.metrics import duplicate_metric_ids, resolve_increments
from gamify.engine.schema import check_payload
from gamify.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Raw upserts (ON CONFLICT is understood by both PostgreSQL and SQLite)
# ---------------------------------------------------------------------------
_INCREMENT_METRIC = text("""
    INSERT INTO user_game_metrics (user_id, metric_id, value, last_updated)
    VALUES (:user_id, :metric_id, :amount, :now)
    ON CONFLICT (user_id, metric_id)
    DO UPDATE SET value = user_game_metrics.value + excluded.value,
                  last_updated = excluded.last_updated
""").bindparams(bindparam("now", type_=DateTime(timezone=True)))

_ENSURE_ACHIEVEMENT_RECORD = text("""
    INSERT INTO user_game_achievements (user_id, created_at)
    VALUES (:user_id, :now)
    ON CONFLICT (user_id) DO NOTHING
""").bindparams(bindparam("now", type_=DateTime(timezone=True)))

_ADD_ACHIEVEMENT_ENTRY = text("""
    INSERT INTO user_game_achievement_entries (record_id, achievement_id, unlocked_at)
    VALUES (:record_id, :achievement_id, :now)
    ON CONFLICT (record_id, achievement_id) DO NOTHING
""").bindparams(bindparam("now", type_=DateTime(timezone=True)))


def held_achievement_ids(session: Session, user_id: str) -> set[int]:
    """Achievement ids already recorded for *user_id*."""
    rows = session.scalars(
        select(UserAchievementEntry.achievement_id)
        .join(UserGameAchievement, UserAchievementEntry.record_id == UserGameAchievement.id)
        .where(UserGameAchievement.user_id == user_id)
    ).all()
    return set(rows)


class TriggerService:
    """Applies event and metric triggers.

    All methods are synchronous — call via ``await run_db(service.method, ...)``.

    Parameters
    ----------
    engine : SQLAlchemy engine every trigger opens its session on.
    evaluator : decides rule logic; defaults to :class:`JsonLogicEvaluator`.
    report_mode : ``"qualifying"`` or ``"new"``, see
        :class:`~gamify.engine.events.MetricTriggerResponse`.
    """

    def __init__(
        self,
        engine: Engine,
        evaluator: LogicEvaluator | None = None,
        *,
        report_mode: str = REPORT_QUALIFYING,
    ) -> None:
        if report_mode not in UNLOCK_REPORT_MODES:
            raise ValueError(f"Unknown unlock report mode: {report_mode!r}")
        self.engine = engine
        self.evaluator: LogicEvaluator = evaluator or JsonLogicEvaluator()
        self.report_mode = report_mode

    # -------------------------------------------------------------------
    # Public entry points — one transaction each
    # -------------------------------------------------------------------
    def event_trigger(self, trigger: EventTrigger) -> MetricTriggerResponse:
        """Evaluate the event's rules and apply the matching metrics.

        Raises
        ------
        NotFoundError
            The event does not exist, or it has no rules.
        ValidationError
            The payload does not match the event schema, or a rule's logic
            fails on it.
        """
        with get_session(self.engine) as session:
            event = session.get(Event, trigger.event_id)
            if event is None:
                raise NotFoundError(f"Event {trigger.event_id} not found")

            check = check_payload(event.payload_schema or {}, trigger.event_payload)
            if not check.ok:
                logger.warning(
                    "Rejected payload for event %d (user %s): %s",
                    event.id, trigger.user_id, check.describe(),
                )
                raise ValidationError(
                    f"Payload does not match schema of event {event.id}: {check.describe()}"
                )

            rules = session.scalars(
                select(Rule).where(Rule.event_id == event.id).order_by(Rule.id)
            ).all()
            if not rules:
                raise NotFoundError(f"No rules found for event {event.id}")

            increments = [
                MetricIncrement(metric_id=rule.metric_id)
                for rule in rules
                if self._rule_matches(rule, trigger.event_payload)
            ]
            if not increments:
                logger.info(
                    "Event %d for user %s matched none of %d rules",
                    event.id, trigger.user_id, len(rules),
                )
                return MetricTriggerResponse()

            return self.apply(
                session,
                MetricTrigger(user_id=trigger.user_id, metrics=increments),
                allow_duplicates=True,
            )

    def metric_trigger(
        self, trigger: MetricTrigger, *, allow_duplicates: bool = False,
    ) -> MetricTriggerResponse:
        """Increment metrics for a user and record qualifying achievements.

        Raises
        ------
        ValidationError
            No metrics given, or (unless *allow_duplicates*) a metric id is
            repeated.
        NotFoundError
            A referenced metric does not exist.
        """
        with get_session(self.engine) as session:
            return self.apply(session, trigger, allow_duplicates=allow_duplicates)

    # -------------------------------------------------------------------
    # Core — runs inside the caller's session
    # -------------------------------------------------------------------
    def apply(
        self,
        session: Session,
        trigger: MetricTrigger,
        *,
        allow_duplicates: bool = False,
    ) -> MetricTriggerResponse:
        """Run the metric trigger inside an already-open *session*.

        Other services use this to share one transaction with their own
        reads (e.g. scoring reads the running total first).
        """
        if not trigger.metrics:
            raise ValidationError("At least one metric is required")
        if not allow_duplicates:
            duplicates = duplicate_metric_ids(trigger.metrics)
            if duplicates:
                raise ValidationError(
                    f"Duplicate metric ids in request: {', '.join(map(str, duplicates))}"
                )

        metric_ids = list(dict.fromkeys(inc.metric_id for inc in trigger.metrics))
        defaults = dict(session.execute(
            select(GameMetric.id, GameMetric.default_increment_value)
            .where(GameMetric.id.in_(metric_ids))
        ).all())
        missing = [mid for mid in metric_ids if mid not in defaults]
        if missing:
            raise NotFoundError(f"Metric(s) not found: {', '.join(map(str, missing))}")

        amounts = resolve_increments(trigger.metrics, defaults)
        non_finite = [mid for mid, amount in amounts.items() if not math.isfinite(amount)]
        if non_finite:
            raise ValidationError(
                f"Increment must be a finite number for metric(s): {', '.join(map(str, non_finite))}"
            )
        now = datetime.now(UTC)

        session.execute(
            _INCREMENT_METRIC,
            [
                {"user_id": trigger.user_id, "metric_id": mid, "amount": amount, "now": now}
                for mid, amount in amounts.items()
            ],
        )

        # Column select, not entities: the identity map may hold pre-increment rows.
        values = dict(session.execute(
            select(UserGameMetric.metric_id, UserGameMetric.value).where(
                UserGameMetric.user_id == trigger.user_id,
                UserGameMetric.metric_id.in_(metric_ids),
            )
        ).all())
        updated = [UpdatedMetric(metric_id=mid, value=values[mid]) for mid in metric_ids]

        candidates = session.scalars(
            select(MetricAchievement)
            .where(MetricAchievement.metric_id.in_(metric_ids))
            .order_by(MetricAchievement.metric_count, MetricAchievement.id)
        ).all()
        qualifying = qualifying_achievements(updated, candidates)

        reported = []
        if qualifying:
            held = held_achievement_ids(session, trigger.user_id)
            self._record_unlocks(session, trigger.user_id, [a.id for a in qualifying], now)
            reported = select_reported(qualifying, held, self.report_mode)

        logger.info(
            "Metric trigger for user %s: %d metric(s) updated, %d achievement(s) qualifying",
            trigger.user_id, len(updated), len(qualifying),
        )
        return MetricTriggerResponse(
            metrics_updated=updated,
            achievements_unlocked=[
                UnlockedAchievement(
                    achievement_id=a.id,
                    name=a.name,
                    description=a.description,
                    badge_url=a.badge_url,
                    unlocked_at=now,
                )
                for a in reported
            ],
        )

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _rule_matches(self, rule: Rule, payload: dict) -> bool:
        if rule.logic is None:
            return False
        try:
            matched = self.evaluator.evaluate(rule.logic, payload)
        except (ValueError, TypeError, KeyError) as exc:
            raise ValidationError(f"Logic of rule {rule.id} failed on payload: {exc}") from exc
        logger.debug("Rule %d (metric %d) → %s", rule.id, rule.metric_id, matched)
        return matched

    def _record_unlocks(
        self,
        session: Session,
        user_id: str,
        achievement_ids: list[int],
        now: datetime,
    ) -> None:
        """Add each achievement to the user's record, skipping ones held."""
        session.execute(_ENSURE_ACHIEVEMENT_RECORD, {"user_id": user_id, "now": now})
        record_id = session.scalar(
            select(UserGameAchievement.id).where(UserGameAchievement.user_id == user_id)
        )
        session.execute(
            _ADD_ACHIEVEMENT_ENTRY,
            [
                {"record_id": record_id, "achievement_id": aid, "now": now}
                for aid in achievement_ids
            ],
        )
