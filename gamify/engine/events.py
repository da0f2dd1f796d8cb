"""
gamify.engine.events — Trigger Envelopes
=========================================

Ephemeral request/response values that flow through the engine.  None of
these are persisted.

* :class:`EventTrigger` — "this event happened for this user with this
  payload"; rules decide which metrics move.
* :class:`MetricTrigger` — "move these metrics for this user"; used
  directly when the caller already knows the metrics (e.g. scoring).
* :class:`MetricTriggerResponse` — what moved and which achievements
  qualify.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

__all__ = [
    "EventTrigger",
    "MetricIncrement",
    "MetricTrigger",
    "MetricTriggerResponse",
    "UnlockedAchievement",
    "UpdatedMetric",
]


@dataclass(frozen=True, slots=True)
class EventTrigger:
    user_id: str
    event_id: int
    event_payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MetricIncrement:
    """One metric to bump.  ``value=None`` means "use the metric's default"."""

    metric_id: int
    value: float | None = None


@dataclass(frozen=True, slots=True)
class MetricTrigger:
    user_id: str
    metrics: list[MetricIncrement] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class UpdatedMetric:
    metric_id: int
    value: float


@dataclass(frozen=True, slots=True)
class UnlockedAchievement:
    achievement_id: int
    name: str
    description: str
    badge_url: str
    unlocked_at: datetime


@dataclass
class MetricTriggerResponse:
    """Result of one trigger.

    ``achievements_unlocked`` holds, in the default "qualifying" report
    mode, every achievement whose threshold is met by the *new* value of a
    metric touched in this call, including ones the user already held
    from an earlier call.  It is not limited to thresholds crossed by this
    call.  The user's stored achievement list never gains a duplicate.
    """

    metrics_updated: list[UpdatedMetric] = field(default_factory=list)
    achievements_unlocked: list[UnlockedAchievement] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.metrics_updated and not self.achievements_unlocked

    def to_dict(self) -> dict[str, Any]:
        return {
            "metrics_updated": [
                {"metric_id": m.metric_id, "value": m.value}
                for m in self.metrics_updated
            ],
            "achievements_unlocked": [
                {
                    "achievement_id": a.achievement_id,
                    "name": a.name,
                    "description": a.description,
                    "badge_url": a.badge_url,
                    "unlocked_at": a.unlocked_at.isoformat(),
                }
                for a in self.achievements_unlocked
            ],
        }
