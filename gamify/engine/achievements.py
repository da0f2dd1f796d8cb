"""
gamify.engine.achievements — Achievement Qualification
=======================================================

An achievement qualifies for a user when the user's value for the
achievement's metric is at or above ``metric_count``.  The check looks at
the *new* value only, so an achievement that already qualified on an
earlier call qualifies again; storing unlocks with set semantics keeps the
user's list free of duplicates.

This module is pure calculation — no database I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, TypeVar

from gamify.constants import REPORT_NEW, REPORT_QUALIFYING
from gamify.engine.events import UpdatedMetric

__all__ = ["ThresholdAchievement", "qualifying_achievements", "select_reported"]


class ThresholdAchievement(Protocol):
    id: int
    metric_id: int
    metric_count: float


A = TypeVar("A", bound=ThresholdAchievement)


def qualifying_achievements(
    updated: Iterable[UpdatedMetric],
    achievements: Iterable[A],
) -> list[A]:
    """Achievements whose threshold is met by an updated metric value.

    Parameters
    ----------
    updated : post-increment values for the metrics touched by the trigger.
    achievements : candidate achievements (any with a matching metric id).

    Returns
    -------
    The qualifying achievements, in the order given.
    """
    values = {m.metric_id: m.value for m in updated}
    qualifying = []
    for achievement in achievements:
        value = values.get(achievement.metric_id)
        if value is not None and achievement.metric_count <= value:
            qualifying.append(achievement)
    return qualifying


def select_reported(
    qualifying: list[A],
    already_held: set[int],
    mode: str = REPORT_QUALIFYING,
) -> list[A]:
    """Pick which qualifying achievements a trigger response reports.

    ``qualifying`` mode reports all of them.  ``new`` mode drops those the
    user held before this call.
    """
    if mode == REPORT_QUALIFYING:
        return list(qualifying)
    if mode == REPORT_NEW:
        return [a for a in qualifying if a.id not in already_held]
    raise ValueError(f"Unknown unlock report mode: {mode!r}")
