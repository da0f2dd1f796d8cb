"""
gamify.engine.metrics — Increment Resolution
=============================================

Turns the requested increments of a :class:`MetricTrigger` into one amount
per metric id, ready for a single bulk upsert.

This module is pure calculation — no database I/O.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping

from gamify.engine.events import MetricIncrement

__all__ = ["duplicate_metric_ids", "resolve_increments"]


def duplicate_metric_ids(increments: Iterable[MetricIncrement]) -> list[int]:
    """Metric ids that appear more than once, in first-seen order."""
    counts = Counter(inc.metric_id for inc in increments)
    return [metric_id for metric_id, n in counts.items() if n > 1]


def resolve_increments(
    increments: Iterable[MetricIncrement],
    defaults: Mapping[int, float],
) -> dict[int, float]:
    """Resolve each increment's amount and sum per metric id.

    An increment without an explicit value takes the metric's
    ``default_increment_value``.  Repeated ids add up, which is how several
    matching rules on the same metric all count.

    Raises
    ------
    KeyError
        If an increment references a metric id missing from *defaults*.
    """
    amounts: dict[int, float] = {}
    for inc in increments:
        amount = defaults[inc.metric_id] if inc.value is None else inc.value
        amounts[inc.metric_id] = amounts.get(inc.metric_id, 0) + amount
    return amounts
