"""
gamify.engine.logic — Rule Logic Evaluators
============================================

Rules carry their condition as a JSON-logic expression tree::

    {"and": [
        {">=": [{"var": "score"}, 80]},
        {"==": [{"var": "passed"}, true]}
    ]}

Evaluation is delegated to the ``json_logic`` package, which follows the
reference json-logic-js semantics (loose equality, so a missing variable is
``null`` and never equals ``0``).  The rest of the engine only depends on
the :class:`LogicEvaluator` protocol, so another implementation can be
dropped in by passing it to
:class:`~gamify.services.trigger_service.TriggerService`.

This module is pure calculation — no database I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from json_logic import jsonLogic

logger = logging.getLogger(__name__)

__all__ = ["JsonLogicEvaluator", "LogicEvaluator", "truthy"]


class LogicEvaluator(Protocol):
    """Anything that can decide a rule: pure, no side effects."""

    def evaluate(self, expression: Any, payload: Mapping[str, Any]) -> bool:
        ...


def truthy(value: Any) -> bool:
    """JSON-logic truthiness: empty arrays are falsy, objects are truthy."""
    if isinstance(value, list):
        return len(value) > 0
    if isinstance(value, dict):
        return True
    return bool(value)


class JsonLogicEvaluator:
    """Default evaluator backed by ``json_logic.jsonLogic``.

    Any failure inside the library (unknown operator, bad arguments,
    arithmetic errors) is re-raised as :class:`ValueError` so callers only
    have one exception type to translate.
    """

    def evaluate(self, expression: Any, payload: Mapping[str, Any]) -> bool:
        return truthy(self.apply(expression, payload))

    def apply(self, expression: Any, data: Any) -> Any:
        """Return the raw result of *expression* against *data*."""
        try:
            return jsonLogic(expression, dict(data) if isinstance(data, Mapping) else data)
        except Exception as exc:
            logger.debug("Rule logic %r raised %s", expression, exc)
            raise ValueError(f"Rule logic could not be evaluated: {exc}") from exc
