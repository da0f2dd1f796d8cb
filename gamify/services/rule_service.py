"""
gamify.services.rule_service — Rule Store
==========================================

Rules attach boolean logic to an event and name the metric that moves when
the logic holds.  A rule's logic is smoke-tested when it is written: it is
evaluated once against a dummy payload built from the event schema (one
stand-in value per declared field) and must not raise.  This catches
malformed expressions early; it says nothing about whether the rule will
ever match.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from gamify.database.engine import get_session
from gamify.database.models import Event, GameMetric, Rule
from gamify.engine.logic import JsonLogicEvaluator, LogicEvaluator
from gamify.engine.schema import build_dummy_payload
from gamify.errors import InvalidArgumentError, ValidationError
from gamify.services.crud import apply_changes, create_row, get_or_raise

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

_DEFAULT_EVALUATOR = JsonLogicEvaluator()


def smoke_test_logic(
    logic: Any,
    payload_schema: dict,
    evaluator: LogicEvaluator | None = None,
) -> None:
    """Evaluate *logic* against a dummy payload for *payload_schema*.

    Raises
    ------
    ValidationError
        If the schema is malformed or the evaluator raises.
    """
    if logic is None:
        return
    evaluator = evaluator or _DEFAULT_EVALUATOR
    try:
        dummy = build_dummy_payload(payload_schema or {})
        evaluator.evaluate(logic, dummy)
    except (ValueError, TypeError, KeyError) as exc:
        raise ValidationError(f"Invalid rule logic: {exc}") from exc


def delete_rules_for_event(session: Session, event_id: int) -> int:
    """Delete every rule of *event_id* inside the caller's transaction."""
    result = session.execute(delete(Rule).where(Rule.event_id == event_id))
    return result.rowcount or 0


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_rule(
    engine: Engine,
    *,
    event_id: int,
    metric_id: int,
    name: str,
    description: str | None = None,
    logic: Any = None,
    version: str = "1.0",
    evaluator: LogicEvaluator | None = None,
) -> Rule:
    """Create a rule after checking its event, metric and logic.

    Raises
    ------
    InvalidArgumentError
        The event does not exist.
    NotFoundError
        The metric does not exist.
    ValidationError
        The logic raises on the event's dummy payload.
    """
    with get_session(engine) as session:
        event = session.get(Event, event_id)
        if event is None:
            raise InvalidArgumentError(f"Event {event_id} does not exist")
        get_or_raise(session, GameMetric, metric_id, "Metric")
        smoke_test_logic(logic, event.payload_schema, evaluator)

        return create_row(session, Rule(
            name=name,
            description=description,
            event_id=event_id,
            metric_id=metric_id,
            logic=logic,
            version=version,
        ))


def update_rule(
    engine: Engine,
    rule_id: int,
    *,
    evaluator: LogicEvaluator | None = None,
    **changes: Any,
) -> Rule:
    """Apply *changes* to a rule.

    When the logic or the event changes, the smoke test is re-run against
    the (possibly new) event's schema.
    """
    with get_session(engine) as session:
        rule = get_or_raise(session, Rule, rule_id, "Rule")

        event_id = changes.get("event_id", rule.event_id)
        event = session.get(Event, event_id)
        if event is None:
            raise InvalidArgumentError(f"Event {event_id} does not exist")
        if "metric_id" in changes:
            get_or_raise(session, GameMetric, changes["metric_id"], "Metric")
        if "logic" in changes or "event_id" in changes:
            smoke_test_logic(changes.get("logic", rule.logic), event.payload_schema, evaluator)

        applied = apply_changes(rule, changes)
        session.flush()
        session.refresh(rule)
        logger.info("Updated rule %d: %s", rule.id, ", ".join(applied) or "no changes")
        return rule


def delete_rule(engine: Engine, rule_id: int) -> None:
    with get_session(engine) as session:
        rule = get_or_raise(session, Rule, rule_id, "Rule")
        session.delete(rule)
    logger.info("Deleted rule %d", rule_id)


def delete_rules_by_event_id(engine: Engine, event_id: int) -> int:
    """Delete all rules of an event.  Returns the number removed."""
    with get_session(engine) as session:
        get_or_raise(session, Event, event_id, "Event")
        removed = delete_rules_for_event(session, event_id)
    logger.info("Deleted %d rule(s) of event %d", removed, event_id)
    return removed


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_rule(engine: Engine, rule_id: int) -> Rule:
    with get_session(engine) as session:
        return get_or_raise(session, Rule, rule_id, "Rule")


def list_rules(engine: Engine, event_id: int) -> list[Rule]:
    """All rules of *event_id*, oldest first.  Raises if the event is missing."""
    with get_session(engine) as session:
        get_or_raise(session, Event, event_id, "Event")
        return list(session.scalars(
            select(Rule).where(Rule.event_id == event_id).order_by(Rule.id)
        ).all())
