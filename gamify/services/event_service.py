"""
gamify.services.event_service — Event Schema Registry
======================================================

Events declare the shape of their payload as ``{field: type tag}``.
Updating an event replaces its whole schema; rules already attached to the
event are not re-checked.  Deleting an event deletes its rules in the same
transaction.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from gamify.database.engine import get_session
from gamify.database.models import Event
from gamify.engine.schema import parse_schema
from gamify.errors import ValidationError
from gamify.services.crud import apply_changes, create_row, get_or_raise
from gamify.services.rule_service import delete_rules_for_event

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _validated_schema(payload_schema: dict[str, Any]) -> dict[str, str]:
    try:
        return {key: tag.value for key, tag in parse_schema(payload_schema).items()}
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def create_event(
    engine: Engine,
    *,
    name: str,
    payload_schema: dict[str, Any],
    description: str | None = None,
    version: str = "1.0",
) -> Event:
    schema = _validated_schema(payload_schema)
    with get_session(engine) as session:
        return create_row(session, Event(
            name=name,
            description=description,
            version=version,
            payload_schema=schema,
        ))


def get_event(engine: Engine, event_id: int) -> Event:
    with get_session(engine) as session:
        return get_or_raise(session, Event, event_id, "Event")


def list_events(engine: Engine) -> list[Event]:
    with get_session(engine) as session:
        return list(session.scalars(select(Event).order_by(Event.id)).all())


def update_event(engine: Engine, event_id: int, **changes: Any) -> Event:
    """Apply *changes* to an event.  A new ``payload_schema`` replaces the old one."""
    if changes.get("payload_schema") is not None:
        changes["payload_schema"] = _validated_schema(changes["payload_schema"])
    with get_session(engine) as session:
        event = get_or_raise(session, Event, event_id, "Event")
        applied = apply_changes(event, changes)
        session.flush()
        session.refresh(event)
        logger.info("Updated event %d: %s", event.id, ", ".join(applied) or "no changes")
        return event


def delete_event(engine: Engine, event_id: int) -> int:
    """Delete an event and all of its rules.  Returns the number of rules removed."""
    with get_session(engine) as session:
        event = get_or_raise(session, Event, event_id, "Event")
        removed = delete_rules_for_event(session, event_id)
        session.delete(event)
    logger.info("Deleted event %d with %d rule(s)", event_id, removed)
    return removed
