"""
gamify.api.routes.layer — Event and rule CRUD endpoints
========================================================
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from gamify.api.deps import get_engine
from gamify.services import event_service, rule_service
from gamify.services.crud import row_to_dict

router = APIRouter(tags=["layer"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class EventCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    version: str = "1.0"
    payload_schema: dict[str, str] = Field(default_factory=dict)  # {"score": "number"}


class EventUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    version: str | None = None
    payload_schema: dict[str, str] | None = None


class RuleCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    metric_id: int
    logic: Any = None  # JSON-logic expression
    version: str = "1.0"


class RuleUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    event_id: int | None = None
    metric_id: int | None = None
    logic: Any = None
    version: str | None = None


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
@router.get("/events")
def list_events(engine=Depends(get_engine)):
    return [row_to_dict(e) for e in event_service.list_events(engine)]


@router.post("/events", status_code=201)
def create_event(body: EventCreate, engine=Depends(get_engine)):
    event = event_service.create_event(
        engine,
        name=body.name,
        description=body.description,
        version=body.version,
        payload_schema=body.payload_schema,
    )
    return row_to_dict(event)


@router.get("/events/{event_id}")
def get_event(event_id: int, engine=Depends(get_engine)):
    return row_to_dict(event_service.get_event(engine, event_id))


@router.patch("/events/{event_id}")
def update_event(event_id: int, body: EventUpdate, engine=Depends(get_engine)):
    kwargs = body.model_dump(exclude_none=True)
    if not kwargs:
        raise HTTPException(400, "No fields to update")
    return row_to_dict(event_service.update_event(engine, event_id, **kwargs))


@router.delete("/events/{event_id}")
def delete_event(event_id: int, engine=Depends(get_engine)):
    removed = event_service.delete_event(engine, event_id)
    return {"deleted": event_id, "rules_deleted": removed}


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------
@router.get("/events/{event_id}/rules")
def list_rules(event_id: int, engine=Depends(get_engine)):
    return [row_to_dict(r) for r in rule_service.list_rules(engine, event_id)]


@router.post("/events/{event_id}/rules", status_code=201)
def create_rule(event_id: int, body: RuleCreate, engine=Depends(get_engine)):
    rule = rule_service.create_rule(
        engine,
        event_id=event_id,
        metric_id=body.metric_id,
        name=body.name,
        description=body.description,
        logic=body.logic,
        version=body.version,
    )
    return row_to_dict(rule)


@router.delete("/events/{event_id}/rules")
def delete_rules_by_event(event_id: int, engine=Depends(get_engine)):
    return {"rules_deleted": rule_service.delete_rules_by_event_id(engine, event_id)}


@router.get("/rules/{rule_id}")
def get_rule(rule_id: int, engine=Depends(get_engine)):
    return row_to_dict(rule_service.get_rule(engine, rule_id))


@router.patch("/rules/{rule_id}")
def update_rule(rule_id: int, body: RuleUpdate, engine=Depends(get_engine)):
    # logic may be cleared explicitly; every other null means "leave as is"
    kwargs = {
        k: v for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k == "logic"
    }
    if not kwargs:
        raise HTTPException(400, "No fields to update")
    return row_to_dict(rule_service.update_rule(engine, rule_id, **kwargs))


@router.delete("/rules/{rule_id}", status_code=204)
def delete_rule(rule_id: int, engine=Depends(get_engine)):
    rule_service.delete_rule(engine, rule_id)
    return None
