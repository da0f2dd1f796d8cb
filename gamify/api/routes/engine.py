"""
gamify.api.routes.engine — Event and metric trigger endpoints
==============================================================
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from gamify.api.deps import get_trigger_service
from gamify.database.engine import run_db
from gamify.engine.events import EventTrigger, MetricIncrement, MetricTrigger
from gamify.services.trigger_service import TriggerService

router = APIRouter(prefix="/engine", tags=["engine"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class EventTriggerBody(BaseModel):
    user_id: str = Field(min_length=1)
    event_id: int
    event_payload: dict[str, Any] = Field(default_factory=dict)


class MetricIncrementBody(BaseModel):
    metric_id: int
    value: float | None = Field(default=None, allow_inf_nan=False)  # None → the metric's default increment


class MetricTriggerBody(BaseModel):
    user_id: str = Field(min_length=1)
    metrics: list[MetricIncrementBody] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/event-trigger")
async def event_trigger(
    body: EventTriggerBody,
    triggers: TriggerService = Depends(get_trigger_service),
):
    trigger = EventTrigger(
        user_id=body.user_id,
        event_id=body.event_id,
        event_payload=body.event_payload,
    )
    response = await run_db(triggers.event_trigger, trigger)
    return response.to_dict()


@router.post("/metric-trigger")
async def metric_trigger(
    body: MetricTriggerBody,
    triggers: TriggerService = Depends(get_trigger_service),
):
    trigger = MetricTrigger(
        user_id=body.user_id,
        metrics=[MetricIncrement(metric_id=m.metric_id, value=m.value) for m in body.metrics],
    )
    response = await run_db(triggers.metric_trigger, trigger)
    return response.to_dict()
