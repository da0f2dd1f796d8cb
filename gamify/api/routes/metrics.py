"""
gamify.api.routes.metrics — Metric, achievement and per-user endpoints
=======================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from gamify.api.deps import get_engine
from gamify.database.models import GameMetricType
from gamify.services import achievement_service, metric_service
from gamify.services.crud import row_to_dict

router = APIRouter(tags=["metrics"])

# NaN and infinities would poison stored counters.
_FINITE = ConfigDict(allow_inf_nan=False)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class MetricCreate(BaseModel):
    model_config = _FINITE

    name: str = Field(min_length=1)
    description: str | None = None
    type: str = GameMetricType.NUMBER.value
    units: str
    default_increment_value: float = 1


class MetricUpdate(BaseModel):
    model_config = _FINITE

    name: str | None = None
    description: str | None = None
    type: str | None = None
    units: str | None = None
    default_increment_value: float | None = None


class AchievementCreate(BaseModel):
    model_config = _FINITE

    name: str = Field(min_length=1)
    description: str
    badge_url: str
    metric_id: int
    metric_count: float


class AchievementUpdate(BaseModel):
    model_config = _FINITE

    name: str | None = None
    description: str | None = None
    badge_url: str | None = None
    metric_id: int | None = None
    metric_count: float | None = None


class UserMetricCreate(BaseModel):
    model_config = _FINITE

    metric_id: int
    value: float = 0


class UserMetricUpdate(BaseModel):
    model_config = _FINITE

    value: float


def _unlocked_dict(a) -> dict:
    return {
        "achievement_id": a.achievement_id,
        "name": a.name,
        "description": a.description,
        "badge_url": a.badge_url,
        "unlocked_at": a.unlocked_at.isoformat(),
    }


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------
@router.get("/metrics")
def list_metrics(engine=Depends(get_engine)):
    return [row_to_dict(m) for m in metric_service.list_metrics(engine)]


@router.post("/metrics", status_code=201)
def create_metric(body: MetricCreate, engine=Depends(get_engine)):
    return row_to_dict(metric_service.create_metric(engine, **body.model_dump()))


@router.get("/metrics/{metric_id}")
def get_metric(metric_id: int, engine=Depends(get_engine)):
    return row_to_dict(metric_service.get_metric(engine, metric_id))


@router.patch("/metrics/{metric_id}")
def update_metric(metric_id: int, body: MetricUpdate, engine=Depends(get_engine)):
    kwargs = body.model_dump(exclude_none=True)
    if not kwargs:
        raise HTTPException(400, "No fields to update")
    return row_to_dict(metric_service.update_metric(engine, metric_id, **kwargs))


@router.delete("/metrics/{metric_id}")
def delete_metric(metric_id: int, engine=Depends(get_engine)):
    removed = metric_service.delete_metric(engine, metric_id)
    return {"deleted": metric_id, "user_metrics_deleted": removed}


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------
@router.get("/achievements")
def list_achievements(
    metric_id: int | None = Query(None),
    engine=Depends(get_engine),
):
    return [row_to_dict(a) for a in achievement_service.list_achievements(engine, metric_id)]


@router.post("/achievements", status_code=201)
def create_achievement(body: AchievementCreate, engine=Depends(get_engine)):
    return row_to_dict(achievement_service.create_achievement(engine, **body.model_dump()))


@router.get("/achievements/{achievement_id}")
def get_achievement(achievement_id: int, engine=Depends(get_engine)):
    return row_to_dict(achievement_service.get_achievement(engine, achievement_id))


@router.patch("/achievements/{achievement_id}")
def update_achievement(achievement_id: int, body: AchievementUpdate, engine=Depends(get_engine)):
    kwargs = body.model_dump(exclude_none=True)
    if not kwargs:
        raise HTTPException(400, "No fields to update")
    return row_to_dict(achievement_service.update_achievement(engine, achievement_id, **kwargs))


@router.delete("/achievements/{achievement_id}")
def delete_achievement(achievement_id: int, engine=Depends(get_engine)):
    removed = achievement_service.delete_achievement(engine, achievement_id)
    return {"deleted": achievement_id, "unlocks_deleted": removed}


# ---------------------------------------------------------------------------
# Per-user metrics
# ---------------------------------------------------------------------------
@router.get("/users/{user_id}/metrics")
def list_user_metrics(user_id: str, engine=Depends(get_engine)):
    return [row_to_dict(m) for m in metric_service.list_user_metrics(engine, user_id)]


@router.post("/users/{user_id}/metrics", status_code=201)
def create_user_metric(user_id: str, body: UserMetricCreate, engine=Depends(get_engine)):
    row = metric_service.create_user_metric(
        engine, user_id=user_id, metric_id=body.metric_id, value=body.value,
    )
    return row_to_dict(row)


@router.put("/user-metrics/{user_metric_id}")
def update_user_metric(user_metric_id: int, body: UserMetricUpdate, engine=Depends(get_engine)):
    return row_to_dict(metric_service.update_user_metric(engine, user_metric_id, body.value))


@router.delete("/user-metrics/{user_metric_id}", status_code=204)
def delete_user_metric(user_metric_id: int, engine=Depends(get_engine)):
    metric_service.delete_user_metric(engine, user_metric_id)
    return None


# ---------------------------------------------------------------------------
# Per-user achievements
# ---------------------------------------------------------------------------
@router.get("/users/{user_id}/achievements")
def list_user_achievements(user_id: str, engine=Depends(get_engine)):
    return [_unlocked_dict(a) for a in achievement_service.get_user_achievements(engine, user_id)]


@router.delete("/users/{user_id}/achievements/{achievement_id}", status_code=204)
def remove_user_achievement(user_id: str, achievement_id: int, engine=Depends(get_engine)):
    achievement_service.remove_user_achievement(engine, user_id, achievement_id)
    return None
