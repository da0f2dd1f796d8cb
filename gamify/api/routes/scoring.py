"""
gamify.api.routes.scoring — Quiz scoring and weight endpoints
==============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from gamify.api.deps import get_engine, get_trigger_service
from gamify.database.engine import run_db
from gamify.engine.scoring import QuestionGrade, QuizAttempt
from gamify.services import scoring_service
from gamify.services.trigger_service import TriggerService

router = APIRouter(tags=["scoring"])

# NaN and infinities would poison stored counters.
_FINITE = ConfigDict(allow_inf_nan=False)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class GradeBody(BaseModel):
    question_id: str | None = None
    confidence: int = Field(ge=1, le=5)
    correct: bool


class QuizAttemptBody(BaseModel):
    model_config = _FINITE

    user_id: str = Field(min_length=1)
    metric_id: int
    quiz_id: str | None = None
    attempt_id: str | None = None
    grades: list[GradeBody] = Field(default_factory=list)
    base_points: float = Field(0, ge=0)
    hint_count: int = Field(0, ge=0)
    streaks: int = Field(0, ge=0)
    time_taken: float = Field(0, ge=0)
    ideal_time: float = Field(0, ge=0)
    attempt_count: int = Field(1, ge=1)


class WeightsUpdate(BaseModel):
    model_config = _FINITE

    high_weight: float | None = None
    low_weight: float | None = None
    hint_penalty: float | None = None
    streak_bonus: float | None = None
    time_weight: float | None = None
    attempt_penalty: float | None = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/score")
async def score_attempt(
    body: QuizAttemptBody,
    engine=Depends(get_engine),
    triggers: TriggerService = Depends(get_trigger_service),
):
    attempt = QuizAttempt(
        user_id=body.user_id,
        metric_id=body.metric_id,
        quiz_id=body.quiz_id,
        attempt_id=body.attempt_id,
        grades=[
            QuestionGrade(confidence=g.confidence, correct=g.correct, question_id=g.question_id)
            for g in body.grades
        ],
        base_points=body.base_points,
        hint_count=body.hint_count,
        streaks=body.streaks,
        time_taken=body.time_taken,
        ideal_time=body.ideal_time,
        attempt_count=body.attempt_count,
    )
    scored = await run_db(scoring_service.score_attempt, engine, triggers, attempt)
    return scored.to_dict()


@router.get("/weights")
async def get_weights(engine=Depends(get_engine)):
    weights = await run_db(scoring_service.get_weights, engine)
    return weights.to_dict()


@router.put("/weights")
async def update_weights(body: WeightsUpdate, engine=Depends(get_engine)):
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(400, "No weights to update")
    weights = await run_db(scoring_service.update_weights, engine, **changes)
    return weights.to_dict()
