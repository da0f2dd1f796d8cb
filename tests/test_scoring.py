"""
tests/test_scoring.py — Quiz scoring formula and scoring service
=================================================================
"""

from __future__ import annotations

import pytest

from gamify.engine.scoring import (
    QuestionGrade,
    QuizAttempt,
    ScoringWeights,
    calculate_confidence_score,
    calculate_score,
)
from gamify.errors import NotFoundError, ValidationError
from gamify.services import metric_service, scoring_service


def _make_attempt(**overrides) -> QuizAttempt:
    params = dict(
        user_id="u1",
        metric_id=1,
        grades=[QuestionGrade(confidence=4, correct=True), QuestionGrade(confidence=2, correct=False)],
        base_points=10,
        hint_count=3,
        streaks=2,
        time_taken=50,
        ideal_time=60,
        attempt_count=1,
    )
    params.update(overrides)
    return QuizAttempt(**params)


# ===========================================================================
# Pure formula
# ===========================================================================
class TestConfidenceScore:
    def test_high_correct_and_low_wrong(self):
        grades = [QuestionGrade(4, True), QuestionGrade(2, False)]
        assert calculate_confidence_score(grades, ScoringWeights()) == 1

    def test_high_wrong_is_penalised_by_high_weight(self):
        assert calculate_confidence_score([QuestionGrade(5, False)], ScoringWeights()) == -2

    def test_threshold_is_inclusive(self):
        assert calculate_confidence_score([QuestionGrade(3, True)], ScoringWeights()) == 2

    def test_custom_weights(self):
        weights = ScoringWeights(high_weight=10, low_weight=4)
        grades = [QuestionGrade(1, True), QuestionGrade(5, True)]
        assert calculate_confidence_score(grades, weights) == 14

    def test_no_grades(self):
        assert calculate_confidence_score([], ScoringWeights()) == 0


class TestCalculateScore:
    def test_first_attempt_scenario(self):
        result = calculate_score(_make_attempt())
        assert result.breakdown.confidence_score == 1
        assert result.breakdown.total_hint_penalty == -1.5
        assert result.breakdown.streak_bonus_total == 6
        assert result.breakdown.time_bonus == pytest.approx(2)
        assert result.breakdown.total_attempt_penalty == 0
        assert result.points_added == 17
        assert result.total_score == 17

    def test_running_total_is_added(self):
        result = calculate_score(_make_attempt(), running_total=100)
        assert result.points_added == 17
        assert result.total_score == 117

    def test_retry_skips_base_points(self):
        # bonus 7.5 + attempt penalty -0.5 = 7
        result = calculate_score(_make_attempt(attempt_count=2))
        assert result.breakdown.total_attempt_penalty == -0.5
        assert result.points_added == 7

    def test_points_never_negative(self):
        attempt = _make_attempt(
            grades=[QuestionGrade(5, False)] * 5, hint_count=10, base_points=0,
        )
        assert calculate_score(attempt).points_added == 0

    def test_slow_answer_costs_time_bonus(self):
        result = calculate_score(_make_attempt(time_taken=70))
        assert result.breakdown.time_bonus == pytest.approx(-2)
        assert result.points_added == 13

    def test_to_dict_shape(self):
        data = calculate_score(_make_attempt()).to_dict()
        assert data["points_added"] == 17
        assert set(data["breakdown"]) == {
            "base_points",
            "confidence_score",
            "total_hint_penalty",
            "streak_bonus_total",
            "time_bonus",
            "total_attempt_penalty",
        }


class TestScoringWeights:
    def test_defaults(self):
        assert ScoringWeights().to_dict() == {
            "high_weight": 2,
            "low_weight": 1,
            "hint_penalty": -0.5,
            "streak_bonus": 3,
            "time_weight": 0.2,
            "attempt_penalty": -0.5,
        }

    def test_merged_keeps_unchanged_fields(self):
        merged = ScoringWeights().merged(streak_bonus=5)
        assert merged.streak_bonus == 5
        assert merged.high_weight == 2

    def test_merged_rejects_unknown_names(self):
        with pytest.raises(ValueError, match="bogus"):
            ScoringWeights().merged(bogus=1)

    def test_from_dict_ignores_unknown_keys(self):
        assert ScoringWeights.from_dict({"low_weight": 3, "extra": 9}).low_weight == 3


# ===========================================================================
# Service (weights store + metric feed)
# ===========================================================================
class TestWeightsStore:
    def test_seeded_defaults_are_returned(self, db_engine):
        assert scoring_service.get_weights(db_engine) == ScoringWeights()

    def test_update_persists(self, db_engine):
        scoring_service.update_weights(db_engine, hint_penalty=-1)
        weights = scoring_service.get_weights(db_engine)
        assert weights.hint_penalty == -1
        assert weights.streak_bonus == 3

    def test_update_unknown_weight_is_validation_error(self, db_engine):
        with pytest.raises(ValidationError):
            scoring_service.update_weights(db_engine, nonsense=1)


class TestScoreAttempt:
    @pytest.fixture
    def points(self, db_engine):
        return metric_service.create_metric(
            db_engine, name="points", units="pts", default_increment_value=1,
        )

    def test_credits_points_to_metric(self, db_engine, triggers, points):
        scored = scoring_service.score_attempt(
            db_engine, triggers, _make_attempt(metric_id=points.id),
        )
        assert scored.score.points_added == 17
        assert [(m.metric_id, m.value) for m in scored.trigger.metrics_updated] == [(points.id, 17)]

    def test_uses_running_total(self, db_engine, triggers, points):
        scoring_service.score_attempt(db_engine, triggers, _make_attempt(metric_id=points.id))
        scored = scoring_service.score_attempt(
            db_engine, triggers, _make_attempt(metric_id=points.id, attempt_count=2),
        )
        assert scored.score.points_added == 7
        assert scored.score.total_score == 24
        assert scored.trigger.metrics_updated[0].value == 24

    def test_explicit_value_bypasses_default_increment(self, db_engine, triggers):
        metric = metric_service.create_metric(
            db_engine, name="xp", units="xp", default_increment_value=1000,
        )
        scored = scoring_service.score_attempt(
            db_engine, triggers, _make_attempt(metric_id=metric.id),
        )
        assert scored.trigger.metrics_updated[0].value == 17

    def test_zero_points_writes_nothing(self, db_engine, triggers, points):
        attempt = _make_attempt(
            metric_id=points.id, grades=[QuestionGrade(5, False)] * 5, base_points=0,
        )
        scored = scoring_service.score_attempt(db_engine, triggers, attempt)
        assert scored.score.points_added == 0
        assert scored.trigger.is_empty
        with pytest.raises(NotFoundError):
            metric_service.list_user_metrics(db_engine, "u1")

    def test_unknown_metric(self, db_engine, triggers):
        with pytest.raises(NotFoundError):
            scoring_service.score_attempt(db_engine, triggers, _make_attempt(metric_id=999))

    def test_stored_weights_are_applied(self, db_engine, triggers, points):
        scoring_service.update_weights(db_engine, streak_bonus=0)
        scored = scoring_service.score_attempt(
            db_engine, triggers, _make_attempt(metric_id=points.id),
        )
        # 17.5 - 6 = 11.5
        assert scored.score.points_added == 11
