"""
tests/test_api_routes.py — FastAPI Route Integration Tests
===========================================================
Drives the HTTP surface through the FastAPI TestClient against the
in-memory SQLite engine.

These tests verify:
- Health endpoint availability
- Error taxonomy → status code mapping
- Event/metric trigger round trips
- Scoring and weights endpoints
"""

from __future__ import annotations

import pytest

API = "/api/gamification"


def _create_metric(client, default=1, name="points") -> int:
    resp = client.post(f"{API}/metrics", json={
        "name": name, "units": "pts", "default_increment_value": default,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _create_event(client, schema=None) -> int:
    resp = client.post(f"{API}/events", json={
        "name": "quiz_completed",
        "payload_schema": schema or {"score": "number"},
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _create_achievement(client, metric_id, count) -> int:
    resp = client.post(f"{API}/achievements", json={
        "name": f"reach {count}",
        "description": "d",
        "badge_url": "https://badges.example/b.png",
        "metric_id": metric_id,
        "metric_count": count,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Error mapping
# ===========================================================================
class TestErrorMapping:
    def test_not_found_is_404(self, client):
        resp = client.get(f"{API}/events/12345")
        assert resp.status_code == 404
        assert "12345" in resp.json()["detail"]

    def test_validation_error_is_400(self, client):
        resp = client.post(f"{API}/events", json={"name": "e", "payload_schema": {"x": "date"}})
        assert resp.status_code == 400

    def test_rule_for_missing_event_is_400(self, client):
        metric_id = _create_metric(client)
        resp = client.post(f"{API}/events/999/rules", json={"name": "r", "metric_id": metric_id})
        assert resp.status_code == 400

    def test_conflict_is_409(self, client):
        metric_id = _create_metric(client)
        body = {"metric_id": metric_id, "value": 1}
        assert client.post(f"{API}/users/u1/metrics", json=body).status_code == 201
        assert client.post(f"{API}/users/u1/metrics", json=body).status_code == 409

    def test_request_body_validation_is_422(self, client):
        resp = client.post(f"{API}/engine/metric-trigger", json={"user_id": "u1", "metrics": []})
        assert resp.status_code == 422

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_increment_is_422(self, client, literal):
        metric_id = _create_metric(client)
        resp = client.post(
            f"{API}/engine/metric-trigger",
            content=f'{{"user_id": "u1", "metrics": [{{"metric_id": {metric_id}, "value": {literal}}}]}}',
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 422
        assert client.get(f"{API}/users/u1/metrics").status_code == 404


# ===========================================================================
# Engine endpoints
# ===========================================================================
class TestEngineEndpoints:
    def test_metric_trigger_unlocks(self, client):
        metric_id = _create_metric(client, default=10)
        ach_id = _create_achievement(client, metric_id, 10)

        resp = client.post(f"{API}/engine/metric-trigger", json={
            "user_id": "u1", "metrics": [{"metric_id": metric_id}],
        })
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["metrics_updated"] == [{"metric_id": metric_id, "value": 10}]
        assert [a["achievement_id"] for a in data["achievements_unlocked"]] == [ach_id]
        assert data["achievements_unlocked"][0]["unlocked_at"]

        held = client.get(f"{API}/users/u1/achievements")
        assert [a["achievement_id"] for a in held.json()] == [ach_id]

    def test_metric_trigger_duplicates_are_400(self, client):
        metric_id = _create_metric(client)
        resp = client.post(f"{API}/engine/metric-trigger", json={
            "user_id": "u1", "metrics": [{"metric_id": metric_id}, {"metric_id": metric_id}],
        })
        assert resp.status_code == 400

    def test_metric_trigger_unknown_metric_is_404(self, client):
        resp = client.post(f"{API}/engine/metric-trigger", json={
            "user_id": "u1", "metrics": [{"metric_id": 77}],
        })
        assert resp.status_code == 404

    def test_event_trigger(self, client):
        metric_id = _create_metric(client, default=2)
        event_id = _create_event(client)
        rule = client.post(f"{API}/events/{event_id}/rules", json={
            "name": "pass", "metric_id": metric_id, "logic": {">=": [{"var": "score"}, 50]},
        })
        assert rule.status_code == 201, rule.text

        hit = client.post(f"{API}/engine/event-trigger", json={
            "user_id": "u1", "event_id": event_id, "event_payload": {"score": 75},
        })
        assert hit.status_code == 200
        assert hit.json()["metrics_updated"] == [{"metric_id": metric_id, "value": 2}]

        miss = client.post(f"{API}/engine/event-trigger", json={
            "user_id": "u1", "event_id": event_id, "event_payload": {"score": 10},
        })
        assert miss.status_code == 200
        assert miss.json() == {"metrics_updated": [], "achievements_unlocked": []}

    def test_event_trigger_bad_payload_is_400(self, client):
        metric_id = _create_metric(client)
        event_id = _create_event(client)
        client.post(f"{API}/events/{event_id}/rules", json={"name": "r", "metric_id": metric_id})
        resp = client.post(f"{API}/engine/event-trigger", json={
            "user_id": "u1", "event_id": event_id, "event_payload": {"score": "high"},
        })
        assert resp.status_code == 400
        assert "score" in resp.json()["detail"]


# ===========================================================================
# Layer CRUD
# ===========================================================================
class TestLayerEndpoints:
    def test_delete_event_cascades_rules(self, client):
        metric_id = _create_metric(client)
        event_id = _create_event(client)
        for name in ("a", "b"):
            client.post(f"{API}/events/{event_id}/rules", json={"name": name, "metric_id": metric_id})

        resp = client.delete(f"{API}/events/{event_id}")
        assert resp.status_code == 200
        assert resp.json()["rules_deleted"] == 2
        assert client.get(f"{API}/events/{event_id}/rules").status_code == 404

    def test_patch_rule_logic(self, client):
        metric_id = _create_metric(client)
        event_id = _create_event(client)
        rule_id = client.post(
            f"{API}/events/{event_id}/rules", json={"name": "r", "metric_id": metric_id},
        ).json()["id"]

        resp = client.patch(f"{API}/rules/{rule_id}", json={"logic": {"bogus": []}})
        assert resp.status_code == 400
        resp = client.patch(f"{API}/rules/{rule_id}", json={"logic": {"==": [1, 1]}})
        assert resp.status_code == 200
        assert resp.json()["logic"] == {"==": [1, 1]}

    def test_patch_without_fields_is_400(self, client):
        event_id = _create_event(client)
        assert client.patch(f"{API}/events/{event_id}", json={}).status_code == 400


# ===========================================================================
# Scoring
# ===========================================================================
class TestScoringEndpoints:
    def test_weights_round_trip(self, client):
        assert client.get(f"{API}/weights").json()["streak_bonus"] == 3
        resp = client.put(f"{API}/weights", json={"streak_bonus": 4})
        assert resp.status_code == 200
        assert resp.json()["streak_bonus"] == 4
        assert client.get(f"{API}/weights").json()["streak_bonus"] == 4

    @pytest.mark.parametrize("attempt_count,expected", [(1, 17), (2, 7)])
    def test_score(self, client, attempt_count, expected):
        metric_id = _create_metric(client)
        resp = client.post(f"{API}/score", json={
            "user_id": "u1",
            "metric_id": metric_id,
            "grades": [{"confidence": 4, "correct": True}, {"confidence": 2, "correct": False}],
            "base_points": 10,
            "hint_count": 3,
            "streaks": 2,
            "time_taken": 50,
            "ideal_time": 60,
            "attempt_count": attempt_count,
        })
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["points_added"] == expected
        assert data["metrics_updated"] == [{"metric_id": metric_id, "value": expected}]

    def test_confidence_out_of_range_is_422(self, client):
        metric_id = _create_metric(client)
        resp = client.post(f"{API}/score", json={
            "user_id": "u1", "metric_id": metric_id,
            "grades": [{"confidence": 9, "correct": True}],
        })
        assert resp.status_code == 422
