"""
Integration tests for the HTTP surface.

Each test builds its own app around temporary config files so nothing
is shared between tests.
"""
import json
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from src.config import Settings
from src.core.exceptions import (
    ConfigurationException,
    ResourceNotFoundException,
    ValidationException,
)
from src.main import create_app


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        environment="development",
        quiet_config_path=tmp_path / "quiet_thresholds.yaml",
        schedule_config_path=tmp_path / "business_schedule.yaml",
        escalation_sweep_interval_seconds=0,
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def report_all(client, status="ok"):
    responses = []
    for component in ("api", "storage", "realtime"):
        responses.append(client.post(
            "/monitoring/heartbeat/reports",
            json={"component": component, "status": status},
        ))
    return responses


class TestHeartbeatApi:

    @pytest.mark.integration
    def test_initial_snapshot_is_down(self, client):
        response = client.get("/monitoring/heartbeat/snapshot")

        assert response.status_code == 200
        body = response.json()
        assert body["overall"] == "down"
        assert body["label"] == "Disconnected"
        assert body["color"] == "#f87171"
        assert body["tooltip"] == ["API: DOWN", "Storage: DOWN", "Realtime: DOWN"]

    @pytest.mark.integration
    def test_health_reflects_reports(self, client):
        assert client.get("/health").json()["status"] == "down"

        responses = report_all(client)

        assert [r.json()["tick_finalized"] for r in responses] == [False, False, True]
        assert responses[-1].json()["outcome"] == "recorded"
        health = client.get("/health").json()
        assert health["status"] == "healthy"
        assert health["checks"]["components"] == {"api": "ok", "storage": "ok", "realtime": "ok"}
        assert health["checks"]["scheduler"] == "running"

    @pytest.mark.integration
    def test_realtime_states_normalized(self, client):
        client.post("/monitoring/heartbeat/reports", json={"component": "api", "status": "ok"})
        client.post("/monitoring/heartbeat/reports", json={"component": "storage", "status": "ok"})
        response = client.post(
            "/monitoring/heartbeat/reports",
            json={"component": "realtime", "status": "connecting"},
        )

        assert response.json()["status"] == "degraded"
        snapshot = client.get("/monitoring/heartbeat/snapshot").json()
        assert snapshot["overall"] == "degraded"
        assert snapshot["label"] == "Partial outage"

    @pytest.mark.integration
    def test_unknown_component(self, client):
        response = client.post(
            "/monitoring/heartbeat/reports",
            json={"component": "payments", "status": "ok"},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["component"] == "payments"

    @pytest.mark.integration
    def test_timeline(self, client):
        report_all(client)

        response = client.get("/monitoring/heartbeat/timeline", params={"window_hours": 2})

        body = response.json()
        assert body["window_hours"] == 2
        assert body["segments"][-1]["status"] == "ok"
        assert sum(s["fraction_of_window"] for s in body["segments"]) == pytest.approx(1.0)

    @pytest.mark.integration
    def test_timeline_rejects_bad_window(self, client):
        response = client.get("/monitoring/heartbeat/timeline", params={"window_hours": -1})

        assert response.status_code == 422


class TestEscalationApi:

    @pytest.mark.integration
    def test_long_silence_escalates(self, client):
        last = datetime.now(timezone.utc) - timedelta(hours=100)
        client.put("/monitoring/cases/c1/activity", json={"at": last.isoformat()})
        client.put("/monitoring/cases/c2/activity")

        body = client.get("/monitoring/escalations").json()

        assert body["tiers"] == {"c1": "alert", "c2": "none"}
        assert body["summary"] == {
            "total_cases": 2, "none_count": 1, "warning_count": 0, "alert_count": 1
        }

    @pytest.mark.integration
    def test_stale_touch_not_applied(self, client):
        now = datetime.now(timezone.utc)
        client.put("/monitoring/cases/c1/activity", json={"at": now.isoformat()})

        response = client.put(
            "/monitoring/cases/c1/activity",
            json={"at": (now - timedelta(hours=1)).isoformat()},
        )

        assert response.json()["updated"] is False

    @pytest.mark.integration
    def test_evaluate_case(self, client):
        last = datetime.now(timezone.utc) - timedelta(hours=100)
        client.put("/monitoring/cases/c1/activity", json={"at": last.isoformat()})

        body = client.get("/monitoring/cases/c1/escalation").json()

        assert body["tier"] == "alert"
        assert body["message"].startswith("Quiet for 100h")

    @pytest.mark.integration
    def test_forget_case(self, client):
        client.put("/monitoring/cases/c1/activity")

        assert client.delete("/monitoring/cases/c1").status_code == 204
        assert client.delete("/monitoring/cases/c1").status_code == 404
        assert client.get("/monitoring/cases/c1/escalation").status_code == 404


class TestQuietSettingsApi:

    @pytest.mark.integration
    def test_defaults(self, client):
        assert client.get("/monitoring/settings/quiet").json() == {
            "businessWarningHours": 12,
            "businessAlertHours": 24,
            "offHoursWarningHours": 36,
            "offHoursAlertHours": 72,
        }

    @pytest.mark.integration
    def test_partial_update(self, client):
        rejected = client.put("/monitoring/settings/quiet", json={"businessWarningHours": 30})
        accepted = client.put("/monitoring/settings/quiet", json={"businessWarningHours": 6})

        assert rejected.status_code == 422
        assert accepted.status_code == 200
        assert accepted.json()["businessWarningHours"] == 6
        assert client.get("/monitoring/settings/quiet").json()["businessAlertHours"] == 24

    @pytest.mark.integration
    def test_partial_update_with_unknown_key_rejected(self, client):
        before = client.get("/monitoring/settings/quiet").json()

        response = client.put(
            "/monitoring/settings/quiet",
            json={"businessWarningHours": 1, "extra": 2},
        )

        assert response.status_code == 422
        assert client.get("/monitoring/settings/quiet").json() == before

    @pytest.mark.integration
    def test_import_with_extra_key_rejected(self, client):
        before = client.get("/monitoring/settings/quiet").json()

        response = client.post(
            "/monitoring/settings/quiet/import",
            json={"businessWarningHours": 1, "extra": 2},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["unknown_keys"] == ["extra"]
        assert client.get("/monitoring/settings/quiet").json() == before

    @pytest.mark.integration
    def test_import_then_export(self, client):
        imported = client.post(
            "/monitoring/settings/quiet/import",
            json={"businessWarningHours": 2, "businessAlertHours": 4},
        )
        exported = client.get("/monitoring/settings/quiet/export")

        assert imported.status_code == 200
        assert exported.headers["content-type"].startswith("application/json")
        assert json.loads(exported.text) == {
            "businessWarningHours": 2,
            "businessAlertHours": 4,
            "offHoursWarningHours": 36,
            "offHoursAlertHours": 72,
        }


class TestMiddleware:

    @pytest.mark.integration
    def test_correlation_id_generated(self, client):
        response = client.get("/")

        assert response.headers.get("X-Correlation-ID")
        assert response.json()["service"] == "health-escalation-service"

    @pytest.mark.integration
    def test_correlation_id_propagated(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "trace-123"})

        assert response.headers["X-Correlation-ID"] == "trace-123"

    @pytest.mark.integration
    @pytest.mark.parametrize("exc,expected", [
        (ValidationException("bad input", {"field": "at"}), 422),
        (ResourceNotFoundException("Case", "c9"), 404),
        (ConfigurationException("broken file"), 400),
    ])
    def test_application_exceptions_mapped(self, settings, exc, expected):
        app = create_app(settings)

        @app.get("/boom")
        async def boom():
            raise exc

        with TestClient(app) as client:
            response = client.get("/boom", headers={"X-Correlation-ID": "trace-9"})

        assert response.status_code == expected
        assert response.json()["detail"] == exc.message
        assert response.json()["correlation_id"] == "trace-9"
