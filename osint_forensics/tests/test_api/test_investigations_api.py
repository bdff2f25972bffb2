"""
Tests for the Investigation API
===============================

Runs the FastAPI app in a TestClient with an injected session that uses
stub runners, so a full investigation finishes in well under a second.
"""

import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from core.exceptions import StageExecutionError
from core.models import PipelineKind
from infra.bootstrap import LocalInvestigationBootstrap
from infra.realtime import ConnectionHub, RealtimeChannel
from orchestration.session import InvestigationSession

BASE = "/api/v1/investigations"


def wait_until_settled(client: TestClient, timeout: float = 3.0) -> dict:
    """Poll /current until the investigation reaches a terminal status."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"{BASE}/current").json()
        if body["status"] in ("completed", "error"):
            return body
        time.sleep(0.02)
    raise AssertionError("investigation did not settle in time")


@pytest.fixture
def build_client(fast_settings, registry_factory):
    """Factory for TestClients over a freshly wired app."""
    def factory(registry=None, bootstrap=None):
        hub = ConnectionHub()
        session = InvestigationSession(
            bootstrap=bootstrap or LocalInvestigationBootstrap(settings=fast_settings),
            registry=registry or registry_factory(),
            channel_factory=lambda: RealtimeChannel(hub=hub, settings=fast_settings),
            settings=fast_settings,
        )
        return TestClient(create_app(settings=fast_settings, session=session, hub=hub))
    return factory


class TestServiceEndpoints:
    """Test root and health endpoints."""

    def test_root(self, build_client):
        with build_client() as client:
            response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "OSINT Forensics API"

    def test_health(self, build_client):
        with build_client() as client:
            assert client.get("/health").json() == {"status": "healthy"}


class TestInvestigationEndpoints:
    """Test the investigation lifecycle over HTTP."""

    def test_no_current_investigation(self, build_client):
        with build_client() as client:
            assert client.get(f"{BASE}/current").status_code == 404
            assert client.post(f"{BASE}/current/stop").status_code == 404
            assert client.get(f"{BASE}/current/summary").status_code == 404

    def test_empty_query_rejected(self, build_client):
        with build_client() as client:
            response = client.post(BASE, json={"query": ""})

        assert response.status_code == 422

    def test_unknown_pipeline_kind_rejected(self, build_client):
        with build_client() as client:
            response = client.post(BASE, json={"query": "x", "pipelines": ["tarot-reading"]})

        assert response.status_code == 422

    def test_start_and_complete(self, build_client, scenario_query):
        with build_client() as client:
            response = client.post(BASE, json={"query": scenario_query})
            assert response.status_code == 201
            body = response.json()

            assert body["status"] == "started"
            assert body["investigation"]["status"] == "active"
            assert len(body["investigation"]["pipelines"]) == 5
            assert body["live_url"].endswith(f"/{body['investigation_id']}/live")

            final = wait_until_settled(client)
            summary = client.get(f"{BASE}/current/summary").json()

        assert final["status"] == "completed"
        assert final["summary"] == "Investigation completed. 5/5 pipelines successful."
        assert summary["completed_pipelines"] == 5
        assert summary["total_result_items"] == 15

    def test_partial_failure(self, build_client, registry_factory, scenario_query):
        registry = registry_factory(
            failures={PipelineKind.ALIAS_MAPPING: StageExecutionError("Alias service unavailable")}
        )
        with build_client(registry=registry) as client:
            client.post(BASE, json={"query": scenario_query})
            final = wait_until_settled(client)

        assert final["status"] == "error"
        assert final["pipelines"][0]["error_message"] == "Alias service unavailable"
        assert final["summary"] == "Investigation completed. 4/5 pipelines successful."

    def test_explicit_pipelines(self, build_client):
        with build_client() as client:
            body = client.post(
                BASE, json={"query": "check a@b.io", "pipelines": ["geo-ip-lookup", "alias-mapping"]}
            ).json()
            wait_until_settled(client)

        assert [p["id"] for p in body["investigation"]["pipelines"]] == ["geo-ip-lookup", "alias-mapping"]

    def test_bootstrap_failure(self, build_client):
        bootstrap = MagicMock()
        bootstrap.start = AsyncMock(side_effect=RuntimeError("backend down"))

        with build_client(bootstrap=bootstrap) as client:
            response = client.post(BASE, json={"query": "check a@b.io"})

        assert response.status_code == 502
        assert response.json() == {"detail": "backend down", "error_code": "InvestigationBootstrapError"}

    def test_toggle_and_stop(self, build_client, registry_factory):
        with build_client(registry=registry_factory(delay=0.1)) as client:
            client.post(BASE, json={"query": "check a@b.io"})

            toggled = client.post(f"{BASE}/current/toggle").json()
            stopped = client.post(f"{BASE}/current/stop").json()
            again = client.post(f"{BASE}/current/stop").json()

        assert toggled["status"] == "paused"
        assert stopped["status"] == "stopped"
        assert stopped["investigation"]["ended_at"] is not None
        assert again["investigation"]["ended_at"] == stopped["investigation"]["ended_at"]

    def test_report_downloads(self, build_client):
        with build_client() as client:
            client.post(BASE, json={"query": "check a@b.io"})
            wait_until_settled(client)

            as_json = client.get(f"{BASE}/current/report")
            as_csv = client.get(f"{BASE}/current/report", params={"format": "csv"})
            as_pdf = client.get(f"{BASE}/current/report", params={"format": "pdf"})

        assert as_json.status_code == 200
        assert as_json.json()["statistics"]["total_pipelines"] == 5
        assert "attachment" in as_json.headers["content-disposition"]
        assert as_csv.headers["content-type"].startswith("text/csv")
        assert as_pdf.status_code == 415
        assert as_pdf.json() == {"detail": "Unsupported report format: pdf", "error_code": "ReportExportError"}


class TestLiveUpdates:
    """Test the live update WebSocket."""

    def test_connected_message_for_unknown_id(self, build_client):
        with build_client() as client:
            with client.websocket_connect(f"{BASE}/inv_missing/live") as websocket:
                message = websocket.receive_json()

        assert message["type"] == "CONNECTED"
        assert message["investigation_id"] == "inv_missing"
        assert "investigation" not in message["data"]

    def test_streams_stage_updates(self, build_client, registry_factory):
        with build_client(registry=registry_factory(delay=0.1)) as client:
            investigation_id = client.post(BASE, json={"query": "check a@b.io"}).json()["investigation_id"]

            with client.websocket_connect(f"{BASE}/{investigation_id}/live") as websocket:
                connected = websocket.receive_json()
                types = []
                while not types or types[-1] != "INVESTIGATION_COMPLETED":
                    types.append(websocket.receive_json()["type"])

        assert connected["type"] == "CONNECTED"
        assert connected["data"]["investigation"]["id"] == investigation_id
        assert "STAGE_COMPLETED" in types
