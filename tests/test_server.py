"""Tests for the JSON API."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def client(project_dir: Path):
    from fastapi.testclient import TestClient

    from studioreport.ui.server import create_app

    return TestClient(create_app(project_dir))


class TestEndpoints:
    def test_health(self, client) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_rollup(self, client) -> None:
        resp = client.post(
            "/api/rollup",
            json={"budget": 0, "total_spent": 10, "total_invoiced": 20000, "total_paid": 20000},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["spent_pct"] == 0
        assert body["paid_pct"] == 100
        assert body["remaining_to_pay"] == 0

    def test_rollup_negative_is_422(self, client) -> None:
        resp = client.post("/api/rollup", json={"budget": -1})
        assert resp.status_code == 422

    def test_timeline(self, client) -> None:
        resp = client.post(
            "/api/timeline",
            json={
                "items": [{"id": "a", "start_date": "2024-01-01", "end_date": "2024-03-31"}],
                "start": "2024-01-01",
                "end": "2024-03-31",
            },
        )
        assert resp.status_code == 200
        bar = resp.json()["bars"][0]
        assert bar["left_pct"] == 0
        assert bar["width_pct"] == pytest.approx(100)

    def test_timeline_no_dates(self, client) -> None:
        resp = client.post("/api/timeline", json={"items": [{"id": "a"}]})
        assert resp.status_code == 200
        assert resp.json()["bars"] is None

    def test_report_and_events(self, client, demo_rows) -> None:
        resp = client.post("/api/report", json=demo_rows)
        assert resp.status_code == 200
        assert resp.json()["financials"]["rollup"]["spent_pct"] == 85

        events = client.get("/api/events", params={"project_id": "demo-apartment"}).json()
        assert any(e["event_type"] == "report_built" for e in events)

    def test_report_bad_rows_is_400(self, client) -> None:
        resp = client.post(
            "/api/report",
            json={"project": {"id": "p"}, "invoices": [{"total": "??"}]},
        )
        assert resp.status_code == 400

    def test_report_non_string_status(self, client, demo_rows) -> None:
        demo_rows["invoices"] = [{"total": 10, "status": 1}]
        demo_rows["phases"][0]["status"] = 3
        resp = client.post("/api/report", json=demo_rows)
        assert resp.status_code == 200
        body = resp.json()
        assert body["financials"]["snapshot"]["total_paid"] == 0
        assert body["phases"][0]["status"]["key"] == "pending"
