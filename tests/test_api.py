"""
Flask API tests using the app factory and test client.
"""

import pytest

from adas_scrub.api import create_app

from conftest import BUMPER_ESTIMATE, PAINT_ONLY_ESTIMATE, WINDSHIELD_ESTIMATE


@pytest.fixture
def client(tables, settings):
    app = create_app(tables=tables, settings=settings)
    app.config["TESTING"] = True
    return app.test_client()


class TestScrubEndpoint:

    def test_missing_estimate_text(self, client):
        resp = client.post("/api/scrub", json={"brand": "Honda"})
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "estimate_text required"}

    def test_invalid_field(self, client):
        resp = client.post("/api/scrub", json={"estimate_text": BUMPER_ESTIMATE, "year": "not a year"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "invalid request"

    def test_json_result(self, client):
        resp = client.post("/api/scrub", json={
            "estimate_text": BUMPER_ESTIMATE,
            "brand": "Toyota",
            "year": 2021,
            "secondary_report_text": "Front Parking Sensors",
        })
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["reconciliation"]["status"] == "DISCREPANCY"
        assert [c["name"] for c in data["calibrations_required"]] == ["Front Parking Sensors"]
        assert data["summary"]["needs_attention"] is True
        assert data["error"] is None

    def test_text_report(self, client):
        resp = client.post("/api/scrub?format=text", json={"estimate_text": WINDSHIELD_ESTIMATE})
        assert resp.status_code == 200
        assert resp.mimetype == "text/plain"
        assert "ADAS ESTIMATE SCRUB REPORT" in resp.get_data(as_text=True)


class TestOtherEndpoints:

    def test_health(self, client):
        assert client.get("/api/health").get_json() == {"status": "ok"}

    def test_quick_scan(self, client):
        data = client.post("/api/quick-scan", json={"estimate_text": PAINT_ONLY_ESTIMATE}).get_json()
        assert data["total_repair_lines"] == 3
        assert data["has_adas_relevant_repairs"] is False

    def test_quick_scan_requires_text(self, client):
        assert client.post("/api/quick-scan", json={}).status_code == 400

    def test_systems(self, client):
        data = client.get("/api/systems").get_json()
        by_name = {s["system"]: s for s in data["systems"]}
        assert "windshield" in by_name["Front Camera"]["triggered_by"]
        assert "Honda" in data["brands"]

    def test_decode_vin(self, client):
        data = client.get("/api/decode-vin/JHMCV1F31PA000000").get_json()
        assert data["brand"] == "Honda"
        assert data["year"] == 2023

    def test_decode_vin_rejects_bad_check_digit(self, client):
        resp = client.get("/api/decode-vin/1HGCV1F35LA000000")
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "invalid VIN"}
