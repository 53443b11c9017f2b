"""
API Tests
=========

HTTP surface of the presence service, exercised through TestClient.
"""

import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from pulse_sense import main
from pulse_sense.ingest import SignalIngestor
from pulse_sense.main import app


def _now_ms():
    return int(time.time() * 1000)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


class TestServiceEndpoints:
    """Tests for info, health and metrics."""
    
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "PulseSense"
    
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
    
    def test_metrics(self, client):
        data = client.get("/metrics").json()
        assert data["engine"]["source_count"] == 0
        assert data["tracker"]["projection"] == "compass_cone"


class TestIngestEndpoints:
    """Tests for scan ingest and tracker queries."""
    
    def test_ble_ingest(self, client):
        now = _now_ms()
        for offset in range(8):
            response = client.post(
                "/ingest/ble",
                json={
                    "address": "02:00:00:00:00:01",
                    "rssi": -60,
                    "timestamp_ms": now + offset * 100,
                    "manufacturer_data": {"76": "0215"},
                },
            )
            assert response.status_code == 202
            assert response.json() == {"accepted": 1}
        
        debug = client.get("/debug").json()
        assert debug["total_tracks"] == 1
        assert debug["trackable_count"] == 1
        
        viewport = client.put("/viewport", json={"width": 1080, "height": 1920})
        assert viewport.json()["dot_count"] == 1
        assert len(client.get("/dots").json()["dots"]) == 1
        assert client.get("/summary").json()["total_devices"] == 1
    
    def test_wifi_ingest(self, client):
        response = client.post(
            "/ingest/wifi",
            json={
                "timestamp_ms": _now_ms(),
                "results": [
                    {"bssid": "aa:bb:cc:dd:ee:01", "rssi": -45},
                    {"bssid": "aa:bb:cc:dd:ee:02", "rssi": -70},
                ],
            },
        )
        
        assert response.status_code == 202
        assert response.json() == {"accepted": 2}
    
    def test_invalid_payload_rejected(self, client):
        response = client.post("/ingest/ble", json={"rssi": 100, "timestamp_ms": 0})
        assert response.status_code == 422
        
        response = client.post("/ingest/ble", json={"rssi": -60, "timestamp_ms": 0, "raw_hex": "xyz"})
        assert response.status_code == 422
    
    def test_yaw(self, client):
        response = client.post("/yaw", json={"timestamp_ms": _now_ms(), "yaw_rad": 1.2})
        assert response.status_code == 200
        assert client.get("/debug").json()["yaw_rad"] == pytest.approx(1.2)
    
    def test_clusters_before_first_tick(self, client):
        data = client.get("/clusters").json()
        assert data["clusters"] == []
        
        summary = client.get("/clusters/summary").json()
        assert summary["total_devices"] == 0


class _FailingScanSource:
    """Scan source whose radio always errors."""
    
    def advertisements(self, timestamp_ms):
        raise RuntimeError("radio off")
    
    def wifi_results(self, timestamp_ms):
        return []


class TestMockScanner:
    """Tests for the mock scanner loop."""
    
    def test_failing_batch_is_counted_and_loop_continues(self, monkeypatch):
        monkeypatch.setattr(main, "_mock_source", _FailingScanSource())
        monkeypatch.setattr(main, "_ingestor", SignalIngestor())
        monkeypatch.setattr(main, "_mock_error_count", 0)
        monkeypatch.setattr(main, "_shutdown_flag", False)
        monkeypatch.setattr(main.settings.ingest, "mock_interval_ms", 50)
        
        async def scenario():
            task = asyncio.create_task(main.run_mock_scanner())
            await asyncio.sleep(0.3)
            still_running = not task.done()
            await main._cancel(task)
            return still_running
        
        assert asyncio.run(scenario())
        assert main._mock_error_count >= 2
