"""API tests for the FastAPI server, using TestClient with an injected service."""

from __future__ import annotations

import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from farmsync.db.database import Database
from farmsync.services.farm_service import FarmService
from farmsync.sync.backoff import BackoffPolicy
from farmsync.sync.engine import SyncEngine
from farmsync.sync.queue import SyncQueue
from farmsync.sync.transport import DeliveryResult
from farmsync.utils.clock import FixedClock
from server import app as server_app

NOW = datetime(2024, 5, 15, 9, 0, 0, tzinfo=timezone.utc)
OWNER = "farmer_1"


def _make_db() -> Database:
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    db = Database(path=Path(tmp.name))
    db.init()
    return db


class _ServerTestCase(unittest.TestCase):
    def setUp(self):
        self.db = _make_db()
        self.transport = MagicMock()
        self.transport.deliver.return_value = DeliveryResult.success()
        clock = FixedClock(NOW)
        queue = SyncQueue(self.db, self.transport, clock=clock, backoff=BackoffPolicy.disabled())
        engine = SyncEngine(self.db, queue, online=False)
        self.service = FarmService(self.db, engine, clock=clock)
        server_app.set_service(self.service)
        self.client = TestClient(server_app.app)

    def tearDown(self):
        server_app.set_service(None)
        self.db.close()

    def _seed(self) -> dict:
        plot = self.client.post(f"/api/farms/{OWNER}/plots", json={"name": "North", "size_acres": 2}).json()["plot"]
        crop = self.client.post(f"/api/farms/{OWNER}/crops", json={
            "plot_id": plot["id"], "name": "Wheat", "planting_date": "2024-03-01", "status": "growing",
        }).json()["crop"]
        item = self.client.post(f"/api/farms/{OWNER}/inventory-items", json={
            "name": "Urea", "category": "fertilizers", "unit": "kg", "min_threshold": 10,
        }).json()["item"]
        return {"plot": plot, "crop": crop, "item": item}

    def _stock_in(self, item_id: str, quantity: float):
        return self.client.post(f"/api/farms/{OWNER}/stock-movements", json={
            "item_id": item_id, "type": "in", "quantity": quantity, "date": "2024-05-01",
        })


# ===========================================================================
# 1. Status & availability
# ===========================================================================

class TestStatus(_ServerTestCase):
    def test_status(self):
        resp = self.client.get("/api/status")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["status"], "ok")
        self.assertEqual(data["sync"]["connectivity"], "offline")
        self.assertTrue(data["services"]["database"])

    def test_503_without_service(self):
        server_app.set_service(None)
        resp = self.client.get(f"/api/farms/{OWNER}/dashboard")
        self.assertEqual(resp.status_code, 503)


# ===========================================================================
# 2. Records, stock and usage
# ===========================================================================

class TestRecordEndpoints(_ServerTestCase):
    def test_create_records_and_stock(self):
        seeded = self._seed()
        self.assertEqual(self._stock_in(seeded["item"]["id"], 50).status_code, 201)
        resp = self.client.get(f"/api/farms/{OWNER}/stock")
        items = resp.json()["items"]
        self.assertEqual(items[0]["current_quantity"], 50)
        self.assertFalse(items[0]["is_low_stock"])
        self.assertEqual(self.client.get(f"/api/farms/{OWNER}/stock?low_only=true").json()["count"], 0)

    def test_list_plots_and_crops(self):
        seeded = self._seed()
        plots = self.client.get(f"/api/farms/{OWNER}/plots").json()
        self.assertEqual([p["id"] for p in plots["plots"]], [seeded["plot"]["id"]])
        crops = self.client.get(f"/api/farms/{OWNER}/crops", params={"plot_id": seeded["plot"]["id"]}).json()
        self.assertEqual(crops["count"], 1)
        self.assertEqual(crops["crops"][0]["name"], "Wheat")
        self.assertEqual(self.client.get("/api/farms/farmer_2/crops").json()["count"], 0)

    def test_crop_for_missing_plot(self):
        resp = self.client.post(f"/api/farms/{OWNER}/crops", json={
            "plot_id": "plot_missing", "name": "Wheat", "planting_date": "2024-03-01",
        })
        self.assertEqual(resp.status_code, 404)

    def test_invalid_movement_rejected(self):
        seeded = self._seed()
        resp = self.client.post(f"/api/farms/{OWNER}/stock-movements", json={
            "item_id": seeded["item"]["id"], "type": "in", "quantity": 0, "date": "2024-05-01",
        })
        self.assertEqual(resp.status_code, 422)

    def test_usage_with_advisory(self):
        seeded = self._seed()
        self._stock_in(seeded["item"]["id"], 50)
        resp = self.client.post(f"/api/farms/{OWNER}/usage", json={
            "plot_id": seeded["plot"]["id"], "crop_id": seeded["crop"]["id"],
            "item_id": seeded["item"]["id"], "quantity_used": 45,
            "usage_date": "2024-05-15", "usage_time": "07:00", "rain_probability": 85,
        })
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual(data["advisory"]["priority"], "high")
        self.assertEqual(data["movement"]["type"], "out")
        alerts = self.client.get(f"/api/farms/{OWNER}/alerts").json()["alerts"]
        self.assertEqual([a["type"] for a in alerts], ["low_stock"])

    def test_usage_insufficient_stock(self):
        seeded = self._seed()
        self._stock_in(seeded["item"]["id"], 5)
        resp = self.client.post(f"/api/farms/{OWNER}/usage", json={
            "plot_id": seeded["plot"]["id"], "crop_id": seeded["crop"]["id"],
            "item_id": seeded["item"]["id"], "quantity_used": 6,
            "usage_date": "2024-05-15", "usage_time": "07:00",
        })
        self.assertEqual(resp.status_code, 409)

    def test_update_crop(self):
        seeded = self._seed()
        resp = self.client.patch(f"/api/crops/{seeded['crop']['id']}", json={"status": "harvested"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["crop"]["status"], "harvested")
        self.assertEqual(self.client.patch("/api/crops/crop_missing", json={"status": "harvested"}).status_code, 404)

    def test_delete_record(self):
        seeded = self._seed()
        resp = self.client.delete(f"/api/records/plots/{seeded['plot']['id']}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.delete("/api/records/alerts/x").status_code, 422)
        self.assertEqual(self.client.delete("/api/records/plots/plot_missing").status_code, 404)

    def test_dashboard(self):
        self._seed()
        self.client.post(f"/api/farms/{OWNER}/expenses", json={
            "category": "labor", "amount": 40, "date": "2024-05-02",
        })
        data = self.client.get(f"/api/farms/{OWNER}/dashboard").json()
        self.assertEqual(data["total_plots"], 1)
        self.assertEqual(data["active_crops"], 1)
        self.assertEqual(data["low_stock_items"], 1)
        self.assertEqual(data["monthly_expense"], 40.0)
        self.assertEqual(data["pending_syncs"], 4)


# ===========================================================================
# 3. Alerts & weather
# ===========================================================================

class TestAlertEndpoints(_ServerTestCase):
    def test_check_and_mark_read(self):
        self._seed()
        created = self.client.post(f"/api/farms/{OWNER}/alerts/check").json()
        self.assertEqual(created["created"], 1)
        self.assertEqual(self.client.post(f"/api/farms/{OWNER}/alerts/check").json()["created"], 0)
        alert_id = created["alerts"][0]["id"]
        self.assertEqual(self.client.post(f"/api/alerts/{alert_id}/read").status_code, 200)
        self.assertEqual(self.client.get(f"/api/farms/{OWNER}/alerts").json()["count"], 0)
        self.assertEqual(self.client.post("/api/alerts/alert_missing/read").status_code, 404)

    def test_rain_check(self):
        high = self.client.get("/api/weather/rain-check", params={"probability": 85}).json()
        self.assertFalse(high["spray_ok"])
        self.assertEqual(high["advisory"]["priority"], "high")
        low = self.client.get("/api/weather/rain-check", params={"probability": 40}).json()
        self.assertTrue(low["spray_ok"])
        self.assertIsNone(low["advisory"])
        bad = self.client.get("/api/weather/rain-check", params={"probability": 150})
        self.assertEqual(bad.status_code, 422)


# ===========================================================================
# 4. Sync endpoints
# ===========================================================================

class TestSyncEndpoints(_ServerTestCase):
    def test_queue_then_connectivity_drains(self):
        self._seed()
        queue = self.client.get(f"/api/farms/{OWNER}/sync/queue").json()
        self.assertEqual(queue["count"], 3)

        offline = self.client.post("/api/sync/drain", json={"owner_id": OWNER}).json()
        self.assertEqual(offline["processed"], 0)

        resp = self.client.post("/api/sync/connectivity", json={"online": True}).json()
        self.assertEqual(resp["connectivity"], "online")
        self.assertEqual(len(resp["outcomes"]), 3)
        self.assertEqual(self.client.get(f"/api/farms/{OWNER}/sync/queue").json()["count"], 0)

    def test_retry_conflicted_entry(self):
        self.transport.deliver.return_value = DeliveryResult.failure("API error: 500 Internal Server Error")
        self.client.post(f"/api/farms/{OWNER}/plots", json={"name": "North", "size_acres": 2})
        self.client.post("/api/sync/connectivity", json={"online": True})
        for _ in range(4):
            self.client.post("/api/sync/drain")
        queue = self.client.get(f"/api/farms/{OWNER}/sync/queue").json()
        self.assertEqual(queue["conflicts"], 1)

        self.transport.deliver.return_value = DeliveryResult.success()
        entry_id = queue["entries"][0]["id"]
        resp = self.client.post(f"/api/sync/queue/{entry_id}/retry")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["outcomes"][0]["status"], "synced")
        self.assertEqual(self.client.post("/api/sync/queue/sync_missing/retry").status_code, 404)


if __name__ == "__main__":
    unittest.main()
