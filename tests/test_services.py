"""Unit tests for the farm service facade.

The remote transport is mocked. DB tests use real temp SQLite.
"""

from __future__ import annotations

import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

from farmsync.config import SyncConfig
from farmsync.db.database import Database
from farmsync.db.record_store import RecordStore
from farmsync.exceptions import InsufficientStockError, RecordNotFoundError
from farmsync.models import (
    AlertPriority, AlertType, ApplicationMethod, Crop, CropStatus, Expense, ExpenseCategory,
    FieldUsageLog, InventoryCategory, InventoryItem, Plot, StockMovement, StockType,
    SyncOperation, SyncStatus, Unit,
)
from farmsync.services.farm_service import FarmService
from farmsync.sync.backoff import BackoffPolicy
from farmsync.sync.engine import SyncEngine
from farmsync.sync.queue import SyncQueue
from farmsync.sync.transport import DeliveryResult
from farmsync.utils.clock import FixedClock

NOW = datetime(2024, 5, 15, 9, 0, 0, tzinfo=timezone.utc)
OWNER = "farmer_1"


def _make_db() -> Database:
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    db = Database(path=Path(tmp.name))
    db.init()
    return db


class _ServiceTestCase(unittest.TestCase):
    online = False

    def setUp(self):
        self.db = _make_db()
        self.clock = FixedClock(NOW)
        self.transport = MagicMock()
        self.transport.deliver.return_value = DeliveryResult.success()
        queue = SyncQueue(self.db, self.transport, clock=self.clock, backoff=BackoffPolicy.disabled())
        self.engine = SyncEngine(self.db, queue, online=self.online)
        self.service = FarmService(self.db, self.engine, clock=self.clock)
        self.records = RecordStore(self.db)

    def tearDown(self):
        self.db.close()

    def _entries(self, table: str = None):
        entries = self.engine.queue.list_entries(OWNER)
        return [e for e in entries if table is None or e.table_name == table]

    def _plot(self) -> Plot:
        return self.service.add_plot(Plot(owner_id=OWNER, name="North", size_acres=2.5))

    def _crop(self, plot: Plot, **kw) -> Crop:
        return self.service.add_crop(Crop(
            owner_id=OWNER, plot_id=plot.id, name=kw.pop("name", "Wheat"),
            planting_date="2024-03-01", status=kw.pop("status", CropStatus.GROWING), **kw,
        ))

    def _item(self, threshold: float = 10) -> InventoryItem:
        return self.service.add_inventory_item(InventoryItem(
            owner_id=OWNER, name="Urea", category=InventoryCategory.FERTILIZERS,
            unit=Unit.KG, min_threshold=threshold,
        ))

    def _stock_in(self, item: InventoryItem, quantity: float) -> StockMovement:
        return self.service.record_stock_movement(StockMovement(
            owner_id=OWNER, item_id=item.id, type=StockType.IN, quantity=quantity, date="2024-05-01",
        ))

    def _usage(self, plot: Plot, crop: Crop, item: InventoryItem, quantity: float, rain: int = 10):
        return FieldUsageLog(
            owner_id=OWNER, plot_id=plot.id, crop_id=crop.id, item_id=item.id,
            quantity_used=quantity, usage_date="2024-05-15", usage_time="07:30",
            application_method=ApplicationMethod.SPREAD, rain_probability=rain,
        )


# ===========================================================================
# 1. Record creation queues sync
# ===========================================================================

class TestRecordCreation(_ServiceTestCase):
    def test_add_plot_queues_create(self):
        plot = self._plot()
        entries = self._entries("plots")
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].operation, SyncOperation.CREATE)
        self.assertEqual(entries[0].payload["name"], "North")
        self.assertEqual(entries[0].payload["created_at"], "2024-05-15T09:00:00Z")
        self.assertEqual(self.records.get_sync_status("plots", plot.id), SyncStatus.PENDING)

    def test_add_crop_requires_plot(self):
        with self.assertRaises(RecordNotFoundError):
            self.service.add_crop(Crop(owner_id=OWNER, plot_id="plot_missing", name="x",
                                       planting_date="2024-03-01"))
        self.assertEqual(self._entries(), [])

    def test_add_expense(self):
        expense = self.service.add_expense(Expense(
            owner_id=OWNER, category=ExpenseCategory.SEEDS, amount=120.0, date="2024-05-02",
        ))
        self.assertEqual(self._entries("expenses")[0].record_id, expense.id)

    def test_negative_expense_rejected(self):
        with self.assertRaises(ValueError):
            self.service.add_expense(Expense(
                owner_id=OWNER, category=ExpenseCategory.FUEL, amount=-1, date="2024-05-02",
            ))


class TestOnlineWritePath(_ServiceTestCase):
    online = True

    def test_write_is_delivered_immediately(self):
        plot = self._plot()
        self.transport.deliver.assert_called_once()
        self.assertEqual(self.records.get_sync_status("plots", plot.id), SyncStatus.SYNCED)

    def test_delivery_failure_keeps_record_pending(self):
        self.transport.deliver.return_value = DeliveryResult.failure("API error: 502 Bad Gateway")
        plot = self._plot()
        self.assertEqual(self.records.get_sync_status("plots", plot.id), SyncStatus.PENDING)
        self.assertEqual(self._entries()[0].retry_count, 1)


# ===========================================================================
# 2. Crop updates
# ===========================================================================

class TestCropUpdates(_ServiceTestCase):
    def test_update_crop_queues_snapshot_and_checks_alerts(self):
        plot = self._plot()
        crop = self._crop(plot)
        updated = self.service.update_crop(crop.id, fertilizer_stage_date="2024-05-15")
        self.assertEqual(updated.fertilizer_stage_date, "2024-05-15")
        self.assertEqual(updated.updated_at, "2024-05-15T09:00:00Z")
        update = [e for e in self._entries("crops") if e.operation == SyncOperation.UPDATE]
        self.assertEqual(update[0].payload["fertilizer_stage_date"], "2024-05-15")
        alerts = self.service.alerts.get_unread_alerts(OWNER)
        self.assertEqual([a.type for a in alerts], [AlertType.FERTILIZER_STAGE])

    def test_update_accepts_enum_values(self):
        crop = self._crop(self._plot())
        updated = self.service.update_crop(crop.id, status=CropStatus.HARVESTED)
        self.assertEqual(updated.status, CropStatus.HARVESTED)

    def test_record_pesticide_application(self):
        crop = self._crop(self._plot(), pesticide_interval_days=14)
        updated = self.service.record_pesticide_application(crop.id, "2024-05-01")
        self.assertEqual(updated.last_pesticide_date, "2024-05-01")
        alerts = self.service.alerts.get_unread_alerts(OWNER)
        self.assertEqual(alerts[0].type, AlertType.PESTICIDE_INTERVAL)
        self.assertEqual(alerts[0].priority, AlertPriority.HIGH)

    def test_update_missing_crop(self):
        with self.assertRaises(RecordNotFoundError):
            self.service.update_crop("crop_missing", status=CropStatus.HARVESTED)


# ===========================================================================
# 3. Stock movements & field usage
# ===========================================================================

class TestStockAndUsage(_ServiceTestCase):
    def setUp(self):
        super().setUp()
        self.plot = self._plot()
        self.crop = self._crop(self.plot)
        self.item = self._item(threshold=10)

    def test_item_x_scenario_through_service(self):
        self._stock_in(self.item, 50)
        self.service.record_stock_movement(StockMovement(
            owner_id=OWNER, item_id=self.item.id, type=StockType.OUT, quantity=45, date="2024-05-10",
        ))
        self.assertEqual(self.service.ledger.current_stock(self.item.id, OWNER), 5)
        low = [a for a in self.service.alerts.get_unread_alerts(OWNER) if a.type == AlertType.LOW_STOCK]
        self.assertEqual(len(low), 1)
        self.assertEqual(low[0].related_id, self.item.id)

    def test_movement_validation(self):
        with self.assertRaises(ValueError):
            self.service.record_stock_movement(StockMovement(
                owner_id=OWNER, item_id=self.item.id, type=StockType.IN, quantity=0, date="2024-05-01",
            ))
        with self.assertRaises(RecordNotFoundError):
            self.service.record_stock_movement(StockMovement(
                owner_id=OWNER, item_id="item_missing", type=StockType.IN, quantity=1, date="2024-05-01",
            ))

    def test_field_usage_draws_stock(self):
        self._stock_in(self.item, 50)
        result = self.service.record_field_usage(self._usage(self.plot, self.crop, self.item, 20))
        self.assertIsNone(result.advisory)
        self.assertEqual(result.movement.type, StockType.OUT)
        self.assertEqual(result.movement.quantity, 20)
        self.assertEqual(self.service.ledger.current_stock(self.item.id, OWNER), 30)
        self.assertEqual(len(self._entries("field_usage_logs")), 1)
        self.assertIn(result.movement.id, [e.record_id for e in self._entries("stock_movements")])

    def test_field_usage_returns_rain_advisory(self):
        self._stock_in(self.item, 50)
        result = self.service.record_field_usage(self._usage(self.plot, self.crop, self.item, 5, rain=85))
        self.assertIsNotNone(result.advisory)
        self.assertEqual(result.advisory.priority, AlertPriority.HIGH)
        stored = {a.type for a in self.service.alerts.get_unread_alerts(OWNER)}
        self.assertNotIn(AlertType.HIGH_RAIN_PROBABILITY, stored)

    def test_field_usage_insufficient_stock_writes_nothing(self):
        self._stock_in(self.item, 5)
        before = len(self._entries())
        with self.assertRaises(InsufficientStockError) as ctx:
            self.service.record_field_usage(self._usage(self.plot, self.crop, self.item, 6))
        self.assertEqual(ctx.exception.available, 5)
        self.assertEqual(len(self._entries()), before)
        self.assertEqual(self.service.ledger.current_stock(self.item.id, OWNER), 5)
        self.assertEqual(self.service.farm.recent_usage(OWNER), [])

    def test_field_usage_quantity_must_be_positive(self):
        with self.assertRaises(ValueError):
            self.service.record_field_usage(self._usage(self.plot, self.crop, self.item, 0))

    def test_usage_drop_below_threshold_raises_alert(self):
        self._stock_in(self.item, 15)
        self.assertEqual(self.service.alerts.unread_count(OWNER), 0)
        self.service.record_field_usage(self._usage(self.plot, self.crop, self.item, 6))
        types = [a.type for a in self.service.alerts.get_unread_alerts(OWNER)]
        self.assertEqual(types, [AlertType.LOW_STOCK])


# ===========================================================================
# 4. Deletes
# ===========================================================================

class TestDeleteRecord(_ServiceTestCase):
    def test_delete_queues_remote_delete(self):
        plot = self._plot()
        snapshot = self.service.delete_record("plots", plot.id)
        self.assertEqual(snapshot["name"], "North")
        self.assertIsNone(self.records.get("plots", plot.id))
        ops = [e.operation for e in self._entries("plots")]
        self.assertEqual(ops, [SyncOperation.CREATE, SyncOperation.DELETE])
        self.assertEqual(self._entries("plots")[-1].payload, {"id": plot.id})

    def test_stock_movements_are_append_only(self):
        item = self._item()
        movement = self._stock_in(item, 5)
        with self.assertRaises(ValueError):
            self.service.delete_record("stock_movements", movement.id)

    def test_delete_missing(self):
        with self.assertRaises(RecordNotFoundError):
            self.service.delete_record("plots", "plot_missing")


# ===========================================================================
# 5. Dashboard & wiring
# ===========================================================================

class TestDashboard(_ServiceTestCase):
    def test_dashboard_stats(self):
        plot = self._plot()
        self._crop(plot)
        self._crop(plot, name="Old", status=CropStatus.HARVESTED)
        self._item(threshold=10)
        for day, amount in (("2024-04-30", 99.0), ("2024-05-02", 40.0), ("2024-05-31", 10.0)):
            self.service.add_expense(Expense(
                owner_id=OWNER, category=ExpenseCategory.LABOR, amount=amount, date=day,
            ))
        stats = self.service.dashboard_stats(OWNER)
        self.assertEqual(stats.total_plots, 1)
        self.assertEqual(stats.active_crops, 1)
        self.assertEqual(stats.low_stock_items, 1)
        self.assertEqual(stats.monthly_expense, 50.0)
        self.assertEqual(stats.pending_syncs, len(self._entries()))
        self.assertEqual(stats.unread_alerts, self.service.alerts.unread_count(OWNER))
        data = stats.to_dict()
        self.assertEqual(data["recent_usage"], [])
        self.assertLessEqual(len(data["recent_alerts"]), 5)


class TestFromConfig(unittest.TestCase):
    def test_wires_queue_from_config(self):
        db = _make_db()
        try:
            transport = MagicMock()
            config = SyncConfig(interval_seconds=5, max_retries=3, backoff_base_seconds=0)
            service = FarmService.from_config(db, transport=transport, sync_config=config, online=False)
            self.assertEqual(service.sync.queue.max_retries, 3)
            self.assertEqual(service.sync.interval_seconds, 5)
            self.assertFalse(service.sync.is_online)
        finally:
            db.close()


if __name__ == "__main__":
    unittest.main()
