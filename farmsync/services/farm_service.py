"""Farm service: the write path for every synced domain record.

Each mutation is written locally first, then handed to the sync engine via
``mark_for_sync``. Mutations that change alert inputs (stock movements,
field usage, crop schedules) re-run the alert rules for the owner.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Optional

from farmsync.alerts.engine import AlertEngine
from farmsync.config import SyncConfig, get_remote_config, get_sync_config
from farmsync.db.database import Database
from farmsync.db.farm_repo import FarmRepository
from farmsync.db.inventory_repo import InventoryRepository
from farmsync.db.record_store import RecordStore
from farmsync.exceptions import InsufficientStockError, RecordNotFoundError
from farmsync.models.alert import Alert
from farmsync.models.farm import Crop, Expense, FieldUsageLog, Plot
from farmsync.models.inventory import InventoryItem, StockMovement, StockType
from farmsync.models.sync import SyncOperation
from farmsync.services.stock_ledger import StockLedger
from farmsync.sync.engine import SyncEngine
from farmsync.sync.queue import SyncQueue
from farmsync.sync.transport import HttpSyncTransport, RemoteSyncPort
from farmsync.utils.clock import Clock, SystemClock, iso_now

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


@dataclass
class UsageResult:
    """What recording a field application produced."""
    usage: FieldUsageLog
    movement: StockMovement
    advisory: Optional[Alert] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "usage": self.usage.to_dict(),
            "movement": self.movement.to_dict(),
            "advisory": self.advisory.to_dict() if self.advisory else None,
        }


@dataclass
class DashboardStats:
    total_plots: int
    active_crops: int
    low_stock_items: int
    pending_syncs: int
    unread_alerts: int
    monthly_expense: float
    recent_usage: list[FieldUsageLog] = field(default_factory=list)
    recent_alerts: list[Alert] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_plots": self.total_plots,
            "active_crops": self.active_crops,
            "low_stock_items": self.low_stock_items,
            "pending_syncs": self.pending_syncs,
            "unread_alerts": self.unread_alerts,
            "monthly_expense": self.monthly_expense,
            "recent_usage": [u.to_dict() for u in self.recent_usage],
            "recent_alerts": [a.to_dict() for a in self.recent_alerts],
        }


class FarmService:
    """
    Facade over the ledger, the sync engine and the alert engine.

    Dependencies are injected so tests can swap in a fake transport and a
    fixed clock.
    """

    def __init__(
        self,
        db: Database,
        sync_engine: SyncEngine,
        alert_engine: Optional[AlertEngine] = None,
        clock: Optional[Clock] = None,
    ):
        self._db = db
        self._clock = clock or SystemClock()
        self._sync = sync_engine
        self._ledger = StockLedger(db)
        self._alerts = alert_engine or AlertEngine(db, clock=self._clock, ledger=self._ledger)
        self._farm = FarmRepository(db)
        self._inventory = InventoryRepository(db)
        self._records = RecordStore(db)

    @classmethod
    def from_config(
        cls,
        db: Database,
        transport: Optional[RemoteSyncPort] = None,
        sync_config: Optional[SyncConfig] = None,
        clock: Optional[Clock] = None,
        online: bool = True,
    ) -> "FarmService":
        """Wire the full stack from environment configuration."""
        sync_config = sync_config or get_sync_config()
        transport = transport or HttpSyncTransport(get_remote_config())
        clock = clock or SystemClock()
        queue = SyncQueue.from_config(db, transport, sync_config, clock=clock)
        engine = SyncEngine(db, queue, interval_seconds=sync_config.interval_seconds, online=online)
        return cls(db, engine, clock=clock)

    @property
    def sync(self) -> SyncEngine:
        return self._sync

    @property
    def alerts(self) -> AlertEngine:
        return self._alerts

    @property
    def ledger(self) -> StockLedger:
        return self._ledger

    @property
    def farm(self) -> FarmRepository:
        return self._farm

    @property
    def inventory(self) -> InventoryRepository:
        return self._inventory

    def _stamp(self, record: Any) -> Any:
        now = iso_now(self._clock)
        record.created_at = now
        record.updated_at = now
        return record

    def _queue(self, owner_id: str, table: str, record_id: str,
               operation: SyncOperation, payload: dict[str, Any]) -> None:
        self._sync.mark_for_sync(owner_id, table, record_id, operation, payload)

    # -- Plots & crops ---------------------------------------------------------

    def add_plot(self, plot: Plot) -> Plot:
        self._farm.create_plot(self._stamp(plot))
        self._queue(plot.owner_id, "plots", plot.id, SyncOperation.CREATE, plot.to_dict())
        return plot

    def add_crop(self, crop: Crop) -> Crop:
        if self._farm.get_plot(crop.plot_id) is None:
            raise RecordNotFoundError("plots", crop.plot_id)
        self._farm.create_crop(self._stamp(crop))
        self._queue(crop.owner_id, "crops", crop.id, SyncOperation.CREATE, crop.to_dict())
        self._alerts.check_all_alerts(crop.owner_id)
        return crop

    def update_crop(self, crop_id: str, **fields: Any) -> Crop:
        """Change crop fields (status, schedule dates) and re-evaluate alerts."""
        if self._farm.get_crop(crop_id) is None:
            raise RecordNotFoundError("crops", crop_id)
        values = {k: (v.value if isinstance(v, Enum) else v) for k, v in fields.items()}
        values["updated_at"] = iso_now(self._clock)
        self._records.update_fields("crops", crop_id, **values)
        crop = self._farm.get_crop(crop_id)
        self._queue(crop.owner_id, "crops", crop.id, SyncOperation.UPDATE, crop.to_dict())
        self._alerts.check_all_alerts(crop.owner_id)
        return crop

    def record_pesticide_application(self, crop_id: str, applied_on: str) -> Crop:
        return self.update_crop(crop_id, last_pesticide_date=applied_on)

    # -- Inventory -------------------------------------------------------------

    def add_inventory_item(self, item: InventoryItem) -> InventoryItem:
        self._inventory.create_item(self._stamp(item))
        self._queue(item.owner_id, "inventory_items", item.id, SyncOperation.CREATE, item.to_dict())
        return item

    def record_stock_movement(self, movement: StockMovement) -> StockMovement:
        """Append a ledger line. Outgoing movements are not checked against stock here."""
        if movement.quantity <= 0:
            raise ValueError(f"Movement quantity must be positive, got {movement.quantity}")
        if self._inventory.get_item(movement.item_id) is None:
            raise RecordNotFoundError("inventory_items", movement.item_id)
        self._inventory.append_movement(self._stamp(movement))
        self._queue(
            movement.owner_id, "stock_movements", movement.id,
            SyncOperation.CREATE, movement.to_dict(),
        )
        self._alerts.check_all_alerts(movement.owner_id)
        return movement

    def record_field_usage(self, usage: FieldUsageLog) -> UsageResult:
        """Log an application and draw the quantity out of stock.

        Refuses quantities above what the ledger currently holds. The usage
        log and its ``out`` movement are written together.
        """
        if usage.quantity_used <= 0:
            raise ValueError(f"Quantity used must be positive, got {usage.quantity_used}")
        advisory = self._alerts.check_rain_probability_alert(usage.rain_probability, usage.owner_id)
        item = self._inventory.get_item(usage.item_id)
        if item is None:
            raise RecordNotFoundError("inventory_items", usage.item_id)

        self._stamp(usage)
        movement = self._stamp(StockMovement(
            owner_id=usage.owner_id,
            item_id=usage.item_id,
            type=StockType.OUT,
            quantity=usage.quantity_used,
            date=usage.usage_date,
            notes=f"Field usage {usage.id} on crop {usage.crop_id}",
        ))
        with self._db.transaction():
            available = self._ledger.current_stock(usage.item_id, usage.owner_id)
            if usage.quantity_used > available:
                raise InsufficientStockError(usage.item_id, usage.quantity_used, available)
            self._farm.create_usage(usage)
            self._inventory.append_movement(movement)

        self._queue(usage.owner_id, "field_usage_logs", usage.id, SyncOperation.CREATE, usage.to_dict())
        self._queue(
            movement.owner_id, "stock_movements", movement.id,
            SyncOperation.CREATE, movement.to_dict(),
        )
        self._alerts.check_all_alerts(usage.owner_id)
        logger.info(f"Recorded usage of {usage.quantity_used:g} {item.unit.value} {item.name} on {usage.crop_id}")
        return UsageResult(usage=usage, movement=movement, advisory=advisory)

    # -- Expenses --------------------------------------------------------------

    def add_expense(self, expense: Expense) -> Expense:
        if expense.amount < 0:
            raise ValueError(f"Expense amount must not be negative, got {expense.amount}")
        self._farm.create_expense(self._stamp(expense))
        self._queue(expense.owner_id, "expenses", expense.id, SyncOperation.CREATE, expense.to_dict())
        return expense

    # -- Delete ----------------------------------------------------------------

    def delete_record(self, table: str, record_id: str) -> dict[str, Any]:
        """Remove a record locally and queue the remote delete.

        Stock movements are append-only and cannot be deleted.
        """
        if table == "stock_movements":
            raise ValueError("Stock movements are append-only; record a compensating movement instead")
        snapshot = self._records.get(table, record_id)
        if snapshot is None:
            raise RecordNotFoundError(table, record_id)
        self._records.delete(table, record_id)
        self._queue(snapshot["owner_id"], table, record_id, SyncOperation.DELETE, {"id": record_id})
        return snapshot

    # -- Dashboard -------------------------------------------------------------

    def dashboard_stats(self, owner_id: str) -> DashboardStats:
        today = self._clock.now().date()
        month_start = today.replace(day=1)
        next_month = (month_start + timedelta(days=32)).replace(day=1)
        counts = self._farm.counts(owner_id)
        return DashboardStats(
            total_plots=counts["total_plots"],
            active_crops=counts["active_crops"],
            low_stock_items=len(self._ledger.low_stock(owner_id)),
            pending_syncs=self._sync.queue.pending_count(owner_id),
            unread_alerts=self._alerts.unread_count(owner_id),
            monthly_expense=self._farm.expense_total(
                owner_id, month_start.isoformat(), next_month.isoformat()
            ),
            recent_usage=self._farm.recent_usage(owner_id, RECENT_LIMIT),
            recent_alerts=self._alerts.get_unread_alerts(owner_id, RECENT_LIMIT),
        )
