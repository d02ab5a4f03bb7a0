"""Alert engine: evaluates the rule set and persists deduplicated alerts.

Every rule is idempotent: re-running it with unchanged data creates
nothing, because an unread alert for the same owner, type and entity
suppresses a new one. Evaluation for one owner is serialised by a lock, and
the partial unique index on unread alerts backs that up at the storage level.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Callable, Iterable, Optional

from farmsync.alerts import rules
from farmsync.db.alert_repo import AlertRepository
from farmsync.db.database import Database
from farmsync.db.farm_repo import FarmRepository
from farmsync.db.inventory_repo import InventoryRepository
from farmsync.models.alert import Alert
from farmsync.models.inventory import StockMovement
from farmsync.services.stock_ledger import StockLedger
from farmsync.utils.clock import Clock, SystemClock, format_timestamp

logger = logging.getLogger(__name__)


class AlertEngine:
    def __init__(
        self,
        db: Database,
        clock: Optional[Clock] = None,
        ledger: Optional[StockLedger] = None,
    ):
        self._clock = clock or SystemClock()
        self._alerts = AlertRepository(db)
        self._farm = FarmRepository(db)
        self._inventory = InventoryRepository(db)
        self._ledger = ledger or StockLedger(db)
        self._owner_locks: dict[str, threading.Lock] = {}
        self._owner_locks_guard = threading.Lock()
        self._sweep_stop = threading.Event()
        self._sweep_thread: Optional[threading.Thread] = None

    def _owner_lock(self, owner_id: str) -> threading.Lock:
        with self._owner_locks_guard:
            lock = self._owner_locks.get(owner_id)
            if lock is None:
                lock = self._owner_locks[owner_id] = threading.Lock()
            return lock

    # -- Evaluation ------------------------------------------------------------

    def check_all_alerts(self, owner_id: str) -> list[Alert]:
        """Run every persisted rule for one owner with a single "today".

        Returns the alerts created by this pass.
        """
        with self._owner_lock(owner_id):
            now = self._clock.now()
            today = now.date()
            stamp = format_timestamp(now)
            created: list[Alert] = []
            for name, rule in (
                ("low_stock", self._check_low_stock),
                ("fertilizer_stage", self._check_fertilizer_stage),
                ("pesticide_interval", self._check_pesticide_interval),
                ("expiry", self._check_expiry),
            ):
                try:
                    created.extend(rule(owner_id, today, stamp))
                except Exception:
                    logger.exception(f"Alert rule {name} failed for owner {owner_id}; skipped")
            if created:
                logger.info(f"Created {len(created)} alert(s) for owner {owner_id}")
            return created

    def check_low_stock_alerts(self, owner_id: str) -> list[Alert]:
        return self._run_single(owner_id, self._check_low_stock)

    def check_fertilizer_stage_alerts(self, owner_id: str) -> list[Alert]:
        return self._run_single(owner_id, self._check_fertilizer_stage)

    def check_pesticide_interval_alerts(self, owner_id: str) -> list[Alert]:
        return self._run_single(owner_id, self._check_pesticide_interval)

    def check_expiry_alerts(self, owner_id: str) -> list[Alert]:
        return self._run_single(owner_id, self._check_expiry)

    def check_rain_probability_alert(self, rain_probability: float, owner_id: str = "") -> Optional[Alert]:
        """Data-entry advisory; never persisted."""
        return rules.rain_probability_advisory(rain_probability, owner_id)

    def _run_single(self, owner_id: str, rule: Callable[[str, date, str], list[Alert]]) -> list[Alert]:
        with self._owner_lock(owner_id):
            now = self._clock.now()
            return rule(owner_id, now.date(), format_timestamp(now))

    def _persist(self, entities: Iterable, evaluate: Callable, label: str, stamp: str) -> list[Alert]:
        """Evaluate and store entity by entity; a failing entity is logged and skipped."""
        created: list[Alert] = []
        for entity in entities:
            try:
                alert = evaluate(entity)
                if alert is None:
                    continue
                alert.created_at = stamp
                if self._alerts.insert_if_absent(alert):
                    created.append(alert)
            except Exception:
                logger.exception(f"{label} rule failed for {getattr(entity, 'id', entity)}; skipped")
        return created

    # -- Rules -----------------------------------------------------------------

    def _check_low_stock(self, owner_id: str, today: date, stamp: str) -> list[Alert]:
        stocks = self._ledger.all_current_stocks(owner_id)
        return self._persist(
            stocks, lambda s: rules.low_stock_alert(owner_id, s), "Low stock", stamp
        )

    def _check_fertilizer_stage(self, owner_id: str, today: date, stamp: str) -> list[Alert]:
        crops = self._farm.list_active_crops(owner_id)
        return self._persist(
            crops, lambda c: rules.fertilizer_stage_alert(owner_id, c, today), "Fertilizer", stamp
        )

    def _check_pesticide_interval(self, owner_id: str, today: date, stamp: str) -> list[Alert]:
        crops = self._farm.list_active_crops(owner_id)
        return self._persist(
            crops, lambda c: rules.pesticide_interval_alert(owner_id, c, today), "Pesticide", stamp
        )

    def _check_expiry(self, owner_id: str, today: date, stamp: str) -> list[Alert]:
        def evaluate(movement: StockMovement) -> Optional[Alert]:
            days = rules.expiry_days_until(movement, today)
            if days is None or not 0 <= days <= rules.EXPIRY_WINDOW_DAYS:
                return None
            item = self._inventory.get_item(movement.item_id)
            if item is None:
                logger.warning(
                    f"Stock movement {movement.id} references missing item {movement.item_id}; skipped"
                )
                return None
            return rules.expiry_alert(owner_id, movement, item, today)

        movements = self._inventory.movements_with_expiry(owner_id)
        return self._persist(movements, evaluate, "Expiry", stamp)

    # -- Read / mark -----------------------------------------------------------

    def get_unread_alerts(self, owner_id: str, limit: Optional[int] = None) -> list[Alert]:
        return self._alerts.list_unread(owner_id, limit)

    def unread_count(self, owner_id: str) -> int:
        return self._alerts.count_unread(owner_id)

    def mark_alert_as_read(self, alert_id: str) -> bool:
        return self._alerts.mark_read(alert_id)

    # -- Periodic sweep --------------------------------------------------------

    def start_sweep(self, owner_ids: Callable[[], Iterable[str]], interval_seconds: float) -> None:
        """Re-evaluate all owners every ``interval_seconds`` on a daemon thread."""
        if self._sweep_thread and self._sweep_thread.is_alive():
            return
        self._sweep_stop.clear()

        def run() -> None:
            while not self._sweep_stop.wait(interval_seconds):
                try:
                    owners = list(owner_ids())
                except Exception:
                    logger.exception("Alert sweep could not list owners")
                    continue
                for owner_id in owners:
                    if self._sweep_stop.is_set():
                        break
                    try:
                        self.check_all_alerts(owner_id)
                    except Exception:
                        logger.exception(f"Alert sweep failed for owner {owner_id}")

        self._sweep_thread = threading.Thread(target=run, name="farmsync-alerts", daemon=True)
        self._sweep_thread.start()
        logger.info(f"Alert sweep started ({interval_seconds}s interval)")

    def stop_sweep(self, timeout: Optional[float] = None) -> None:
        self._sweep_stop.set()
        if self._sweep_thread:
            self._sweep_thread.join(timeout)
            self._sweep_thread = None
