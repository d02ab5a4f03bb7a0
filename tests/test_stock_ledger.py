"""Tests for the stock ledger projection."""

from __future__ import annotations

import itertools
import tempfile
import unittest
from pathlib import Path

from farmsync.db.database import Database
from farmsync.db.inventory_repo import InventoryRepository
from farmsync.models import (
    CurrentStock, InventoryCategory, InventoryItem, StockMovement, StockType, Unit,
)
from farmsync.services.stock_ledger import StockLedger, fold_movements


def _make_db() -> Database:
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    db = Database(path=Path(tmp.name))
    db.init()
    return db


def _movement(kind: StockType, quantity: float, item_id: str = "item_x", **kw) -> StockMovement:
    return StockMovement(
        owner_id=kw.pop("owner_id", "farmer_1"),
        item_id=item_id,
        type=kind,
        quantity=quantity,
        date=kw.pop("date", "2024-05-01"),
        **kw,
    )


def _stock(quantity: float, threshold: float) -> CurrentStock:
    return CurrentStock(
        item_id="i", item_name="Urea", category=InventoryCategory.FERTILIZERS,
        unit=Unit.KG, current_quantity=quantity, min_threshold=threshold,
    )


# ===========================================================================
# 1. Folding (pure)
# ===========================================================================

class TestFoldMovements(unittest.TestCase):
    def test_empty_ledger_is_zero(self):
        self.assertEqual(fold_movements([]), 0)

    def test_ins_minus_outs(self):
        movements = [
            _movement(StockType.IN, 50),
            _movement(StockType.OUT, 45),
            _movement(StockType.IN, 2.5),
        ]
        self.assertEqual(fold_movements(movements), 7.5)

    def test_order_independent(self):
        movements = [
            _movement(StockType.IN, 20),
            _movement(StockType.OUT, 7),
            _movement(StockType.OUT, 3),
            _movement(StockType.IN, 4),
        ]
        totals = {fold_movements(p) for p in itertools.permutations(movements)}
        self.assertEqual(totals, {14})

    def test_not_clamped_at_zero(self):
        movements = [_movement(StockType.IN, 5), _movement(StockType.OUT, 8)]
        self.assertEqual(fold_movements(movements), -3)


# ===========================================================================
# 2. Low-stock predicate
# ===========================================================================

class TestLowStockPredicate(unittest.TestCase):
    def test_boundary_is_inclusive(self):
        self.assertTrue(_stock(10, 10).is_low_stock)
        self.assertFalse(_stock(10.01, 10).is_low_stock)

    def test_zero_threshold(self):
        self.assertTrue(_stock(0, 0).is_low_stock)
        self.assertFalse(_stock(1, 0).is_low_stock)

    def test_negative_quantity_is_low(self):
        self.assertTrue(_stock(-2, 0).is_low_stock)

    def test_to_dict_carries_flag(self):
        self.assertTrue(_stock(3, 10).to_dict()["is_low_stock"])


# ===========================================================================
# 3. Ledger against the store
# ===========================================================================

class TestStockLedger(unittest.TestCase):
    def setUp(self):
        self.db = _make_db()
        self.inventory = InventoryRepository(self.db)
        self.ledger = StockLedger(self.db)
        self.item = self.inventory.create_item(InventoryItem(
            id="item_x", owner_id="farmer_1", name="Urea",
            category=InventoryCategory.FERTILIZERS, unit=Unit.KG, min_threshold=10,
        ))

    def tearDown(self):
        self.db.close()

    def test_item_x_scenario(self):
        self.inventory.append_movement(_movement(StockType.IN, 50))
        self.inventory.append_movement(_movement(StockType.OUT, 45, date="2024-05-02"))
        self.assertEqual(self.ledger.current_stock("item_x", "farmer_1"), 5)
        low = self.ledger.low_stock("farmer_1")
        self.assertEqual([s.item_id for s in low], ["item_x"])

    def test_item_without_movements_is_zero(self):
        stocks = self.ledger.all_current_stocks("farmer_1")
        self.assertEqual(len(stocks), 1)
        self.assertEqual(stocks[0].current_quantity, 0)
        self.assertTrue(stocks[0].is_low_stock)

    def test_scoped_to_owner(self):
        self.inventory.append_movement(_movement(StockType.IN, 50))
        self.inventory.append_movement(_movement(StockType.IN, 99, owner_id="farmer_2"))
        self.assertEqual(self.ledger.current_stock("item_x", "farmer_1"), 50)
        self.assertEqual(self.ledger.all_current_stocks("farmer_2"), [])

    def test_negative_total_is_reported(self):
        self.inventory.append_movement(_movement(StockType.IN, 5))
        self.inventory.append_movement(_movement(StockType.OUT, 8))
        with self.assertLogs("farmsync.services.stock_ledger", level="WARNING"):
            stocks = self.ledger.all_current_stocks("farmer_1")
        self.assertEqual(stocks[0].current_quantity, -3)
        self.assertTrue(stocks[0].is_low_stock)

    def test_above_threshold_not_low(self):
        self.inventory.append_movement(_movement(StockType.IN, 11))
        self.assertEqual(self.ledger.low_stock("farmer_1"), [])


if __name__ == "__main__":
    unittest.main()
