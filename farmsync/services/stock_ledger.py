"""Stock ledger: derives current quantities from the movement history.

Pure read-side projection: every call refolds the full ledger, nothing is
cached and nothing is written.
"""

from __future__ import annotations

import logging
from typing import Iterable

from farmsync.db.database import Database
from farmsync.db.inventory_repo import InventoryRepository
from farmsync.models.inventory import CurrentStock, StockMovement

logger = logging.getLogger(__name__)


def fold_movements(movements: Iterable[StockMovement]) -> float:
    """Σ(in) − Σ(out). Not clamped: an inconsistent ledger yields a negative total."""
    return sum(m.signed_quantity for m in movements)


class StockLedger:
    def __init__(self, db: Database):
        self._inventory = InventoryRepository(db)

    def current_stock(self, item_id: str, owner_id: str) -> float:
        return fold_movements(self._inventory.movements_for_item(owner_id, item_id))

    def all_current_stocks(self, owner_id: str) -> list[CurrentStock]:
        """One computed row per inventory item of the owner."""
        stocks: list[CurrentStock] = []
        for item in self._inventory.list_items(owner_id):
            quantity = self.current_stock(item.id, owner_id)
            if quantity < 0:
                logger.warning(
                    f"Item {item.id} ({item.name}) has negative stock {quantity}; ledger is inconsistent"
                )
            stocks.append(
                CurrentStock(
                    item_id=item.id,
                    item_name=item.name,
                    category=item.category,
                    unit=item.unit,
                    current_quantity=quantity,
                    min_threshold=item.min_threshold,
                )
            )
        return stocks

    def low_stock(self, owner_id: str) -> list[CurrentStock]:
        return [s for s in self.all_current_stocks(owner_id) if s.is_low_stock]
