"""Repository for ``inventory_items`` and the append-only ``stock_movements`` ledger."""

from __future__ import annotations

from typing import Optional

from farmsync.db.database import Database
from farmsync.models.inventory import InventoryItem, StockMovement, StockType


class InventoryRepository:
    """Items are mutable; movements are insert-only."""

    def __init__(self, db: Database):
        self._db = db

    # -- Items -----------------------------------------------------------------

    def create_item(self, item: InventoryItem) -> InventoryItem:
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO inventory_items
                   (id, owner_id, name, category, unit, min_threshold, description,
                    sync_status, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    item.id, item.owner_id, item.name, item.category.value,
                    item.unit.value, item.min_threshold, item.description,
                    item.sync_status.value, item.created_at, item.updated_at,
                ),
            )
        return item

    def get_item(self, item_id: str) -> Optional[InventoryItem]:
        row = self._db.fetchone("SELECT * FROM inventory_items WHERE id = ?", (item_id,))
        return InventoryItem.from_row(row) if row else None

    def list_items(self, owner_id: str) -> list[InventoryItem]:
        rows = self._db.fetchall(
            "SELECT * FROM inventory_items WHERE owner_id = ? ORDER BY name",
            (owner_id,),
        )
        return [InventoryItem.from_row(r) for r in rows]

    # -- Movements -------------------------------------------------------------

    def append_movement(self, movement: StockMovement) -> StockMovement:
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO stock_movements
                   (id, owner_id, item_id, type, quantity, date, batch_number,
                    expiry_date, purchase_price, supplier_id, notes,
                    sync_status, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    movement.id, movement.owner_id, movement.item_id,
                    movement.type.value, movement.quantity, movement.date,
                    movement.batch_number, movement.expiry_date,
                    movement.purchase_price, movement.supplier_id, movement.notes,
                    movement.sync_status.value, movement.created_at, movement.updated_at,
                ),
            )
        return movement

    def movements_for_item(self, owner_id: str, item_id: str) -> list[StockMovement]:
        rows = self._db.fetchall(
            """SELECT * FROM stock_movements
               WHERE owner_id = ? AND item_id = ?
               ORDER BY date, rowid""",
            (owner_id, item_id),
        )
        return [StockMovement.from_row(r) for r in rows]

    def movements_with_expiry(self, owner_id: str) -> list[StockMovement]:
        rows = self._db.fetchall(
            """SELECT * FROM stock_movements
               WHERE owner_id = ? AND type = ? AND expiry_date IS NOT NULL
               ORDER BY expiry_date""",
            (owner_id, StockType.IN.value),
        )
        return [StockMovement.from_row(r) for r in rows]
