"""Inventory domain models: tracked items, the movement ledger, and stock rows."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from farmsync.models.sync import SyncStatus


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class InventoryCategory(str, Enum):
    SEEDS = "seeds"
    FERTILIZERS = "fertilizers"
    PESTICIDES = "pesticides"
    EQUIPMENT = "equipment"
    FUEL = "fuel"


class Unit(str, Enum):
    KG = "kg"
    LITRE = "litre"
    PIECE = "piece"
    ACRE = "acre"


class StockType(str, Enum):
    IN = "in"
    OUT = "out"


@dataclass
class InventoryItem:
    """A stock-tracked item. Its quantity lives in the movement ledger, not here."""

    owner_id: str
    name: str
    category: InventoryCategory
    unit: Unit
    min_threshold: float = 0
    description: Optional[str] = None
    id: str = field(default_factory=lambda: f"item_{uuid.uuid4().hex}")
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "category": self.category.value,
            "unit": self.unit.value,
            "min_threshold": self.min_threshold,
            "description": self.description,
            "sync_status": self.sync_status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "InventoryItem":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            category=InventoryCategory(row["category"]),
            unit=Unit(row["unit"]),
            min_threshold=row.get("min_threshold", 0),
            description=row.get("description"),
            sync_status=SyncStatus(row.get("sync_status", "pending")),
            created_at=row.get("created_at", ""),
            updated_at=row.get("updated_at", ""),
        )


@dataclass
class StockMovement:
    """One append-only ledger line. Never updated after insert."""

    owner_id: str
    item_id: str
    type: StockType
    quantity: float
    date: str
    batch_number: Optional[str] = None
    expiry_date: Optional[str] = None
    purchase_price: Optional[float] = None
    supplier_id: Optional[str] = None
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: f"stock_{uuid.uuid4().hex}")
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def signed_quantity(self) -> float:
        return self.quantity if self.type == StockType.IN else -self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "item_id": self.item_id,
            "type": self.type.value,
            "quantity": self.quantity,
            "date": self.date,
            "batch_number": self.batch_number,
            "expiry_date": self.expiry_date,
            "purchase_price": self.purchase_price,
            "supplier_id": self.supplier_id,
            "notes": self.notes,
            "sync_status": self.sync_status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "StockMovement":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            item_id=row["item_id"],
            type=StockType(row["type"]),
            quantity=row["quantity"],
            date=row["date"],
            batch_number=row.get("batch_number"),
            expiry_date=row.get("expiry_date"),
            purchase_price=row.get("purchase_price"),
            supplier_id=row.get("supplier_id"),
            notes=row.get("notes"),
            sync_status=SyncStatus(row.get("sync_status", "pending")),
            created_at=row.get("created_at", ""),
            updated_at=row.get("updated_at", ""),
        )


@dataclass(frozen=True)
class CurrentStock:
    """Derived stock row; computed from the ledger on every read."""

    item_id: str
    item_name: str
    category: InventoryCategory
    unit: Unit
    current_quantity: float
    min_threshold: float

    @property
    def is_low_stock(self) -> bool:
        return self.current_quantity <= self.min_threshold

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "category": self.category.value,
            "unit": self.unit.value,
            "current_quantity": self.current_quantity,
            "min_threshold": self.min_threshold,
            "is_low_stock": self.is_low_stock,
        }
