"""Field-side domain models: plots, crops, field usage logs and expenses."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from farmsync.models.sync import SyncStatus


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class CropStatus(str, Enum):
    PLANTED = "planted"
    GROWING = "growing"
    HARVESTED = "harvested"


ACTIVE_CROP_STATUSES = (CropStatus.PLANTED, CropStatus.GROWING)


class ApplicationMethod(str, Enum):
    SPRAY = "spray"
    SPREAD = "spread"
    DRIP = "drip"
    BROADCAST = "broadcast"
    INJECTION = "injection"


class ExpenseCategory(str, Enum):
    SEEDS = "seeds"
    FERTILIZERS = "fertilizers"
    PESTICIDES = "pesticides"
    EQUIPMENT = "equipment"
    FUEL = "fuel"
    LABOR = "labor"
    OTHER = "other"


@dataclass
class Plot:
    owner_id: str
    name: str
    size_acres: float
    current_crop_id: Optional[str] = None
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: f"plot_{uuid.uuid4().hex}")
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "size_acres": self.size_acres,
            "current_crop_id": self.current_crop_id,
            "notes": self.notes,
            "sync_status": self.sync_status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Plot":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            size_acres=row.get("size_acres", 0),
            current_crop_id=row.get("current_crop_id"),
            notes=row.get("notes"),
            sync_status=SyncStatus(row.get("sync_status", "pending")),
            created_at=row.get("created_at", ""),
            updated_at=row.get("updated_at", ""),
        )


@dataclass
class Crop:
    """A planting on a plot, carrying its treatment schedule."""

    owner_id: str
    plot_id: str
    name: str
    planting_date: str
    status: CropStatus = CropStatus.PLANTED
    variety: Optional[str] = None
    expected_harvest_date: Optional[str] = None
    fertilizer_stage_date: Optional[str] = None
    pesticide_interval_days: Optional[int] = None
    last_pesticide_date: Optional[str] = None
    id: str = field(default_factory=lambda: f"crop_{uuid.uuid4().hex}")
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_CROP_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "plot_id": self.plot_id,
            "name": self.name,
            "variety": self.variety,
            "planting_date": self.planting_date,
            "expected_harvest_date": self.expected_harvest_date,
            "status": self.status.value,
            "fertilizer_stage_date": self.fertilizer_stage_date,
            "pesticide_interval_days": self.pesticide_interval_days,
            "last_pesticide_date": self.last_pesticide_date,
            "sync_status": self.sync_status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Crop":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            plot_id=row["plot_id"],
            name=row["name"],
            variety=row.get("variety"),
            planting_date=row["planting_date"],
            expected_harvest_date=row.get("expected_harvest_date"),
            status=CropStatus(row.get("status", "planted")),
            fertilizer_stage_date=row.get("fertilizer_stage_date"),
            pesticide_interval_days=row.get("pesticide_interval_days"),
            last_pesticide_date=row.get("last_pesticide_date"),
            sync_status=SyncStatus(row.get("sync_status", "pending")),
            created_at=row.get("created_at", ""),
            updated_at=row.get("updated_at", ""),
        )


@dataclass
class FieldUsageLog:
    """An application of an inventory item on a crop."""

    owner_id: str
    plot_id: str
    crop_id: str
    item_id: str
    quantity_used: float
    usage_date: str
    usage_time: str
    application_method: ApplicationMethod = ApplicationMethod.SPRAY
    rain_probability: int = 0
    weather_condition: Optional[str] = None
    temperature: Optional[float] = None
    notes: Optional[str] = None
    id: str = field(default_factory=lambda: f"usage_{uuid.uuid4().hex}")
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "plot_id": self.plot_id,
            "crop_id": self.crop_id,
            "item_id": self.item_id,
            "quantity_used": self.quantity_used,
            "usage_date": self.usage_date,
            "usage_time": self.usage_time,
            "application_method": self.application_method.value,
            "rain_probability": self.rain_probability,
            "weather_condition": self.weather_condition,
            "temperature": self.temperature,
            "notes": self.notes,
            "sync_status": self.sync_status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "FieldUsageLog":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            plot_id=row["plot_id"],
            crop_id=row["crop_id"],
            item_id=row["item_id"],
            quantity_used=row["quantity_used"],
            usage_date=row["usage_date"],
            usage_time=row["usage_time"],
            application_method=ApplicationMethod(row.get("application_method", "spray")),
            rain_probability=row.get("rain_probability", 0),
            weather_condition=row.get("weather_condition"),
            temperature=row.get("temperature"),
            notes=row.get("notes"),
            sync_status=SyncStatus(row.get("sync_status", "pending")),
            created_at=row.get("created_at", ""),
            updated_at=row.get("updated_at", ""),
        )


@dataclass
class Expense:
    owner_id: str
    category: ExpenseCategory
    amount: float
    date: str
    description: str = ""
    item_id: Optional[str] = None
    supplier_id: Optional[str] = None
    id: str = field(default_factory=lambda: f"expense_{uuid.uuid4().hex}")
    sync_status: SyncStatus = SyncStatus.PENDING
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "item_id": self.item_id,
            "category": self.category.value,
            "amount": self.amount,
            "date": self.date,
            "supplier_id": self.supplier_id,
            "description": self.description,
            "sync_status": self.sync_status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Expense":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            item_id=row.get("item_id"),
            category=ExpenseCategory(row["category"]),
            amount=row["amount"],
            date=row["date"],
            supplier_id=row.get("supplier_id"),
            description=row.get("description") or "",
            sync_status=SyncStatus(row.get("sync_status", "pending")),
            created_at=row.get("created_at", ""),
            updated_at=row.get("updated_at", ""),
        )
