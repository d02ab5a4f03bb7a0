"""Alert domain model: notifications derived by rule evaluation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class AlertType(str, Enum):
    LOW_STOCK = "low_stock"
    FERTILIZER_STAGE = "fertilizer_stage"
    PESTICIDE_INTERVAL = "pesticide_interval"
    HIGH_RAIN_PROBABILITY = "high_rain_probability"
    EXPIRY_WARNING = "expiry_warning"


class AlertPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass
class Alert:
    owner_id: str
    type: AlertType
    title: str
    message: str
    priority: AlertPriority
    related_id: Optional[str] = None
    is_read: bool = False
    id: str = field(default_factory=lambda: f"alert_{uuid.uuid4().hex}")
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "related_id": self.related_id,
            "priority": self.priority.value,
            "is_read": self.is_read,
            "created_at": self.created_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Alert":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            type=AlertType(row["type"]),
            title=row["title"],
            message=row["message"],
            related_id=row.get("related_id"),
            priority=AlertPriority(row["priority"]),
            is_read=bool(row.get("is_read", 0)),
            created_at=row.get("created_at", ""),
        )
