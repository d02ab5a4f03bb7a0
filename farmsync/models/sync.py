"""Sync queue domain model: one outbox entry per local mutation."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    CONFLICT = "conflict"


class SyncOperation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def http_method(self) -> str:
        return {"create": "POST", "update": "PUT", "delete": "DELETE"}[self.value]


@dataclass
class SyncQueueEntry:
    """A not-yet-acknowledged mutation of one domain record."""

    owner_id: str
    table_name: str
    record_id: str
    operation: SyncOperation
    payload: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: f"sync_{uuid.uuid4().hex}")
    retry_count: int = 0
    last_error: Optional[str] = None
    next_attempt_at: Optional[str] = None
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    def payload_json(self) -> str:
        return json.dumps(self.payload)

    @staticmethod
    def parse_payload(raw: Optional[str]) -> dict[str, Any]:
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "table_name": self.table_name,
            "record_id": self.record_id,
            "operation": self.operation.value,
            "payload": self.payload_json(),
            "retry_count": self.retry_count,
            "last_error": self.last_error,
            "next_attempt_at": self.next_attempt_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SyncQueueEntry":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            table_name=row["table_name"],
            record_id=row["record_id"],
            operation=SyncOperation(row["operation"]),
            payload=cls.parse_payload(row.get("payload")),
            retry_count=row.get("retry_count", 0),
            last_error=row.get("last_error"),
            next_attempt_at=row.get("next_attempt_at"),
            created_at=row.get("created_at", ""),
            updated_at=row.get("updated_at", ""),
        )


class OutcomeStatus(str, Enum):
    SYNCED = "synced"
    FAILED = "failed"
    CONFLICT = "conflict"


@dataclass
class SyncOutcome:
    """Result of one delivery attempt during a drain pass."""

    entry_id: str
    table_name: str
    record_id: str
    status: OutcomeStatus
    retry_count: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SYNCED

    def to_dict(self) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "table_name": self.table_name,
            "record_id": self.record_id,
            "status": self.status.value,
            "retry_count": self.retry_count,
            "error": self.error,
        }
