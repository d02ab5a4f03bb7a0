"""Generic access to the synced domain tables, keyed by record id.

The sync queue and engine only know a record by ``(table_name, record_id)``;
this store gives them the handful of table-agnostic operations they need
without knowing each table's columns.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from farmsync.db.database import Database
from farmsync.db.schema import SYNCED_TABLES
from farmsync.exceptions import UnknownTableError
from farmsync.models.sync import SyncStatus


class RecordStore:
    """Table-agnostic CRUD over ``SYNCED_TABLES``."""

    def __init__(self, db: Database):
        self._db = db
        self._columns: dict[str, list[str]] = {}

    @staticmethod
    def is_synced_table(table: str) -> bool:
        return table in SYNCED_TABLES

    def _check(self, table: str) -> None:
        if table not in SYNCED_TABLES:
            raise UnknownTableError(table)

    def columns(self, table: str) -> list[str]:
        self._check(table)
        if table not in self._columns:
            self._columns[table] = self._db.columns(table)
        return self._columns[table]

    # -- Read ------------------------------------------------------------------

    def get(self, table: str, record_id: str) -> Optional[dict[str, Any]]:
        self._check(table)
        return self._db.fetchone(f"SELECT * FROM {table} WHERE id = ?", (record_id,))

    def get_sync_status(self, table: str, record_id: str) -> Optional[SyncStatus]:
        self._check(table)
        row = self._db.fetchone(f"SELECT sync_status FROM {table} WHERE id = ?", (record_id,))
        return SyncStatus(row["sync_status"]) if row else None

    # -- Write -----------------------------------------------------------------

    def insert(self, table: str, row: dict[str, Any]) -> None:
        cols = [c for c in self.columns(table) if c in row]
        placeholders = ", ".join("?" for _ in cols)
        with self._db.transaction() as conn:
            conn.execute(
                f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({placeholders})",
                tuple(row[c] for c in cols),
            )

    def update_fields(self, table: str, record_id: str, **fields: Any) -> bool:
        """Atomically update arbitrary known columns of one record."""
        allowed = set(self.columns(table)) - {"id"}
        filtered = {k: v for k, v in fields.items() if k in allowed}
        if not filtered:
            return False
        if "updated_at" not in filtered:
            filtered["updated_at"] = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        set_parts = [f"{k} = ?" for k in filtered]
        values = list(filtered.values())
        values.append(record_id)
        with self._db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE {table} SET {', '.join(set_parts)} WHERE id = ?",
                tuple(values),
            )
        return cursor.rowcount > 0

    def set_sync_status(self, table: str, record_id: str, status: SyncStatus) -> bool:
        """Set the denormalised status without touching ``updated_at``."""
        self._check(table)
        with self._db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE {table} SET sync_status = ? WHERE id = ?",
                (status.value, record_id),
            )
        return cursor.rowcount > 0

    def delete(self, table: str, record_id: str) -> bool:
        self._check(table)
        with self._db.transaction() as conn:
            cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
        return cursor.rowcount > 0
