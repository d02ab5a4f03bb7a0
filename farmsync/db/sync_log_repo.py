"""Repository for the ``sync_log`` table: one row per outbox delivery attempt."""

from __future__ import annotations

import uuid
from typing import Any, Optional

from farmsync.db.database import Database
from farmsync.models.sync import OutcomeStatus, SyncQueueEntry


class SyncLogRepository:
    """Append-only attempt history, pruned by age."""

    def __init__(self, db: Database):
        self._db = db

    def record_attempt(
        self,
        entry: SyncQueueEntry,
        outcome: OutcomeStatus,
        retry_count: int,
        attempted_at: str,
        message: Optional[str] = None,
    ) -> str:
        log_id = str(uuid.uuid4())
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO sync_log
                   (id, entry_id, owner_id, table_name, record_id, operation,
                    retry_count, outcome, message, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    log_id, entry.id, entry.owner_id, entry.table_name, entry.record_id,
                    entry.operation.value, retry_count, outcome.value, message, attempted_at,
                ),
            )
        return log_id

    def for_record(self, table_name: str, record_id: str) -> list[dict[str, Any]]:
        """Attempts for one record, newest first."""
        return self._db.fetchall(
            """SELECT * FROM sync_log WHERE table_name = ? AND record_id = ?
               ORDER BY rowid DESC""",
            (table_name, record_id),
        )

    def recent(self, limit: int = 20, owner_id: Optional[str] = None) -> list[dict[str, Any]]:
        if owner_id:
            return self._db.fetchall(
                "SELECT * FROM sync_log WHERE owner_id = ? ORDER BY rowid DESC LIMIT ?",
                (owner_id, limit),
            )
        return self._db.fetchall(
            "SELECT * FROM sync_log ORDER BY rowid DESC LIMIT ?", (limit,)
        )

    def prune(self, before: str) -> int:
        """Delete attempts logged strictly before ``before``."""
        with self._db.transaction() as conn:
            cursor = conn.execute("DELETE FROM sync_log WHERE created_at < ?", (before,))
        return cursor.rowcount
