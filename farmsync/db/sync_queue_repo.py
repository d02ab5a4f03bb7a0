"""Repository for the ``sync_queue`` table: the durable outbox."""

from __future__ import annotations

from typing import Optional

from farmsync.db.database import Database
from farmsync.models.sync import SyncQueueEntry


class SyncQueueRepository:
    """Single-Responsibility repository for outbox entry persistence."""

    def __init__(self, db: Database):
        self._db = db

    def insert(self, entry: SyncQueueEntry) -> SyncQueueEntry:
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO sync_queue
                   (id, owner_id, table_name, record_id, operation, payload,
                    retry_count, last_error, next_attempt_at, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry.id, entry.owner_id, entry.table_name, entry.record_id,
                    entry.operation.value, entry.payload_json(),
                    entry.retry_count, entry.last_error, entry.next_attempt_at,
                    entry.created_at, entry.updated_at,
                ),
            )
        return entry

    # -- Read ------------------------------------------------------------------

    def get(self, entry_id: str) -> Optional[SyncQueueEntry]:
        row = self._db.fetchone("SELECT * FROM sync_queue WHERE id = ?", (entry_id,))
        return SyncQueueEntry.from_row(row) if row else None

    def list_all(self, owner_id: Optional[str] = None) -> list[SyncQueueEntry]:
        if owner_id:
            rows = self._db.fetchall(
                "SELECT * FROM sync_queue WHERE owner_id = ? ORDER BY rowid", (owner_id,)
            )
        else:
            rows = self._db.fetchall("SELECT * FROM sync_queue ORDER BY rowid")
        return [SyncQueueEntry.from_row(r) for r in rows]

    def list_exhausted(self, max_retries: int, owner_id: Optional[str] = None) -> list[SyncQueueEntry]:
        if owner_id:
            rows = self._db.fetchall(
                """SELECT * FROM sync_queue WHERE retry_count >= ? AND owner_id = ?
                   ORDER BY rowid""",
                (max_retries, owner_id),
            )
        else:
            rows = self._db.fetchall(
                "SELECT * FROM sync_queue WHERE retry_count >= ? ORDER BY rowid",
                (max_retries,),
            )
        return [SyncQueueEntry.from_row(r) for r in rows]

    def count(self, owner_id: Optional[str] = None) -> int:
        if owner_id:
            row = self._db.fetchone(
                "SELECT COUNT(*) AS n FROM sync_queue WHERE owner_id = ?", (owner_id,)
            )
        else:
            row = self._db.fetchone("SELECT COUNT(*) AS n FROM sync_queue")
        return row["n"] if row else 0

    def count_for_record(self, table_name: str, record_id: str) -> int:
        row = self._db.fetchone(
            "SELECT COUNT(*) AS n FROM sync_queue WHERE table_name = ? AND record_id = ?",
            (table_name, record_id),
        )
        return row["n"] if row else 0

    def has_exhausted_for_record(self, table_name: str, record_id: str, max_retries: int) -> bool:
        row = self._db.fetchone(
            """SELECT 1 FROM sync_queue
               WHERE table_name = ? AND record_id = ? AND retry_count >= ?
               LIMIT 1""",
            (table_name, record_id, max_retries),
        )
        return row is not None

    # -- Update ----------------------------------------------------------------

    def record_failure(
        self, entry_id: str, error: str, next_attempt_at: Optional[str], now: str
    ) -> Optional[SyncQueueEntry]:
        with self._db.transaction() as conn:
            conn.execute(
                """UPDATE sync_queue SET
                       retry_count = retry_count + 1,
                       last_error = ?, next_attempt_at = ?, updated_at = ?
                   WHERE id = ?""",
                (error, next_attempt_at, now, entry_id),
            )
        return self.get(entry_id)

    def reset(self, entry_id: str, now: str) -> Optional[SyncQueueEntry]:
        """Put an exhausted entry back under automatic retry."""
        with self._db.transaction() as conn:
            conn.execute(
                """UPDATE sync_queue SET
                       retry_count = 0, last_error = NULL,
                       next_attempt_at = NULL, updated_at = ?
                   WHERE id = ?""",
                (now, entry_id),
            )
        return self.get(entry_id)

    # -- Delete ----------------------------------------------------------------

    def delete(self, entry_id: str) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute("DELETE FROM sync_queue WHERE id = ?", (entry_id,))
        return cursor.rowcount > 0

    def delete_for_record(self, table_name: str, record_id: str) -> int:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM sync_queue WHERE table_name = ? AND record_id = ?",
                (table_name, record_id),
            )
        return cursor.rowcount
