"""Repository for the ``alerts`` table."""

from __future__ import annotations

import sqlite3
from typing import Optional

from farmsync.db.database import Database
from farmsync.models.alert import Alert, AlertType


class AlertRepository:
    """Alerts are created by rule evaluation and only ever updated to read."""

    def __init__(self, db: Database):
        self._db = db

    def find_unread(
        self, owner_id: str, alert_type: AlertType, related_id: Optional[str]
    ) -> Optional[Alert]:
        row = self._db.fetchone(
            """SELECT * FROM alerts
               WHERE owner_id = ? AND type = ? AND related_id IS ? AND is_read = 0
               LIMIT 1""",
            (owner_id, alert_type.value, related_id),
        )
        return Alert.from_row(row) if row else None

    def insert_if_absent(self, alert: Alert) -> bool:
        """Insert unless an unread alert for the same owner/type/entity exists.

        Returns True when a row was written. The partial unique index on
        unread alerts rejects a duplicate that slipped past the check.
        """
        if self.find_unread(alert.owner_id, alert.type, alert.related_id):
            return False
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    """INSERT INTO alerts
                       (id, owner_id, type, title, message, related_id,
                        priority, is_read, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        alert.id, alert.owner_id, alert.type.value, alert.title,
                        alert.message, alert.related_id, alert.priority.value,
                        int(alert.is_read), alert.created_at,
                    ),
                )
        except sqlite3.IntegrityError:
            return False
        return True

    def get(self, alert_id: str) -> Optional[Alert]:
        row = self._db.fetchone("SELECT * FROM alerts WHERE id = ?", (alert_id,))
        return Alert.from_row(row) if row else None

    def list_unread(self, owner_id: str, limit: Optional[int] = None) -> list[Alert]:
        sql = "SELECT * FROM alerts WHERE owner_id = ? AND is_read = 0 ORDER BY created_at DESC, rowid DESC"
        params: tuple = (owner_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (owner_id, limit)
        return [Alert.from_row(r) for r in self._db.fetchall(sql, params)]

    def list_all(self, owner_id: str) -> list[Alert]:
        rows = self._db.fetchall(
            "SELECT * FROM alerts WHERE owner_id = ? ORDER BY created_at DESC, rowid DESC",
            (owner_id,),
        )
        return [Alert.from_row(r) for r in rows]

    def count_unread(self, owner_id: str) -> int:
        row = self._db.fetchone(
            "SELECT COUNT(*) AS n FROM alerts WHERE owner_id = ? AND is_read = 0", (owner_id,)
        )
        return row["n"] if row else 0

    def mark_read(self, alert_id: str) -> bool:
        with self._db.transaction() as conn:
            cursor = conn.execute("UPDATE alerts SET is_read = 1 WHERE id = ?", (alert_id,))
        return cursor.rowcount > 0
