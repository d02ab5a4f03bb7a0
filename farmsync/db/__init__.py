"""Database layer: SQLite with ACID transactions and repository pattern."""

from farmsync.db.database import Database
from farmsync.db.schema import SCHEMA_DDL, SYNCED_TABLES

__all__ = ["Database", "SCHEMA_DDL", "SYNCED_TABLES"]
