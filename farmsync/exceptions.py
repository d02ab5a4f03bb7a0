"""Domain exceptions raised by the service facade and local store."""

from __future__ import annotations


class FarmSyncError(Exception):
    """Base class for FarmSync errors."""


class UnknownTableError(FarmSyncError, ValueError):
    """Raised when a table name is not one of the synced domain tables."""

    def __init__(self, table: str):
        super().__init__(f"Unknown table: {table}")
        self.table = table


class RecordNotFoundError(FarmSyncError, LookupError):
    def __init__(self, table: str, record_id: str):
        super().__init__(f"{table} record {record_id} not found")
        self.table = table
        self.record_id = record_id


class InsufficientStockError(FarmSyncError, ValueError):
    """Raised when a usage would draw more than the ledger currently holds."""

    def __init__(self, item_id: str, requested: float, available: float):
        super().__init__(
            f"Insufficient stock for item {item_id}: requested {requested}, available {available}"
        )
        self.item_id = item_id
        self.requested = requested
        self.available = available
