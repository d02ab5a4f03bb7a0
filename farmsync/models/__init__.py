"""Domain models for the offline-first farm records core."""

from farmsync.models.sync import SyncStatus, SyncOperation, SyncQueueEntry, SyncOutcome, OutcomeStatus
from farmsync.models.inventory import (
    InventoryItem, InventoryCategory, Unit, StockMovement, StockType, CurrentStock,
)
from farmsync.models.farm import (
    Plot, Crop, CropStatus, FieldUsageLog, ApplicationMethod, Expense, ExpenseCategory,
)
from farmsync.models.alert import Alert, AlertType, AlertPriority

__all__ = [
    "SyncStatus", "SyncOperation", "SyncQueueEntry", "SyncOutcome", "OutcomeStatus",
    "InventoryItem", "InventoryCategory", "Unit", "StockMovement", "StockType", "CurrentStock",
    "Plot", "Crop", "CropStatus", "FieldUsageLog", "ApplicationMethod", "Expense", "ExpenseCategory",
    "Alert", "AlertType", "AlertPriority",
]
