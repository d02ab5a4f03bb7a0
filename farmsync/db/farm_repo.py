"""Repository for plots, crops, field usage logs and expenses."""

from __future__ import annotations

from typing import Any, Optional

from farmsync.db.database import Database
from farmsync.models.farm import (
    ACTIVE_CROP_STATUSES, Crop, Expense, FieldUsageLog, Plot,
)


class FarmRepository:
    """Persistence for the field-side records of a farm."""

    def __init__(self, db: Database):
        self._db = db

    # -- Plots -----------------------------------------------------------------

    def create_plot(self, plot: Plot) -> Plot:
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO plots
                   (id, owner_id, name, size_acres, current_crop_id, notes,
                    sync_status, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    plot.id, plot.owner_id, plot.name, plot.size_acres,
                    plot.current_crop_id, plot.notes, plot.sync_status.value,
                    plot.created_at, plot.updated_at,
                ),
            )
        return plot

    def get_plot(self, plot_id: str) -> Optional[Plot]:
        row = self._db.fetchone("SELECT * FROM plots WHERE id = ?", (plot_id,))
        return Plot.from_row(row) if row else None

    def list_plots(self, owner_id: str) -> list[Plot]:
        rows = self._db.fetchall(
            "SELECT * FROM plots WHERE owner_id = ? ORDER BY name", (owner_id,)
        )
        return [Plot.from_row(r) for r in rows]

    # -- Crops -----------------------------------------------------------------

    def create_crop(self, crop: Crop) -> Crop:
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO crops
                   (id, owner_id, plot_id, name, variety, planting_date,
                    expected_harvest_date, status, fertilizer_stage_date,
                    pesticide_interval_days, last_pesticide_date,
                    sync_status, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    crop.id, crop.owner_id, crop.plot_id, crop.name, crop.variety,
                    crop.planting_date, crop.expected_harvest_date, crop.status.value,
                    crop.fertilizer_stage_date, crop.pesticide_interval_days,
                    crop.last_pesticide_date, crop.sync_status.value,
                    crop.created_at, crop.updated_at,
                ),
            )
        return crop

    def get_crop(self, crop_id: str) -> Optional[Crop]:
        row = self._db.fetchone("SELECT * FROM crops WHERE id = ?", (crop_id,))
        return Crop.from_row(row) if row else None

    def list_crops(self, owner_id: str, plot_id: Optional[str] = None) -> list[Crop]:
        if plot_id:
            rows = self._db.fetchall(
                "SELECT * FROM crops WHERE owner_id = ? AND plot_id = ? ORDER BY planting_date",
                (owner_id, plot_id),
            )
        else:
            rows = self._db.fetchall(
                "SELECT * FROM crops WHERE owner_id = ? ORDER BY planting_date", (owner_id,)
            )
        return [Crop.from_row(r) for r in rows]

    def list_active_crops(self, owner_id: str) -> list[Crop]:
        statuses = [s.value for s in ACTIVE_CROP_STATUSES]
        rows = self._db.fetchall(
            f"""SELECT * FROM crops
                WHERE owner_id = ? AND status IN ({', '.join('?' for _ in statuses)})
                ORDER BY planting_date""",
            (owner_id, *statuses),
        )
        return [Crop.from_row(r) for r in rows]

    # -- Field usage -----------------------------------------------------------

    def create_usage(self, usage: FieldUsageLog) -> FieldUsageLog:
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO field_usage_logs
                   (id, owner_id, plot_id, crop_id, item_id, quantity_used,
                    usage_date, usage_time, application_method, rain_probability,
                    weather_condition, temperature, notes,
                    sync_status, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    usage.id, usage.owner_id, usage.plot_id, usage.crop_id,
                    usage.item_id, usage.quantity_used, usage.usage_date,
                    usage.usage_time, usage.application_method.value,
                    usage.rain_probability, usage.weather_condition,
                    usage.temperature, usage.notes, usage.sync_status.value,
                    usage.created_at, usage.updated_at,
                ),
            )
        return usage

    def recent_usage(self, owner_id: str, limit: int = 5) -> list[FieldUsageLog]:
        rows = self._db.fetchall(
            """SELECT * FROM field_usage_logs WHERE owner_id = ?
               ORDER BY usage_date DESC, usage_time DESC LIMIT ?""",
            (owner_id, limit),
        )
        return [FieldUsageLog.from_row(r) for r in rows]

    # -- Expenses --------------------------------------------------------------

    def create_expense(self, expense: Expense) -> Expense:
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO expenses
                   (id, owner_id, item_id, category, amount, date, supplier_id,
                    description, sync_status, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    expense.id, expense.owner_id, expense.item_id,
                    expense.category.value, expense.amount, expense.date,
                    expense.supplier_id, expense.description,
                    expense.sync_status.value, expense.created_at, expense.updated_at,
                ),
            )
        return expense

    def expense_total(self, owner_id: str, start: str, end: str) -> float:
        """Sum of expenses dated in [start, end)."""
        row = self._db.fetchone(
            """SELECT COALESCE(SUM(amount), 0) AS total FROM expenses
               WHERE owner_id = ? AND date >= ? AND date < ?""",
            (owner_id, start, end),
        )
        return float(row["total"]) if row else 0.0

    # -- Counts ----------------------------------------------------------------

    def counts(self, owner_id: str) -> dict[str, Any]:
        plots = self._db.fetchone(
            "SELECT COUNT(*) AS n FROM plots WHERE owner_id = ?", (owner_id,)
        )
        active = self._db.fetchone(
            "SELECT COUNT(*) AS n FROM crops WHERE owner_id = ? AND status IN ('planted','growing')",
            (owner_id,),
        )
        return {
            "total_plots": plots["n"] if plots else 0,
            "active_crops": active["n"] if active else 0,
        }

    def list_owner_ids(self) -> list[str]:
        rows = self._db.fetchall(
            """SELECT owner_id FROM plots
               UNION SELECT owner_id FROM crops
               UNION SELECT owner_id FROM inventory_items
               ORDER BY owner_id"""
        )
        return [r["owner_id"] for r in rows]
