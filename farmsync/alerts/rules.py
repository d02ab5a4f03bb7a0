"""Pure-function alert rules.

Each rule looks at one entity and a fixed "today" and returns the alert it
warrants, or None. No storage access and no side effects; dedup and
persistence belong to ``AlertEngine``.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from farmsync.models.alert import Alert, AlertPriority, AlertType
from farmsync.models.farm import Crop
from farmsync.models.inventory import CurrentStock, InventoryItem, StockMovement, StockType
from farmsync.utils.clock import days_between, parse_day

FERTILIZER_LEAD_DAYS = 3
PESTICIDE_WINDOW_DAYS = 2
EXPIRY_WINDOW_DAYS = 30
EXPIRY_HIGH_PRIORITY_DAYS = 7
RAIN_PROBABILITY_THRESHOLD = 70


def _qty(value: float) -> str:
    return f"{value:g}"


# ---------------------------------------------------------------------------
# Low stock
# ---------------------------------------------------------------------------

def low_stock_alert(owner_id: str, stock: CurrentStock) -> Optional[Alert]:
    if not stock.is_low_stock:
        return None
    unit = stock.unit.value
    return Alert(
        owner_id=owner_id,
        type=AlertType.LOW_STOCK,
        title="Low Stock Alert",
        message=(
            f"{stock.item_name} is running low. Current stock: "
            f"{_qty(stock.current_quantity)} {unit}. "
            f"Minimum threshold: {_qty(stock.min_threshold)} {unit}"
        ),
        related_id=stock.item_id,
        priority=AlertPriority.URGENT if stock.current_quantity == 0 else AlertPriority.HIGH,
    )


# ---------------------------------------------------------------------------
# Crop schedules
# ---------------------------------------------------------------------------

def fertilizer_days_until(crop: Crop, today: date) -> Optional[int]:
    if not crop.is_active or not crop.fertilizer_stage_date:
        return None
    return days_between(today, parse_day(crop.fertilizer_stage_date))


def fertilizer_stage_alert(owner_id: str, crop: Crop, today: date) -> Optional[Alert]:
    days = fertilizer_days_until(crop, today)
    if days is None or not 0 <= days <= FERTILIZER_LEAD_DAYS:
        return None
    when = " today" if days == 0 else f" in {days} day(s)"
    return Alert(
        owner_id=owner_id,
        type=AlertType.FERTILIZER_STAGE,
        title="Fertilizer Stage Reached",
        message=f"{crop.name} on plot {crop.plot_id} has reached fertilizer application stage{when}",
        related_id=crop.id,
        priority=AlertPriority.HIGH if days == 0 else AlertPriority.MEDIUM,
    )


def pesticide_days_remaining(crop: Crop, today: date) -> Optional[int]:
    """Days until the next application is due; negative once overdue.

    None when the crop is inactive, has no schedule, or is outside the
    ±2 day window around its interval.
    """
    if not crop.is_active or not crop.last_pesticide_date or not crop.pesticide_interval_days:
        return None
    interval = crop.pesticide_interval_days
    days_since = days_between(parse_day(crop.last_pesticide_date), today)
    if not interval - PESTICIDE_WINDOW_DAYS <= days_since <= interval + PESTICIDE_WINDOW_DAYS:
        return None
    return interval - days_since


def pesticide_interval_alert(owner_id: str, crop: Crop, today: date) -> Optional[Alert]:
    remaining = pesticide_days_remaining(crop, today)
    if remaining is None:
        return None
    when = f" in {remaining} day(s)" if remaining > 0 else " now"
    return Alert(
        owner_id=owner_id,
        type=AlertType.PESTICIDE_INTERVAL,
        title="Pesticide Interval Completed",
        message=f"{crop.name} on plot {crop.plot_id} is ready for next pesticide application{when}",
        related_id=crop.id,
        priority=AlertPriority.HIGH if remaining <= 0 else AlertPriority.MEDIUM,
    )


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------

def expiry_days_until(movement: StockMovement, today: date) -> Optional[int]:
    if movement.type != StockType.IN or not movement.expiry_date:
        return None
    return days_between(today, parse_day(movement.expiry_date))


def expiry_alert(
    owner_id: str, movement: StockMovement, item: InventoryItem, today: date
) -> Optional[Alert]:
    days = expiry_days_until(movement, today)
    if days is None or not 0 <= days <= EXPIRY_WINDOW_DAYS:
        return None
    return Alert(
        owner_id=owner_id,
        type=AlertType.EXPIRY_WARNING,
        title="Expiry Warning",
        message=(
            f"{item.name} (Batch: {movement.batch_number or 'N/A'}) "
            f"is expiring in {days} day(s)"
        ),
        related_id=movement.id,
        priority=AlertPriority.HIGH if days <= EXPIRY_HIGH_PRIORITY_DAYS else AlertPriority.MEDIUM,
    )


# ---------------------------------------------------------------------------
# Weather (data-entry time, never persisted)
# ---------------------------------------------------------------------------

def rain_probability_advisory(rain_probability: float, owner_id: str = "") -> Optional[Alert]:
    """Transient spray advisory for a forecast rain probability in percent."""
    if not 0 <= rain_probability <= 100:
        raise ValueError(f"Rain probability must be between 0 and 100, got {rain_probability}")
    if rain_probability < RAIN_PROBABILITY_THRESHOLD:
        return None
    return Alert(
        owner_id=owner_id,
        type=AlertType.HIGH_RAIN_PROBABILITY,
        title="High Rain Probability",
        message=(
            f"Rain probability is {_qty(rain_probability)}%. Do not spray today. "
            "Best time: Morning or Evening when probability is lower."
        ),
        priority=AlertPriority.HIGH,
    )
