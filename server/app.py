"""FastAPI web server for FarmSync."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from farmsync.config import configure_logging, get_alert_config, get_remote_config
from farmsync.db.database import Database
from farmsync.exceptions import InsufficientStockError, RecordNotFoundError, UnknownTableError
from farmsync.models import (
    ApplicationMethod, Crop, CropStatus, Expense, ExpenseCategory, FieldUsageLog,
    InventoryCategory, InventoryItem, Plot, StockMovement, StockType, Unit,
)
from farmsync.services.farm_service import FarmService
from farmsync.sync.connectivity import ConnectivityMonitor
from farmsync.sync.transport import HttpSyncTransport
from server.settings import settings

logger = logging.getLogger(__name__)


# Global service instances
_service: Optional[FarmService] = None
_monitor: Optional[ConnectivityMonitor] = None


def set_service(service: Optional[FarmService]) -> None:
    """Install a prebuilt service (tests, embedding). The lifespan keeps it."""
    global _service
    _service = service


def _get_service() -> FarmService:
    if _service is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service stack on startup; run the sync timer and alert sweep."""
    global _service, _monitor
    configure_logging(settings.LOG_LEVEL)

    transport: Optional[HttpSyncTransport] = None
    if _service is None:
        db = Database(path=settings.database_path)
        db.init()
        transport = HttpSyncTransport(get_remote_config())
        _service = FarmService.from_config(db, transport=transport)
        logger.info(f"Server started - DB: {db.path}")

    service = _service
    if settings.BACKGROUND_TASKS:
        service.sync.start()
        service.alerts.start_sweep(
            service.farm.list_owner_ids, get_alert_config().sweep_interval_seconds
        )
        if transport is not None and settings.CONNECTIVITY_PROBE:
            _monitor = ConnectivityMonitor(transport.ping, settings.CONNECTIVITY_INTERVAL_SECONDS)
            _monitor.subscribe(service.sync.set_online)
            _monitor.start()
    yield

    logger.info("Server shutting down")
    if _monitor is not None:
        _monitor.stop(timeout=5)
        _monitor = None
    if settings.BACKGROUND_TASKS:
        service.alerts.stop_sweep(timeout=5)
        service.sync.stop(timeout=5)
    if transport is not None:
        transport.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="Offline-first farm records with a durable sync outbox and rule-based alerts",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request Models
class PlotCreate(BaseModel):
    name: str
    size_acres: float = Field(ge=0)
    notes: Optional[str] = None


class CropCreate(BaseModel):
    plot_id: str
    name: str
    planting_date: str
    status: CropStatus = CropStatus.PLANTED
    variety: Optional[str] = None
    expected_harvest_date: Optional[str] = None
    fertilizer_stage_date: Optional[str] = None
    pesticide_interval_days: Optional[int] = Field(default=None, gt=0)
    last_pesticide_date: Optional[str] = None


class CropUpdate(BaseModel):
    status: Optional[CropStatus] = None
    expected_harvest_date: Optional[str] = None
    fertilizer_stage_date: Optional[str] = None
    pesticide_interval_days: Optional[int] = Field(default=None, gt=0)
    last_pesticide_date: Optional[str] = None


class InventoryItemCreate(BaseModel):
    name: str
    category: InventoryCategory
    unit: Unit
    min_threshold: float = Field(default=0, ge=0)
    description: Optional[str] = None


class StockMovementCreate(BaseModel):
    item_id: str
    type: StockType
    quantity: float = Field(gt=0)
    date: str
    batch_number: Optional[str] = None
    expiry_date: Optional[str] = None
    purchase_price: Optional[float] = None
    supplier_id: Optional[str] = None
    notes: Optional[str] = None


class UsageCreate(BaseModel):
    plot_id: str
    crop_id: str
    item_id: str
    quantity_used: float
    usage_date: str
    usage_time: str
    application_method: ApplicationMethod = ApplicationMethod.SPRAY
    rain_probability: int = Field(default=0, ge=0, le=100)
    weather_condition: Optional[str] = None
    temperature: Optional[float] = None
    notes: Optional[str] = None


class ExpenseCreate(BaseModel):
    category: ExpenseCategory
    amount: float = Field(ge=0)
    date: str
    description: str = ""
    item_id: Optional[str] = None
    supplier_id: Optional[str] = None


class DrainRequest(BaseModel):
    owner_id: Optional[str] = None


class ConnectivityRequest(BaseModel):
    online: bool


# API Routes
@app.get("/api/status")
async def get_status():
    """Get system status."""
    service = _service
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sync": {
            "connectivity": service.sync.state.value if service else None,
            "draining": service.sync.queue.is_draining if service else False,
            "pending": service.sync.queue.pending_count() if service else 0,
        },
        "services": {
            "database": service is not None,
        },
    }


# -- Dashboard & stock ---------------------------------------------------------

@app.get("/api/farms/{owner_id}/dashboard")
async def get_dashboard(owner_id: str):
    return _get_service().dashboard_stats(owner_id).to_dict()


@app.get("/api/farms/{owner_id}/stock")
async def list_stock(owner_id: str, low_only: bool = False):
    """Current stock per item, derived from the movement ledger."""
    service = _get_service()
    stocks = service.ledger.low_stock(owner_id) if low_only else service.ledger.all_current_stocks(owner_id)
    return {"count": len(stocks), "items": [s.to_dict() for s in stocks]}


# -- Records -------------------------------------------------------------------

@app.get("/api/farms/{owner_id}/plots")
async def list_plots(owner_id: str):
    plots = _get_service().farm.list_plots(owner_id)
    return {"count": len(plots), "plots": [p.to_dict() for p in plots]}


@app.get("/api/farms/{owner_id}/crops")
async def list_crops(owner_id: str, plot_id: Optional[str] = None):
    crops = _get_service().farm.list_crops(owner_id, plot_id)
    return {"count": len(crops), "crops": [c.to_dict() for c in crops]}


@app.post("/api/farms/{owner_id}/plots", status_code=201)
def create_plot(owner_id: str, body: PlotCreate):
    plot = _get_service().add_plot(Plot(owner_id=owner_id, **body.model_dump()))
    return {"status": "created", "plot": plot.to_dict()}


@app.post("/api/farms/{owner_id}/crops", status_code=201)
def create_crop(owner_id: str, body: CropCreate):
    try:
        crop = _get_service().add_crop(Crop(owner_id=owner_id, **body.model_dump()))
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "created", "crop": crop.to_dict()}


@app.patch("/api/crops/{crop_id}")
def update_crop(crop_id: str, body: CropUpdate):
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=422, detail="No fields to update")
    try:
        crop = _get_service().update_crop(crop_id, **fields)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "updated", "crop": crop.to_dict()}


@app.post("/api/farms/{owner_id}/inventory-items", status_code=201)
def create_inventory_item(owner_id: str, body: InventoryItemCreate):
    item = _get_service().add_inventory_item(InventoryItem(owner_id=owner_id, **body.model_dump()))
    return {"status": "created", "item": item.to_dict()}


@app.post("/api/farms/{owner_id}/stock-movements", status_code=201)
def create_stock_movement(owner_id: str, body: StockMovementCreate):
    try:
        movement = _get_service().record_stock_movement(
            StockMovement(owner_id=owner_id, **body.model_dump())
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"status": "created", "movement": movement.to_dict()}


@app.post("/api/farms/{owner_id}/usage", status_code=201)
def create_usage(owner_id: str, body: UsageCreate):
    """Record a field application; the response carries any spray advisory."""
    try:
        result = _get_service().record_field_usage(
            FieldUsageLog(owner_id=owner_id, **body.model_dump())
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientStockError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"status": "created", **result.to_dict()}


@app.post("/api/farms/{owner_id}/expenses", status_code=201)
def create_expense(owner_id: str, body: ExpenseCreate):
    expense = _get_service().add_expense(Expense(owner_id=owner_id, **body.model_dump()))
    return {"status": "created", "expense": expense.to_dict()}


@app.delete("/api/records/{table}/{record_id}")
def delete_record(table: str, record_id: str):
    try:
        _get_service().delete_record(table, record_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (UnknownTableError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"status": "deleted", "table": table, "record_id": record_id}


# -- Alerts --------------------------------------------------------------------

@app.get("/api/farms/{owner_id}/alerts")
async def list_alerts(owner_id: str, limit: Optional[int] = None):
    """Unread alerts, newest first."""
    alerts = _get_service().alerts.get_unread_alerts(owner_id, limit)
    return {"count": len(alerts), "alerts": [a.to_dict() for a in alerts]}


@app.post("/api/farms/{owner_id}/alerts/check")
def check_alerts(owner_id: str):
    created = _get_service().alerts.check_all_alerts(owner_id)
    return {"created": len(created), "alerts": [a.to_dict() for a in created]}


@app.post("/api/alerts/{alert_id}/read")
async def mark_alert_read(alert_id: str):
    if not _get_service().alerts.mark_alert_as_read(alert_id):
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return {"status": "read", "alert_id": alert_id}


@app.get("/api/weather/rain-check")
async def rain_check(probability: float):
    """Spray advisory for a forecast rain probability (percent). Nothing is stored."""
    try:
        advisory = _get_service().alerts.check_rain_probability_alert(probability)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "rain_probability": probability,
        "spray_ok": advisory is None,
        "advisory": advisory.to_dict() if advisory else None,
    }


# -- Sync ----------------------------------------------------------------------

@app.get("/api/farms/{owner_id}/sync/queue")
async def list_sync_queue(owner_id: str):
    queue = _get_service().sync.queue
    entries = queue.list_entries(owner_id)
    conflicts = queue.list_conflicts(owner_id)
    return {
        "count": len(entries),
        "conflicts": len(conflicts),
        "entries": [e.to_dict() for e in entries],
    }


@app.post("/api/sync/drain")
def run_drain(body: Optional[DrainRequest] = None):
    """Trigger a drain pass now. Offline or already draining returns no outcomes."""
    engine = _get_service().sync
    owner_id = body.owner_id if body else None
    outcomes = engine.drain(owner_id)
    return {
        "status": "completed",
        "connectivity": engine.state.value,
        "processed": len(outcomes),
        "outcomes": [o.to_dict() for o in outcomes],
    }


@app.post("/api/sync/connectivity")
def set_connectivity(body: ConnectivityRequest):
    engine = _get_service().sync
    outcomes = engine.set_online(body.online)
    return {
        "connectivity": engine.state.value,
        "outcomes": [o.to_dict() for o in outcomes],
    }


@app.post("/api/sync/queue/{entry_id}/retry")
def retry_entry(entry_id: str):
    service = _get_service()
    entry = service.sync.queue.retry_entry(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Sync entry {entry_id} not found")
    outcomes = service.sync.drain(entry.owner_id)
    return {
        "status": "reset",
        "entry": entry.to_dict(),
        "outcomes": [o.to_dict() for o in outcomes],
    }
