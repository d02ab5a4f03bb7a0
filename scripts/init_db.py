#!/usr/bin/env python3
"""Initialize the database and optionally seed a farm from a YAML file."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from farmsync.config import configure_logging
from farmsync.db.database import Database
from farmsync.models import (
    Crop, CropStatus, InventoryCategory, InventoryItem, Plot, StockMovement, StockType, Unit,
)
from farmsync.services.farm_service import FarmService


def main():
    parser = argparse.ArgumentParser(description="Initialize the database")
    parser.add_argument("--seed-farm", type=str, help="YAML file with plots, crops and inventory")
    parser.add_argument("--db-path", type=str, help="Override database path")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default from env)")
    args = parser.parse_args()

    configure_logging(args.log_level)
    db_path = Path(args.db_path) if args.db_path else None
    db = Database(path=db_path)
    db.init()
    print(f"Database initialized at: {db.path}")

    if args.seed_farm:
        # Seeded records are queued offline; the server drains them once it connects.
        service = FarmService.from_config(db, online=False)
        _seed_farm(service, Path(args.seed_farm))
        print(f"  Queued for sync: {service.sync.queue.pending_count()} entries")

    db.close()
    print("Done.")


def _seed_farm(service: FarmService, path: Path):
    import yaml
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    owner_id = data["owner_id"]
    for p in data.get("plots", []):
        try:
            plot = service.add_plot(Plot(
                owner_id=owner_id,
                name=p["name"],
                size_acres=p.get("size_acres", 0),
                notes=p.get("notes"),
            ))
            print(f"  Created plot: {plot.name}")
        except Exception as e:
            print(f"  Skipping plot {p.get('name', '?')}: {e}")
            continue
        for c in p.get("crops", []):
            _seed_crop(service, owner_id, plot, c)

    for i in data.get("inventory", []):
        _seed_item(service, owner_id, i)


def _seed_crop(service: FarmService, owner_id: str, plot: Plot, c: dict[str, Any]):
    try:
        crop = service.add_crop(Crop(
            owner_id=owner_id,
            plot_id=plot.id,
            name=c["name"],
            variety=c.get("variety"),
            planting_date=str(c["planting_date"]),
            status=CropStatus(c.get("status", "planted")),
            expected_harvest_date=_day(c.get("expected_harvest_date")),
            fertilizer_stage_date=_day(c.get("fertilizer_stage_date")),
            pesticide_interval_days=c.get("pesticide_interval_days"),
            last_pesticide_date=_day(c.get("last_pesticide_date")),
        ))
        print(f"    Created crop: {crop.name} on {plot.name}")
    except Exception as e:
        print(f"    Skipping crop {c.get('name', '?')}: {e}")


def _seed_item(service: FarmService, owner_id: str, i: dict[str, Any]):
    try:
        item = service.add_inventory_item(InventoryItem(
            owner_id=owner_id,
            name=i["name"],
            category=InventoryCategory(i["category"]),
            unit=Unit(i["unit"]),
            min_threshold=i.get("min_threshold", 0),
            description=i.get("description"),
        ))
        print(f"  Created item: {item.name}")
        for s in i.get("stock", []):
            service.record_stock_movement(StockMovement(
                owner_id=owner_id,
                item_id=item.id,
                type=StockType(s.get("type", "in")),
                quantity=s["quantity"],
                date=str(s["date"]),
                batch_number=s.get("batch_number"),
                expiry_date=_day(s.get("expiry_date")),
                purchase_price=s.get("purchase_price"),
                notes=s.get("notes"),
            ))
            print(f"    Stock {s.get('type', 'in')}: {s['quantity']} {item.unit.value}")
    except Exception as e:
        print(f"  Skipping item {i.get('name', '?')}: {e}")


def _day(value: Any):
    # YAML parses bare dates into date objects
    return str(value) if value is not None else None


if __name__ == "__main__":
    main()
