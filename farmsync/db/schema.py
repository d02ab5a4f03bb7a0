"""Database schema DDL: all table definitions for the local farm store."""

# Tables whose rows are pushed to the remote authority and carry sync_status.
SYNCED_TABLES = (
    "plots",
    "crops",
    "inventory_items",
    "stock_movements",
    "field_usage_logs",
    "expenses",
)

SCHEMA_DDL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys = ON;

-- ==========================================================================
-- Plots & Crops
-- ==========================================================================
CREATE TABLE IF NOT EXISTS plots (
    id              TEXT PRIMARY KEY,
    owner_id        TEXT NOT NULL,
    name            TEXT NOT NULL,
    size_acres      REAL NOT NULL DEFAULT 0,
    current_crop_id TEXT,
    notes           TEXT,
    sync_status     TEXT NOT NULL DEFAULT 'pending'
                    CHECK(sync_status IN ('synced','pending','conflict')),
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_plots_owner ON plots(owner_id);

CREATE TABLE IF NOT EXISTS crops (
    id                      TEXT PRIMARY KEY,
    owner_id                TEXT NOT NULL,
    plot_id                 TEXT NOT NULL,
    name                    TEXT NOT NULL,
    variety                 TEXT,
    planting_date           TEXT NOT NULL,
    expected_harvest_date   TEXT,
    status                  TEXT NOT NULL DEFAULT 'planted'
                            CHECK(status IN ('planted','growing','harvested')),
    fertilizer_stage_date   TEXT,
    pesticide_interval_days INTEGER CHECK(pesticide_interval_days IS NULL OR pesticide_interval_days > 0),
    last_pesticide_date     TEXT,
    sync_status             TEXT NOT NULL DEFAULT 'pending'
                            CHECK(sync_status IN ('synced','pending','conflict')),
    created_at              TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at              TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_crops_owner_status ON crops(owner_id, status);
CREATE INDEX IF NOT EXISTS idx_crops_owner_plot ON crops(owner_id, plot_id);

-- ==========================================================================
-- Inventory & Stock Ledger (append-only)
-- ==========================================================================
CREATE TABLE IF NOT EXISTS inventory_items (
    id              TEXT PRIMARY KEY,
    owner_id        TEXT NOT NULL,
    name            TEXT NOT NULL,
    category        TEXT NOT NULL
                    CHECK(category IN ('seeds','fertilizers','pesticides','equipment','fuel')),
    unit            TEXT NOT NULL CHECK(unit IN ('kg','litre','piece','acre')),
    min_threshold   REAL NOT NULL DEFAULT 0,
    description     TEXT,
    sync_status     TEXT NOT NULL DEFAULT 'pending'
                    CHECK(sync_status IN ('synced','pending','conflict')),
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_items_owner ON inventory_items(owner_id, category);

CREATE TABLE IF NOT EXISTS stock_movements (
    id              TEXT PRIMARY KEY,
    owner_id        TEXT NOT NULL,
    item_id         TEXT NOT NULL,
    type            TEXT NOT NULL CHECK(type IN ('in','out')),
    quantity        REAL NOT NULL CHECK(quantity > 0),
    date            TEXT NOT NULL,
    batch_number    TEXT,
    expiry_date     TEXT,
    purchase_price  REAL,
    supplier_id     TEXT,
    notes           TEXT,
    sync_status     TEXT NOT NULL DEFAULT 'pending'
                    CHECK(sync_status IN ('synced','pending','conflict')),
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_movements_owner_item ON stock_movements(owner_id, item_id);
CREATE INDEX IF NOT EXISTS idx_movements_date ON stock_movements(date);

-- ==========================================================================
-- Field usage & Expenses
-- ==========================================================================
CREATE TABLE IF NOT EXISTS field_usage_logs (
    id                  TEXT PRIMARY KEY,
    owner_id            TEXT NOT NULL,
    plot_id             TEXT NOT NULL,
    crop_id             TEXT NOT NULL,
    item_id             TEXT NOT NULL,
    quantity_used       REAL NOT NULL CHECK(quantity_used > 0),
    usage_date          TEXT NOT NULL,
    usage_time          TEXT NOT NULL,
    application_method  TEXT NOT NULL DEFAULT 'spray'
                        CHECK(application_method IN ('spray','spread','drip','broadcast','injection')),
    rain_probability    INTEGER NOT NULL DEFAULT 0
                        CHECK(rain_probability >= 0 AND rain_probability <= 100),
    weather_condition   TEXT,
    temperature         REAL,
    notes               TEXT,
    sync_status         TEXT NOT NULL DEFAULT 'pending'
                        CHECK(sync_status IN ('synced','pending','conflict')),
    created_at          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_usage_owner_date ON field_usage_logs(owner_id, usage_date);

CREATE TABLE IF NOT EXISTS expenses (
    id              TEXT PRIMARY KEY,
    owner_id        TEXT NOT NULL,
    item_id         TEXT,
    category        TEXT NOT NULL
                    CHECK(category IN ('seeds','fertilizers','pesticides','equipment','fuel','labor','other')),
    amount          REAL NOT NULL,
    date            TEXT NOT NULL,
    supplier_id     TEXT,
    description     TEXT DEFAULT '',
    sync_status     TEXT NOT NULL DEFAULT 'pending'
                    CHECK(sync_status IN ('synced','pending','conflict')),
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_expenses_owner_date ON expenses(owner_id, date);

-- ==========================================================================
-- Alerts (at most one unread per owner/type/related entity)
-- ==========================================================================
CREATE TABLE IF NOT EXISTS alerts (
    id          TEXT PRIMARY KEY,
    owner_id    TEXT NOT NULL,
    type        TEXT NOT NULL
                CHECK(type IN ('low_stock','fertilizer_stage','pesticide_interval',
                               'high_rain_probability','expiry_warning')),
    title       TEXT NOT NULL,
    message     TEXT NOT NULL,
    related_id  TEXT,
    priority    TEXT NOT NULL CHECK(priority IN ('low','medium','high','urgent')),
    is_read     INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_alerts_owner_read ON alerts(owner_id, is_read, created_at);
CREATE UNIQUE INDEX IF NOT EXISTS uq_alerts_unread
    ON alerts(owner_id, type, related_id) WHERE is_read = 0;

-- ==========================================================================
-- Sync queue (outbox). rowid order is creation order.
-- ==========================================================================
CREATE TABLE IF NOT EXISTS sync_queue (
    id              TEXT PRIMARY KEY,
    owner_id        TEXT NOT NULL,
    table_name      TEXT NOT NULL,
    record_id       TEXT NOT NULL,
    operation       TEXT NOT NULL CHECK(operation IN ('create','update','delete')),
    payload         TEXT NOT NULL,
    retry_count     INTEGER NOT NULL DEFAULT 0 CHECK(retry_count >= 0),
    last_error      TEXT,
    next_attempt_at TEXT,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_sync_queue_owner ON sync_queue(owner_id);
CREATE INDEX IF NOT EXISTS idx_sync_queue_record ON sync_queue(table_name, record_id);

-- ==========================================================================
-- Sync Log (audit trail)
-- ==========================================================================
CREATE TABLE IF NOT EXISTS sync_log (
    id          TEXT PRIMARY KEY,
    entry_id    TEXT NOT NULL,
    owner_id    TEXT NOT NULL,
    table_name  TEXT NOT NULL,
    record_id   TEXT NOT NULL,
    operation   TEXT NOT NULL CHECK(operation IN ('create','update','delete')),
    retry_count INTEGER NOT NULL DEFAULT 0,
    outcome     TEXT NOT NULL CHECK(outcome IN ('synced','failed','conflict')),
    message     TEXT,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_sync_log_record ON sync_log(table_name, record_id);
CREATE INDEX IF NOT EXISTS idx_sync_log_owner ON sync_log(owner_id);
CREATE INDEX IF NOT EXISTS idx_sync_log_created ON sync_log(created_at);
"""
