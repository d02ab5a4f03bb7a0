#!/usr/bin/env python3
"""Quick check of database state: record counts, sync queue and conflicts.

Usage: python scripts/check_db.py [owner_id]
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from farmsync.db.database import Database
from farmsync.db.schema import SYNCED_TABLES
from farmsync.db.sync_log_repo import SyncLogRepository
from farmsync.db.sync_queue_repo import SyncQueueRepository
from farmsync.sync.queue import MAX_RETRIES

owner = sys.argv[1] if len(sys.argv) > 1 else None

db = Database()
db.init()

print("=== Records ===")
for table in SYNCED_TABLES:
    rows = db.fetchall(
        f"SELECT sync_status, COUNT(*) AS n FROM {table} GROUP BY sync_status"
    )
    by_status = ", ".join(f"{r['sync_status']}={r['n']}" for r in rows) or "empty"
    print(f"  {table:<18} {by_status}")

queue = SyncQueueRepository(db)
print("\n=== Sync queue ===")
entries = queue.list_all(owner)
print(f"Total: {len(entries)}")
for e in entries:
    state = "CONFLICT" if e.retry_count >= MAX_RETRIES else f"retry {e.retry_count}"
    print(f"  {e.id[:13]} | {e.operation.value:<6} {e.table_name}:{e.record_id[:14]:<14} | {state}"
          f"{' | ' + e.last_error if e.last_error else ''}")

sync_log = SyncLogRepository(db)

print("\n=== Conflict history ===")
for e in queue.list_exhausted(MAX_RETRIES, owner):
    print(f"  {e.table_name}:{e.record_id}")
    for r in sync_log.for_record(e.table_name, e.record_id):
        print(f"    {r['created_at']} | {r['outcome']:<8} | attempt {r['retry_count']} | {r['message'] or ''}")

print(f"\n=== Recent sync log{' for ' + owner if owner else ''} ===")
for r in sync_log.recent(limit=10, owner_id=owner):
    print(f"  {r['created_at']} | {r['outcome']:<8} | {r['operation']:<6} {r['table_name']}:{r['record_id']}"
          f" | attempt {r['retry_count']}{' | ' + r['message'] if r['message'] else ''}")

db.close()
