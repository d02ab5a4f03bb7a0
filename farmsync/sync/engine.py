"""Sync engine: connectivity state, scheduling and conflict resolution.

Sits on top of ``SyncQueue``: mutations enter through ``mark_for_sync``,
drains are triggered by connectivity changes, by the periodic timer and
opportunistically after each mutation.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Optional

from farmsync.db.database import Database
from farmsync.db.record_store import RecordStore
from farmsync.models.sync import SyncOperation, SyncOutcome, SyncQueueEntry, SyncStatus
from farmsync.sync.queue import SyncQueue
from farmsync.utils.clock import parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0


class ConnectivityState(str, Enum):
    OFFLINE = "offline"
    ONLINE = "online"


class Resolution(str, Enum):
    LOCAL_WINS = "local_wins"
    SERVER_WINS = "server_wins"


class SyncEngine:
    """Drains the queue whenever the remote authority is reachable."""

    def __init__(
        self,
        db: Database,
        queue: SyncQueue,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        online: bool = True,
    ):
        self._db = db
        self._queue = queue
        self._records = RecordStore(db)
        self.interval_seconds = interval_seconds
        self._state = ConnectivityState.ONLINE if online else ConnectivityState.OFFLINE
        self._state_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def queue(self) -> SyncQueue:
        return self._queue

    @property
    def state(self) -> ConnectivityState:
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state == ConnectivityState.ONLINE

    # -- Connectivity ----------------------------------------------------------

    def set_online(self, online: bool) -> list[SyncOutcome]:
        """Apply a connectivity signal. Going online triggers an immediate drain."""
        new_state = ConnectivityState.ONLINE if online else ConnectivityState.OFFLINE
        with self._state_lock:
            previous = self._state
            self._state = new_state
        if previous == new_state:
            return []
        logger.info(f"Connectivity: {previous.value} -> {new_state.value}")
        if new_state == ConnectivityState.ONLINE:
            return self.drain()
        return []

    # -- Draining --------------------------------------------------------------

    def drain(self, owner_id: Optional[str] = None) -> list[SyncOutcome]:
        """Drain now if online; a no-op while offline or while another drain runs."""
        if not self.is_online:
            return []
        return self._queue.drain(owner_id, stop_event=self._stop)

    def mark_for_sync(
        self,
        owner_id: str,
        table: str,
        record_id: str,
        operation: SyncOperation,
        payload: dict[str, Any],
    ) -> SyncQueueEntry:
        """Single entry point for local mutations.

        Marks the record pending and queues it; when online, also tries an
        immediate drain for the owner. Delivery problems stay in the queue's
        retry bookkeeping and are never raised here.
        """
        entry = self._queue.enqueue(owner_id, table, record_id, operation, payload)
        self._drain_quietly(owner_id)
        return entry

    def _drain_quietly(self, owner_id: str) -> None:
        if not self.is_online:
            return
        try:
            self.drain(owner_id)
        except Exception:
            logger.exception(f"Opportunistic drain for owner {owner_id} failed")

    # -- Conflict resolution ---------------------------------------------------

    def resolve_conflict(
        self,
        table: str,
        record_id: str,
        local_data: dict[str, Any],
        server_data: dict[str, Any],
    ) -> Resolution:
        """Last-write-wins on ``updated_at``; ties go to the local version.

        Either way the record's queued entries are superseded and dropped.
        """
        local_time = parse_timestamp(local_data.get("updated_at"))
        server_time = parse_timestamp(server_data.get("updated_at"))

        if local_time >= server_time:
            owner_id = self._owner_of(table, record_id, local_data, server_data)
            with self._db.transaction():
                self._queue.discard_for_record(table, record_id)
                self._queue.enqueue(owner_id, table, record_id, SyncOperation.UPDATE, local_data)
            logger.info(f"Conflict on {table}:{record_id} resolved in favour of local copy")
            self._drain_quietly(owner_id)
            return Resolution.LOCAL_WINS

        fields = {k: v for k, v in server_data.items() if k not in ("id", "sync_status")}
        with self._db.transaction():
            self._queue.discard_for_record(table, record_id)
            self._records.update_fields(table, record_id, **fields)
            self._records.set_sync_status(table, record_id, SyncStatus.SYNCED)
        logger.info(f"Conflict on {table}:{record_id} resolved in favour of server copy")
        return Resolution.SERVER_WINS

    def _owner_of(
        self, table: str, record_id: str, *snapshots: dict[str, Any]
    ) -> str:
        stored = self._records.get(table, record_id)
        if stored and stored.get("owner_id"):
            return stored["owner_id"]
        for snapshot in snapshots:
            if snapshot.get("owner_id"):
                return snapshot["owner_id"]
        for entry in self._queue.list_entries():
            if entry.table_name == table and entry.record_id == record_id:
                return entry.owner_id
        raise ValueError(f"Owner of {table}:{record_id} is unknown; cannot re-queue it")

    # -- Periodic scheduling ---------------------------------------------------

    def start(self) -> None:
        """Start the periodic drain timer (daemon thread)."""
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="farmsync-sync", daemon=True)
        self._thread.start()
        logger.info(f"Sync timer started ({self.interval_seconds}s interval)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop scheduling; an in-flight pass ends after its current entry."""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Sync timer stopped")

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            if self.is_online and not self._queue.is_draining:
                try:
                    self.drain()
                except Exception:
                    logger.exception("Periodic drain failed")
