"""Sync queue: durable outbox of local mutations awaiting the remote authority.

Owns retry bookkeeping and conflict escalation. Every step that touches
both the queue and a record's ``sync_status`` runs in one transaction so a
record never reads ``synced`` while an entry for it is still queued.
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Any, Optional

from farmsync.config import SyncConfig
from farmsync.db.database import Database
from farmsync.db.record_store import RecordStore
from farmsync.db.sync_log_repo import SyncLogRepository
from farmsync.db.sync_queue_repo import SyncQueueRepository
from farmsync.models.sync import (
    OutcomeStatus, SyncOperation, SyncOutcome, SyncQueueEntry, SyncStatus,
)
from farmsync.sync.backoff import BackoffPolicy
from farmsync.sync.transport import DeliveryResult, RemoteSyncPort
from farmsync.utils.clock import Clock, SystemClock, format_timestamp

logger = logging.getLogger(__name__)

MAX_RETRIES = 5


class SyncQueue:
    """Outbox with single-flight draining."""

    def __init__(
        self,
        db: Database,
        transport: RemoteSyncPort,
        clock: Optional[Clock] = None,
        backoff: Optional[BackoffPolicy] = None,
        max_retries: int = MAX_RETRIES,
        log_retention_days: Optional[float] = 30.0,
    ):
        self._db = db
        self._transport = transport
        self._clock = clock or SystemClock()
        self._backoff = backoff or BackoffPolicy()
        self.max_retries = max_retries
        self.log_retention_days = log_retention_days
        self._repo = SyncQueueRepository(db)
        self._records = RecordStore(db)
        self._sync_log = SyncLogRepository(db)
        self._drain_lock = threading.Lock()

    @classmethod
    def from_config(
        cls, db: Database, transport: RemoteSyncPort, config: SyncConfig,
        clock: Optional[Clock] = None,
    ) -> "SyncQueue":
        return cls(
            db, transport, clock=clock,
            backoff=BackoffPolicy.from_config(config),
            max_retries=config.max_retries,
            log_retention_days=config.log_retention_days,
        )

    @property
    def is_draining(self) -> bool:
        return self._drain_lock.locked()

    def _now(self) -> str:
        return format_timestamp(self._clock.now())

    def _set_status(self, table: str, record_id: str, status: SyncStatus) -> None:
        if self._records.is_synced_table(table):
            self._records.set_sync_status(table, record_id, status)
        else:
            logger.warning(f"No local table {table!r}; sync status of {record_id} not tracked")

    # -- Enqueue ---------------------------------------------------------------

    def enqueue(
        self,
        owner_id: str,
        table: str,
        record_id: str,
        operation: SyncOperation,
        payload: dict[str, Any],
    ) -> SyncQueueEntry:
        """Append an entry and mark the record pending, atomically.

        A record that already has an exhausted entry stays ``conflict``: the
        new entry waits behind it until that entry is retried or resolved.
        """
        now = self._now()
        entry = SyncQueueEntry(
            owner_id=owner_id,
            table_name=table,
            record_id=record_id,
            operation=SyncOperation(operation),
            payload=dict(payload),
            created_at=now,
            updated_at=now,
        )
        with self._db.transaction():
            self._repo.insert(entry)
            if self._repo.has_exhausted_for_record(table, record_id, self.max_retries):
                status = SyncStatus.CONFLICT
            else:
                status = SyncStatus.PENDING
            self._set_status(table, record_id, status)
        logger.debug(f"Queued {entry.operation.value} {table}:{record_id} as {entry.id}")
        return entry

    # -- Drain -----------------------------------------------------------------

    def drain(
        self,
        owner_id: Optional[str] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> list[SyncOutcome]:
        """Attempt every due entry once, in creation order.

        Returns an empty list without doing anything when another drain is
        already in flight. ``stop_event`` is checked between entries.
        """
        if not self._drain_lock.acquire(blocking=False):
            logger.debug("Drain already in progress; skipping")
            return []
        try:
            now = self._now()
            # A record whose earliest entry is not delivered this pass blocks
            # its later entries, keeping remote application in creation order.
            blocked: set[tuple[str, str]] = set()
            outcomes: list[SyncOutcome] = []
            for entry in self._repo.list_all(owner_id):
                if stop_event is not None and stop_event.is_set():
                    logger.info("Drain stopped before completing the pass")
                    break
                key = (entry.table_name, entry.record_id)
                if key in blocked:
                    continue
                if not self._is_due(entry, now):
                    blocked.add(key)
                    continue
                outcome = self._attempt(entry)
                if not outcome.ok:
                    blocked.add(key)
                outcomes.append(outcome)
            if outcomes:
                synced = sum(1 for o in outcomes if o.ok)
                logger.info(f"Drain pass: {synced}/{len(outcomes)} entries synced")
                self._prune_log()
            return outcomes
        finally:
            self._drain_lock.release()

    def _prune_log(self) -> None:
        if not self.log_retention_days:
            return
        cutoff = self._clock.now() - timedelta(days=self.log_retention_days)
        removed = self._sync_log.prune(format_timestamp(cutoff))
        if removed:
            logger.debug(f"Pruned {removed} sync log rows older than {self.log_retention_days} days")

    def _is_due(self, entry: SyncQueueEntry, now: str) -> bool:
        if entry.retry_count >= self.max_retries:
            return False
        return entry.next_attempt_at is None or entry.next_attempt_at <= now

    def _attempt(self, entry: SyncQueueEntry) -> SyncOutcome:
        payload = entry.payload
        if "id" not in payload:
            payload = {**payload, "id": entry.record_id}
        try:
            result = self._transport.deliver(entry.table_name, entry.operation, payload)
        except Exception as e:
            result = DeliveryResult.failure(f"{type(e).__name__}: {e}")

        if result.ok:
            return self._on_success(entry)
        return self._on_failure(entry, result.error or "Unknown error")

    def _on_success(self, entry: SyncQueueEntry) -> SyncOutcome:
        with self._db.transaction():
            self._repo.delete(entry.id)
            if self._repo.count_for_record(entry.table_name, entry.record_id) == 0:
                self._set_status(entry.table_name, entry.record_id, SyncStatus.SYNCED)
        self._sync_log.record_attempt(entry, OutcomeStatus.SYNCED, entry.retry_count, self._now())
        return SyncOutcome(
            entry_id=entry.id,
            table_name=entry.table_name,
            record_id=entry.record_id,
            status=OutcomeStatus.SYNCED,
            retry_count=entry.retry_count,
        )

    def _on_failure(self, entry: SyncQueueEntry, error: str) -> SyncOutcome:
        now_dt = self._clock.now()
        retry_count = entry.retry_count + 1
        exhausted = retry_count >= self.max_retries
        next_attempt = None if exhausted else format_timestamp(
            self._backoff.next_attempt(now_dt, retry_count)
        )
        with self._db.transaction():
            self._repo.record_failure(entry.id, error, next_attempt, format_timestamp(now_dt))
            if exhausted:
                self._set_status(entry.table_name, entry.record_id, SyncStatus.CONFLICT)

        if exhausted:
            logger.error(
                f"Sync of {entry.table_name}:{entry.record_id} failed {retry_count} times; "
                f"marked conflict: {error}"
            )
            status = OutcomeStatus.CONFLICT
        else:
            logger.warning(
                f"Sync of {entry.table_name}:{entry.record_id} failed "
                f"(attempt {retry_count}/{self.max_retries}): {error}"
            )
            status = OutcomeStatus.FAILED
        self._sync_log.record_attempt(entry, status, retry_count, format_timestamp(now_dt), error)
        return SyncOutcome(
            entry_id=entry.id,
            table_name=entry.table_name,
            record_id=entry.record_id,
            status=status,
            retry_count=retry_count,
            error=error,
        )

    # -- Inspection & manual resolution ----------------------------------------

    def pending_count(self, owner_id: Optional[str] = None) -> int:
        """All queued entries, conflicted ones included."""
        return self._repo.count(owner_id)

    def list_entries(self, owner_id: Optional[str] = None) -> list[SyncQueueEntry]:
        return self._repo.list_all(owner_id)

    def list_conflicts(self, owner_id: Optional[str] = None) -> list[SyncQueueEntry]:
        return self._repo.list_exhausted(self.max_retries, owner_id)

    def retry_entry(self, entry_id: str) -> Optional[SyncQueueEntry]:
        """Put an entry back under automatic retry and mark its record pending."""
        entry = self._repo.get(entry_id)
        if entry is None:
            return None
        with self._db.transaction():
            entry = self._repo.reset(entry_id, self._now())
            self._set_status(entry.table_name, entry.record_id, SyncStatus.PENDING)
        logger.info(f"Entry {entry_id} reset for retry")
        return entry

    def discard_for_record(self, table: str, record_id: str) -> int:
        """Drop every queued entry of one record. Caller owns the status update."""
        return self._repo.delete_for_record(table, record_id)
