"""Outbox-based synchronisation with the remote authority."""

from farmsync.sync.backoff import BackoffPolicy
from farmsync.sync.connectivity import ConnectivityMonitor
from farmsync.sync.engine import ConnectivityState, Resolution, SyncEngine
from farmsync.sync.queue import MAX_RETRIES, SyncQueue
from farmsync.sync.transport import DeliveryResult, HttpSyncTransport, RemoteSyncPort

__all__ = [
    "BackoffPolicy", "ConnectivityMonitor", "ConnectivityState", "Resolution",
    "SyncEngine", "MAX_RETRIES", "SyncQueue",
    "DeliveryResult", "HttpSyncTransport", "RemoteSyncPort",
]
