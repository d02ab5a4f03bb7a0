"""Connectivity signal source: polls the remote health endpoint."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Emits online/offline events to subscribers when the probe result changes.

    ``probe`` is any zero-argument callable returning True when the remote is
    reachable, typically ``HttpSyncTransport.ping``.
    """

    def __init__(self, probe: Callable[[], bool], interval_seconds: float = 15.0):
        self._probe = probe
        self.interval_seconds = interval_seconds
        self._subscribers: list[Callable[[bool], object]] = []
        self._last: Optional[bool] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def subscribe(self, callback: Callable[[bool], object]) -> None:
        self._subscribers.append(callback)

    def check(self) -> bool:
        """Probe once and notify subscribers if the state changed."""
        try:
            online = bool(self._probe())
        except Exception:
            logger.exception("Connectivity probe raised; treating as offline")
            online = False
        if online != self._last:
            self._last = online
            for callback in list(self._subscribers):
                try:
                    callback(online)
                except Exception:
                    logger.exception("Connectivity subscriber failed")
        return online

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="farmsync-connectivity", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        self.check()
        while not self._stop.wait(self.interval_seconds):
            self.check()
