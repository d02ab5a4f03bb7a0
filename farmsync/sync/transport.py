"""Remote sync port and its HTTP implementation.

One call per queued entry. The transport never raises for delivery
problems; it reports them in a ``DeliveryResult`` so the queue can count
the attempt against the retry ceiling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import requests

from farmsync.config import RemoteConfig, get_remote_config
from farmsync.models.sync import SyncOperation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, status_code: int = 200) -> "DeliveryResult":
        return cls(ok=True, status_code=status_code)

    @classmethod
    def failure(cls, error: str, status_code: Optional[int] = None) -> "DeliveryResult":
        return cls(ok=False, status_code=status_code, error=error)


class RemoteSyncPort(Protocol):
    def deliver(
        self, table: str, operation: SyncOperation, payload: dict[str, Any]
    ) -> DeliveryResult: ...


class HttpSyncTransport:
    """Delivers entries to ``{base_url}/sync/{table}`` with requests.

    create → POST (JSON body), update → PUT (JSON body),
    delete → DELETE with ``?id=<record id>``.
    """

    def __init__(
        self,
        config: Optional[RemoteConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or get_remote_config()
        self._session = session or requests.Session()

    @property
    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Accept": "application/json"}

    def deliver(
        self, table: str, operation: SyncOperation, payload: dict[str, Any]
    ) -> DeliveryResult:
        url = self.config.sync_url(table)
        method = operation.http_method
        kwargs: dict[str, Any] = {"headers": self._headers, "timeout": self.config.timeout}
        if operation == SyncOperation.DELETE:
            kwargs["params"] = {"id": payload.get("id")}
        else:
            kwargs["json"] = payload

        try:
            resp = self._session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            return DeliveryResult.failure(f"{type(e).__name__}: {e}")

        if 200 <= resp.status_code < 300:
            return DeliveryResult.success(resp.status_code)
        reason = resp.reason or "error"
        return DeliveryResult.failure(f"API error: {resp.status_code} {reason}", resp.status_code)

    def ping(self) -> bool:
        """True when the remote health endpoint answers with any 2xx."""
        try:
            resp = self._session.get(self.config.health_url, timeout=self.config.timeout)
        except requests.exceptions.RequestException:
            return False
        return 200 <= resp.status_code < 300

    def close(self) -> None:
        self._session.close()
