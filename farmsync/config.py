"""
Central configuration loader.
Reads from environment variables (via .env); every key has a sane default
so the core runs fully offline without any configuration.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Load .env from repo root (if present)
# ---------------------------------------------------------------------------
_REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(_REPO_ROOT / ".env")


def _get(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    val = os.getenv(key, default)
    if required and not val:
        raise EnvironmentError(f"Missing required environment variable: {key}")
    return val


def _get_float(key: str, default: float) -> float:
    raw = _get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise EnvironmentError(f"Environment variable {key} must be a number, got {raw!r}")


def _get_int(key: str, default: int) -> int:
    return int(_get_float(key, default))


# ---------------------------------------------------------------------------
# Remote sync endpoint
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RemoteConfig:
    base_url: str
    timeout: float
    health_path: str = "/health"

    def sync_url(self, table: str) -> str:
        return f"{self.base_url.rstrip('/')}/sync/{table}"

    @property
    def health_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.health_path}"


def get_remote_config() -> RemoteConfig:
    return RemoteConfig(
        base_url=_get("FARMSYNC_REMOTE_URL", default="http://localhost:3000/api"),  # type: ignore[arg-type]
        timeout=_get_float("FARMSYNC_REMOTE_TIMEOUT", 10.0),
    )


# ---------------------------------------------------------------------------
# Sync queue / engine tuning
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SyncConfig:
    interval_seconds: float = 30.0
    max_retries: int = 5
    backoff_base_seconds: float = 30.0
    backoff_cap_seconds: float = 900.0
    backoff_jitter: float = 0.2
    log_retention_days: float = 30.0


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        interval_seconds=_get_float("FARMSYNC_SYNC_INTERVAL", 30.0),
        max_retries=_get_int("FARMSYNC_MAX_RETRIES", 5),
        backoff_base_seconds=_get_float("FARMSYNC_BACKOFF_BASE", 30.0),
        backoff_cap_seconds=_get_float("FARMSYNC_BACKOFF_CAP", 900.0),
        backoff_jitter=_get_float("FARMSYNC_BACKOFF_JITTER", 0.2),
        log_retention_days=_get_float("FARMSYNC_SYNC_LOG_RETENTION_DAYS", 30.0),
    )


# ---------------------------------------------------------------------------
# Alert sweep
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class AlertConfig:
    sweep_interval_seconds: float = 3600.0


def get_alert_config() -> AlertConfig:
    return AlertConfig(
        sweep_interval_seconds=_get_float("FARMSYNC_ALERT_SWEEP_INTERVAL", 3600.0),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for scripts and the server."""
    level_name = (level or _get("FARMSYNC_LOG_LEVEL", default="INFO") or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
def get_db_path() -> Path:
    raw = _get("FARMSYNC_DB_PATH")
    if raw:
        return Path(raw)
    return _REPO_ROOT / "data" / "farmsync.db"
