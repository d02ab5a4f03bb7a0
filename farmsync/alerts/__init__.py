"""Rule-based alert evaluation."""

from farmsync.alerts.engine import AlertEngine

__all__ = ["AlertEngine"]
