"""Spacing between delivery attempts of a failed queue entry."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from farmsync.config import SyncConfig


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff with jitter: ``base * 2 ** (retry_count - 1)``, capped."""

    base_seconds: float = 30.0
    cap_seconds: float = 900.0
    jitter: float = 0.2
    rand: Callable[[], float] = field(default=random.random, repr=False, compare=False)

    @classmethod
    def from_config(cls, config: SyncConfig) -> "BackoffPolicy":
        return cls(
            base_seconds=config.backoff_base_seconds,
            cap_seconds=config.backoff_cap_seconds,
            jitter=config.backoff_jitter,
        )

    @classmethod
    def disabled(cls) -> "BackoffPolicy":
        """Every failed entry is due again on the next drain."""
        return cls(base_seconds=0, cap_seconds=0, jitter=0)

    def delay(self, retry_count: int) -> float:
        """Seconds to wait after the ``retry_count``-th failure."""
        if retry_count <= 0 or self.base_seconds <= 0:
            return 0.0
        raw = min(self.cap_seconds, self.base_seconds * 2 ** (retry_count - 1))
        if self.jitter:
            raw *= 1 + self.jitter * (2 * self.rand() - 1)
        return max(0.0, raw)

    def next_attempt(self, now: datetime, retry_count: int) -> datetime:
        return now + timedelta(seconds=self.delay(retry_count))
