"""FarmSync: offline-first farm records with outbox sync and rule-based alerts."""

__version__ = "0.1.0"
