"""Staleness policy for live reports."""

from __future__ import annotations

from datetime import datetime, timedelta


def is_stale(last_seen_at: datetime, now: datetime, ttl: timedelta) -> bool:
    """A report is stale once strictly more than *ttl* has passed."""
    return now - last_seen_at > ttl
