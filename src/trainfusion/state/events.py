"""Typed live feed events.

The feed client puts these on a single-consumer channel; the engine drains
it in order, so snapshot application never interleaves with a tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from trainfusion.models.live import Snapshot


@dataclass(frozen=True)
class Connected:
    url: str


@dataclass(frozen=True)
class SnapshotReceived:
    snapshot: Snapshot


@dataclass(frozen=True)
class HeartbeatReceived:
    received_at: datetime


@dataclass(frozen=True)
class SnapshotRejected:
    """A ``snapshot`` event whose payload could not be parsed."""

    error: str


@dataclass(frozen=True)
class TransportError:
    error: str
    retry_in: float


FeedEvent = Connected | SnapshotReceived | HeartbeatReceived | SnapshotRejected | TransportError
