"""Resolved position output."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from trainfusion.models.live import VehicleStatus


class PositionSource(StrEnum):
    """Data path that produced a position."""

    SCHEDULE = "schedule"
    INTERPOLATED = "interpolated"
    REALTIME = "realtime"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class ResolvedPosition:
    """Per-trip estimate for one recompute tick.

    Instances are produced fresh every tick and never stored by the engine.
    """

    lat: float
    lng: float
    source: PositionSource
    progress: float
    from_station: str | None = None
    to_station: str | None = None
    status: VehicleStatus | None = None
