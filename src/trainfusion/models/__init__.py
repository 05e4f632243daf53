"""Data models for trainfusion."""

from trainfusion.models.live import LiveVehicleReport, Snapshot, VehicleStatus
from trainfusion.models.position import PositionSource, ResolvedPosition
from trainfusion.models.schedule import Route, ScheduledStop, Station, TrainSchedule

__all__ = [
    "LiveVehicleReport",
    "PositionSource",
    "ResolvedPosition",
    "Route",
    "ScheduledStop",
    "Snapshot",
    "Station",
    "TrainSchedule",
    "VehicleStatus",
]
