"""trainfusion - Live train position fusion from timetables and streaming feeds."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("trainfusion")
except PackageNotFoundError:
    __version__ = "0+local"
from trainfusion.config import FusionConfig
from trainfusion.engine import EngineDebugSnapshot, TrainFusionEngine
from trainfusion.exceptions import (
    DataIntegrityError,
    FeedStateError,
    FeedTransportError,
    FusionConfigError,
    SnapshotParseError,
    TrainFusionError,
)
from trainfusion.feed import ConnectionState, LiveFeedClient
from trainfusion.fusion import resolve_position, timetable_position
from trainfusion.ingestion.gtfs import load_gtfs_json
from trainfusion.models import (
    LiveVehicleReport,
    PositionSource,
    ResolvedPosition,
    Route,
    ScheduledStop,
    Snapshot,
    Station,
    TrainSchedule,
    VehicleStatus,
)
from trainfusion.schedule import ScheduleStore
from trainfusion.scheduler import RecomputeScheduler, compute_positions
from trainfusion.state.store import FusionRecord, FusionState

__all__ = [
    "__version__",
    "ConnectionState",
    "DataIntegrityError",
    "EngineDebugSnapshot",
    "FeedStateError",
    "FeedTransportError",
    "FusionConfig",
    "FusionConfigError",
    "FusionRecord",
    "FusionState",
    "LiveFeedClient",
    "LiveVehicleReport",
    "PositionSource",
    "RecomputeScheduler",
    "ResolvedPosition",
    "Route",
    "ScheduleStore",
    "ScheduledStop",
    "Snapshot",
    "SnapshotParseError",
    "Station",
    "TrainFusionEngine",
    "TrainFusionError",
    "TrainSchedule",
    "VehicleStatus",
    "compute_positions",
    "load_gtfs_json",
    "resolve_position",
    "timetable_position",
]
