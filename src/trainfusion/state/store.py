"""Per-trip live state.

Only the snapshot handler writes here and only the recompute loop reads.
Writes build a new mapping and swap it in, so a reader iterating the
previous mapping never sees a half-applied snapshot.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from trainfusion.models.live import LiveVehicleReport, Snapshot
from trainfusion.state.policy import is_stale


class FusionRecord(BaseModel):
    """Last live report of a trip and when it was received."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    trip_id: str
    latest_report: LiveVehicleReport
    last_seen_at: datetime


class FusionState:
    """Mapping of trip id to :class:`FusionRecord` with a TTL.

    Trips missing from a new snapshot keep their previous record until it
    goes stale; stale records are purged on the next snapshot.
    """

    def __init__(self, *, ttl: timedelta = timedelta(seconds=15)) -> None:
        self._ttl = ttl
        self._records: Mapping[str, FusionRecord] = MappingProxyType({})
        self._last_sequence: int | None = None
        self._applied = 0

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def last_sequence(self) -> int | None:
        return self._last_sequence

    @property
    def snapshots_applied(self) -> int:
        return self._applied

    def apply_snapshot(self, snapshot: Snapshot, *, observed_at: datetime) -> None:
        """Replace the records of every trip present in *snapshot*.

        Sequence numbers are recorded but not compared: an older snapshot
        arriving late overwrites newer records.
        """
        updated = {
            trip_id: record
            for trip_id, record in self._records.items()
            if not is_stale(record.last_seen_at, observed_at, self._ttl)
        }
        for report in snapshot.vehicles:
            updated[report.trip_id] = FusionRecord(
                trip_id=report.trip_id,
                latest_report=report,
                last_seen_at=observed_at,
            )
        self._records = MappingProxyType(updated)
        self._last_sequence = snapshot.sequence_number
        self._applied += 1

    def records(self) -> Mapping[str, FusionRecord]:
        """Read-only view of every record, stale ones included."""
        return self._records

    def active_records(self, now: datetime) -> list[FusionRecord]:
        records = self._records
        return [record for record in records.values() if not is_stale(record.last_seen_at, now, self._ttl)]

    def clear(self) -> None:
        self._records = MappingProxyType({})
        self._last_sequence = None

    def __len__(self) -> int:
        return len(self._records)
