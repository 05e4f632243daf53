"""Live feed models.

The feed speaks snake_case JSON (``trip_id``, ``speed_kph``, ...); camelCase
spellings are accepted as aliases.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from trainfusion.ingestion.normalize import safe_float, safe_int, safe_str


class VehicleStatus(StrEnum):
    """GTFS-realtime style vehicle stop status.

    Values without a mapped member resolve to ``UNKNOWN``.
    """

    IN_TRANSIT_TO = "IN_TRANSIT_TO"
    STOPPED_AT = "STOPPED_AT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object) -> VehicleStatus:
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return cls.UNKNOWN


class LiveVehicleReport(BaseModel):
    """One vehicle entry of a snapshot.

    Parameters
    ----------
    trip_id : str
        Trip the vehicle is running.
    lat, lng : float
        Reported coordinate.
    status : VehicleStatus
        Whether the vehicle is stopped at or heading to ``to_stop_id``.
    timestamp : float or None
        Report time in epoch seconds, if the feed supplied one.
    bearing : float or None
        Heading in degrees.
    speed_kph : float or None
        Reported speed.
    from_stop_id, to_stop_id : str or None
        Identifiers of the segment the vehicle is on.
    delay_seconds : int
        Delay applied to both timetable ends of the segment.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    trip_id: str = Field(..., validation_alias=AliasChoices("trip_id", "tripId"))
    lat: float = Field(..., validation_alias=AliasChoices("lat", "latitude"))
    lng: float = Field(..., validation_alias=AliasChoices("lng", "lon", "longitude"))
    status: VehicleStatus = VehicleStatus.UNKNOWN
    timestamp: float | None = None
    bearing: float | None = None
    speed_kph: float | None = Field(default=None, validation_alias=AliasChoices("speed_kph", "speedKph"))
    from_stop_id: str | None = Field(default=None, validation_alias=AliasChoices("from_stop_id", "fromStopId"))
    to_stop_id: str | None = Field(default=None, validation_alias=AliasChoices("to_stop_id", "toStopId"))
    delay_seconds: int = Field(default=0, validation_alias=AliasChoices("delay_seconds", "delaySeconds", "delay"))

    @field_validator("trip_id", mode="before")
    @classmethod
    def _normalize_trip_id(cls, value: Any) -> str:
        trip_id = safe_str(value)
        if trip_id is None:
            raise ValueError("trip_id must be non-empty")
        return trip_id

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> VehicleStatus:
        if value is None:
            return VehicleStatus.UNKNOWN
        return VehicleStatus(value)

    @field_validator("timestamp", "bearing", "speed_kph", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("from_stop_id", "to_stop_id", mode="before")
    @classmethod
    def _coerce_stop_ids(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("delay_seconds", mode="before")
    @classmethod
    def _coerce_delay(cls, value: Any) -> int:
        parsed = safe_int(value)
        return 0 if parsed is None else parsed


class Snapshot(BaseModel):
    """One full batch of vehicle reports.

    ``sequence_number`` is informational; snapshots are applied in arrival
    order regardless of it.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    sequence_number: int | None = Field(default=None, validation_alias=AliasChoices("seq", "sequence_number"))
    vehicles: tuple[LiveVehicleReport, ...] = ()
