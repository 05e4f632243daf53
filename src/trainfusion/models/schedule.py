"""Static timetable models.

Times are stored as seconds since local midnight. String values in
``HH:MM[:SS]`` form are accepted and converted on validation.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from trainfusion._time import parse_time_of_day


def _coerce_time_of_day(value: Any) -> Any:
    if isinstance(value, str):
        return parse_time_of_day(value)
    return value


TimeOfDay = Annotated[int, BeforeValidator(_coerce_time_of_day)]
"""Annotated type that accepts ``HH:MM[:SS]`` strings or plain seconds."""

_SCHEDULE_CONFIG = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class Station(BaseModel):
    """A stop with a fixed coordinate."""

    model_config = _SCHEDULE_CONFIG

    id: str
    name: str
    lat: float
    lng: float


class Route(BaseModel):
    """A line that trips belong to. ``color`` is a CSS colour string."""

    model_config = _SCHEDULE_CONFIG

    id: str
    name: str = ""
    color: str = "#4CAF50"


class ScheduledStop(BaseModel):
    """One timetable row of a trip."""

    model_config = _SCHEDULE_CONFIG

    stop_id: str = Field(..., alias="stopId")
    arrival: TimeOfDay
    departure: TimeOfDay
    sequence: int


class TrainSchedule(BaseModel):
    """Ordered stop sequence of a single trip.

    Ordering is not checked here; :class:`~trainfusion.schedule.ScheduleStore`
    rejects empty or unordered sequences when it is built.
    """

    model_config = _SCHEDULE_CONFIG

    trip_id: str = Field(..., alias="tripId")
    route_id: str = Field(default="", alias="routeId")
    headsign: str = ""
    color: str = "#4CAF50"
    stops: tuple[ScheduledStop, ...] = ()
