"""Read-only timetable lookup.

The store is built once, validated as a whole, and never mutated
afterwards; every recompute tick shares the same instance.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from trainfusion._time import parse_time_of_day
from trainfusion.exceptions import DataIntegrityError
from trainfusion.ingestion.normalize import safe_float, safe_int, safe_str
from trainfusion.matching import trip_ids_match
from trainfusion.models.schedule import Route, ScheduledStop, Station, TrainSchedule

_logger = logging.getLogger(__name__)

DEFAULT_ROUTE_COLOR = "#4CAF50"


def _require(row: Mapping[str, Any], field: str, *, file: str) -> str:
    value = safe_str(row.get(field))
    if value is None:
        raise DataIntegrityError(f"{file}: missing required field {field!r}", file=file, field=field)
    return value


def _require_float(row: Mapping[str, Any], field: str, *, file: str) -> float:
    value = safe_float(row.get(field))
    if value is None:
        raise DataIntegrityError(f"{file}: field {field!r} is missing or not a number", file=file, field=field)
    return value


def _require_time(row: Mapping[str, Any], field: str, *, file: str) -> int:
    text = _require(row, field, file=file)
    try:
        return parse_time_of_day(text)
    except ValueError as exc:
        raise DataIntegrityError(f"{file}: {exc}", file=file, field=field) from exc


def _fallback_color(index: int) -> str:
    return f"hsl({(index * 137.5) % 360:g}, 70%, 50%)"


class ScheduleStore:
    """Immutable lookup of stations, routes and per-trip stop sequences.

    Raises :class:`DataIntegrityError` when a trip has no stops or its
    stops are not strictly ordered by ``sequence``.
    """

    def __init__(
        self,
        stations: Iterable[Station] = (),
        trips: Iterable[TrainSchedule] = (),
        routes: Iterable[Route] = (),
    ) -> None:
        station_map = {station.id: station for station in stations}
        route_map = {route.id: route for route in routes}
        trip_map: dict[str, TrainSchedule] = {}
        for trip in trips:
            self._validate_trip(trip)
            trip_map[trip.trip_id] = trip

        self._stations: Mapping[str, Station] = MappingProxyType(station_map)
        self._routes: Mapping[str, Route] = MappingProxyType(route_map)
        self._trips: Mapping[str, TrainSchedule] = MappingProxyType(trip_map)
        self._resolved: dict[str, TrainSchedule | None] = {}

    @staticmethod
    def _validate_trip(trip: TrainSchedule) -> None:
        if not trip.stops:
            raise DataIntegrityError(
                f"trip {trip.trip_id!r} has an empty stop sequence",
                file="stop_times",
                field="stop_sequence",
            )
        for previous, current in zip(trip.stops, trip.stops[1:]):
            if current.sequence <= previous.sequence:
                raise DataIntegrityError(
                    f"trip {trip.trip_id!r} stops are not strictly ordered "
                    f"(sequence {current.sequence} follows {previous.sequence})",
                    file="stop_times",
                    field="stop_sequence",
                )

    # ------------------------------------------------------------------
    # Construction from GTFS tables
    # ------------------------------------------------------------------

    @classmethod
    def from_gtfs_tables(
        cls,
        *,
        stops: Iterable[Mapping[str, Any]] | None,
        routes: Iterable[Mapping[str, Any]] | None,
        trips: Iterable[Mapping[str, Any]] | None,
        stop_times: Iterable[Mapping[str, Any]] | None,
    ) -> ScheduleStore:
        """Build a store from GTFS rows (one dict per CSV/JSON row).

        Stop times are grouped by trip and sorted by ``stop_sequence``.
        Trips without any stop times are skipped.
        """
        tables = {"stops": stops, "routes": routes, "trips": trips, "stop_times": stop_times}
        for name, table in tables.items():
            if table is None:
                raise DataIntegrityError(f"required GTFS table {name!r} is missing", file=name)

        assert stops is not None and routes is not None  # noqa: S101
        assert trips is not None and stop_times is not None  # noqa: S101

        stations = [
            Station(
                id=_require(row, "stop_id", file="stops"),
                name=_require(row, "stop_name", file="stops"),
                lat=_require_float(row, "stop_lat", file="stops"),
                lng=_require_float(row, "stop_lon", file="stops"),
            )
            for row in stops
        ]

        route_list: list[Route] = []
        for row in routes:
            color = safe_str(row.get("route_color"))
            route_list.append(
                Route(
                    id=_require(row, "route_id", file="routes"),
                    name=safe_str(row.get("route_long_name")) or safe_str(row.get("route_short_name")) or "",
                    color=f"#{color}" if color else DEFAULT_ROUTE_COLOR,
                )
            )
        route_colors = {route.id: route.color for route in route_list}

        grouped: dict[str, list[ScheduledStop]] = {}
        for row in stop_times:
            trip_id = _require(row, "trip_id", file="stop_times")
            arrival = _require_time(row, "arrival_time", file="stop_times")
            departure = arrival
            if safe_str(row.get("departure_time")) is not None:
                departure = _require_time(row, "departure_time", file="stop_times")
            sequence = safe_int(row.get("stop_sequence"))
            if sequence is None:
                raise DataIntegrityError(
                    "stop_times: field 'stop_sequence' is missing or not a number",
                    file="stop_times",
                    field="stop_sequence",
                )
            grouped.setdefault(trip_id, []).append(
                ScheduledStop(
                    stop_id=_require(row, "stop_id", file="stop_times"),
                    arrival=arrival,
                    departure=departure,
                    sequence=sequence,
                )
            )

        schedules: list[TrainSchedule] = []
        for index, row in enumerate(trips):
            trip_id = _require(row, "trip_id", file="trips")
            route_id = _require(row, "route_id", file="trips")
            trip_stops = grouped.get(trip_id)
            if not trip_stops:
                _logger.debug("Skipping trip %s without stop times", trip_id)
                continue
            trip_stops.sort(key=lambda stop: stop.sequence)
            try:
                schedules.append(
                    TrainSchedule(
                        trip_id=trip_id,
                        route_id=route_id,
                        headsign=safe_str(row.get("trip_headsign")) or "",
                        color=route_colors.get(route_id) or _fallback_color(index),
                        stops=tuple(trip_stops),
                    )
                )
            except ValidationError as exc:
                raise DataIntegrityError(f"trips: invalid trip {trip_id!r}: {exc}", file="trips") from exc

        store = cls(stations=stations, trips=schedules, routes=route_list)
        _logger.info(
            "Schedule loaded: %d stations, %d routes, %d trips",
            len(store.stations),
            len(store.routes),
            len(store),
        )
        return store

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def lookup(self, trip_id: str) -> TrainSchedule | None:
        return self._trips.get(trip_id)

    def resolve_trip(self, trip_id: str) -> TrainSchedule | None:
        """Exact lookup, falling back to a loose trip id match.

        Live feeds sometimes prefix or suffix the timetable's trip ids.
        Loose results, misses included, are cached per reported id.
        """
        exact = self._trips.get(trip_id)
        if exact is not None:
            return exact
        if trip_id in self._resolved:
            return self._resolved[trip_id]
        found = next(
            (schedule for candidate_id, schedule in self._trips.items() if trip_ids_match(trip_id, candidate_id)),
            None,
        )
        self._resolved[trip_id] = found
        return found

    def station(self, stop_id: str) -> Station | None:
        return self._stations.get(stop_id)

    def route(self, route_id: str) -> Route | None:
        return self._routes.get(route_id)

    def trips_for_route(self, route_id: str) -> list[TrainSchedule]:
        return [trip for trip in self._trips.values() if trip.route_id == route_id]

    @property
    def stations(self) -> Mapping[str, Station]:
        return self._stations

    @property
    def routes(self) -> Mapping[str, Route]:
        return self._routes

    def __len__(self) -> int:
        return len(self._trips)

    def __iter__(self) -> Iterator[TrainSchedule]:
        return iter(self._trips.values())
