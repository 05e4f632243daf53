"""Position fusion.

Turns a trip's last live report plus its timetable into a coordinate for
the current time of day. Everything here is a pure function of its
arguments: same record, same store, same time, same result.

Resolution order for a live report:

1. No destination stop, or stopped at a stop: the reported coordinate,
   tagged ``schedule``.
2. No timetable for the trip: the reported coordinate, tagged
   ``realtime`` with a neutral progress of 0.5.
3. The reported segment cannot be found in the timetable: same as 2.
4. Zero-length or inverted segment after applying the delay: the
   departure station, tagged ``schedule``.
5. Otherwise linear interpolation between the two stations by elapsed
   fraction of the delayed segment time, tagged ``interpolated``.

Times crossing midnight are not unwrapped; a segment departing at
23:58 and arriving at 00:03 falls into case 4.
"""

from __future__ import annotations

from trainfusion.matching import find_segment
from trainfusion.models.live import LiveVehicleReport, VehicleStatus
from trainfusion.models.position import PositionSource, ResolvedPosition
from trainfusion.models.schedule import Station, TrainSchedule
from trainfusion.schedule import ScheduleStore
from trainfusion.state.store import FusionRecord

NEUTRAL_PROGRESS = 0.5


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _lerp(start: Station, end: Station, progress: float) -> tuple[float, float]:
    return (
        start.lat + (end.lat - start.lat) * progress,
        start.lng + (end.lng - start.lng) * progress,
    )


def _reported(report: LiveVehicleReport, source: PositionSource, progress: float) -> ResolvedPosition:
    return ResolvedPosition(
        lat=report.lat,
        lng=report.lng,
        source=source,
        progress=progress,
        status=report.status,
    )


def resolve_position(record: FusionRecord, store: ScheduleStore, now_seconds: float) -> ResolvedPosition:
    """Estimate where the trip of *record* is at *now_seconds* past midnight."""
    report = record.latest_report

    if report.to_stop_id is None or report.status is VehicleStatus.STOPPED_AT:
        return _reported(report, PositionSource.SCHEDULE, 0.0)

    schedule = store.resolve_trip(record.trip_id)
    if schedule is None:
        return _reported(report, PositionSource.REALTIME, NEUTRAL_PROGRESS)

    segment = find_segment(schedule, store, report.from_stop_id, report.to_stop_id)
    if segment is None:
        return _reported(report, PositionSource.REALTIME, NEUTRAL_PROGRESS)

    departure = segment.from_stop.departure + report.delay_seconds
    arrival = segment.to_stop.arrival + report.delay_seconds
    if arrival <= departure:
        return ResolvedPosition(
            lat=segment.from_station.lat,
            lng=segment.from_station.lng,
            source=PositionSource.SCHEDULE,
            progress=0.0,
            status=report.status,
        )

    progress = _clamp((now_seconds - departure) / (arrival - departure))
    lat, lng = _lerp(segment.from_station, segment.to_station, progress)
    return ResolvedPosition(
        lat=lat,
        lng=lng,
        source=PositionSource.INTERPOLATED,
        progress=progress,
        from_station=segment.from_station.name,
        to_station=segment.to_station.name,
        status=report.status,
    )


def timetable_position(schedule: TrainSchedule, store: ScheduleStore, now_seconds: float) -> ResolvedPosition | None:
    """Timetable-only estimate, or ``None`` when the trip is not running.

    Used when there is no live report at all for a trip.
    """
    for current, following in zip(schedule.stops, schedule.stops[1:]):
        departure = current.departure
        arrival = following.arrival
        if not departure <= now_seconds <= arrival:
            continue
        start = store.station(current.stop_id)
        end = store.station(following.stop_id)
        if start is None or end is None:
            continue
        progress = 0.0 if arrival <= departure else _clamp((now_seconds - departure) / (arrival - departure))
        lat, lng = _lerp(start, end, progress)
        return ResolvedPosition(
            lat=lat,
            lng=lng,
            source=PositionSource.FALLBACK,
            progress=progress,
            from_station=start.name,
            to_station=end.name,
        )
    return None
