"""Heuristic identifier matching between live reports and the timetable.

Live feeds name stations with dotted identifiers whose trailing component
is a station name (``odpt.Station:JR-East.Agatsuma.Shibukawa``), while the
timetable has its own stop ids. Segments are matched by name fragment;
swap :func:`station_matches` out for exact-id comparison once the feed
identifiers are canonical.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from trainfusion.models.schedule import ScheduledStop, Station, TrainSchedule

if TYPE_CHECKING:
    from trainfusion.schedule import ScheduleStore

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class MatchedSegment:
    """An adjacent stop pair of a trip together with both stations."""

    from_stop: ScheduledStop
    from_station: Station
    to_stop: ScheduledStop
    to_station: Station


def _normalize(text: str) -> str:
    return _WHITESPACE.sub("", text).lower()


def station_fragment(stop_id: str | None) -> str:
    """Trailing dotted component of *stop_id*, normalized for comparison.

    ``None`` yields the empty fragment, which matches every station name.
    """
    if not stop_id:
        return ""
    return _normalize(stop_id.split(".")[-1])


def station_matches(station: Station, fragment: str) -> bool:
    return fragment in _normalize(station.name)


def find_segment(
    schedule: TrainSchedule,
    store: ScheduleStore,
    from_stop_id: str | None,
    to_stop_id: str | None,
) -> MatchedSegment | None:
    """First adjacent stop pair whose station names contain both fragments.

    Pairs where either station is missing from the store are skipped.
    """
    from_fragment = station_fragment(from_stop_id)
    to_fragment = station_fragment(to_stop_id)

    for current, following in zip(schedule.stops, schedule.stops[1:]):
        current_station = store.station(current.stop_id)
        following_station = store.station(following.stop_id)
        if current_station is None or following_station is None:
            continue
        if station_matches(current_station, from_fragment) and station_matches(following_station, to_fragment):
            return MatchedSegment(
                from_stop=current,
                from_station=current_station,
                to_stop=following,
                to_station=following_station,
            )
    return None


def trip_ids_match(reported: str, scheduled: str) -> bool:
    """Loose trip id comparison: equal, or one contains the other."""
    return reported == scheduled or scheduled in reported or reported in scheduled
