"""Tests for the position fusion rules."""

from __future__ import annotations

import pytest

from conftest import at
from trainfusion._time import parse_time_of_day
from trainfusion.fusion import resolve_position, timetable_position
from trainfusion.matching import find_segment, station_fragment, station_matches, trip_ids_match
from trainfusion.models.live import LiveVehicleReport, VehicleStatus
from trainfusion.models.position import PositionSource
from trainfusion.models.schedule import ScheduledStop, Station, TrainSchedule
from trainfusion.schedule import ScheduleStore
from trainfusion.state.store import FusionRecord

ALPHA = "odpt.Station:Test.Line.Alpha"
BRAVO = "odpt.Station:Test.Line.Bravo"


def _record(
    trip_id: str = "T1",
    *,
    from_stop_id: str | None = ALPHA,
    to_stop_id: str | None = BRAVO,
    status: VehicleStatus = VehicleStatus.IN_TRANSIT_TO,
    delay_seconds: int = 0,
    lat: float = 36.02,
    lng: float = 139.03,
) -> FusionRecord:
    report = LiveVehicleReport(
        trip_id=trip_id,
        lat=lat,
        lng=lng,
        status=status,
        from_stop_id=from_stop_id,
        to_stop_id=to_stop_id,
        delay_seconds=delay_seconds,
    )
    return FusionRecord(trip_id=trip_id, latest_report=report, last_seen_at=at(11, 39, 0))


def _t(text: str) -> int:
    return parse_time_of_day(text)


# ------------------------------------------------------------------
# Interpolation
# ------------------------------------------------------------------


def test_midpoint_of_segment_interpolates_halfway(alpha_bravo_store: ScheduleStore) -> None:
    position = resolve_position(_record(), alpha_bravo_store, _t("11:39:30"))

    assert position.source is PositionSource.INTERPOLATED
    assert position.progress == pytest.approx(0.5)
    assert position.lat == pytest.approx(36.05)
    assert position.lng == pytest.approx(139.05)
    assert position.from_station == "Alpha"
    assert position.to_station == "Bravo"


def test_delay_shifts_both_segment_ends(alpha_bravo_store: ScheduleStore) -> None:
    record = _record(delay_seconds=150)

    assert resolve_position(record, alpha_bravo_store, _t("11:39:30")).progress == pytest.approx(0.0)
    assert resolve_position(record, alpha_bravo_store, _t("11:42:00")).progress == pytest.approx(0.5)


def test_progress_is_clamped_outside_segment(alpha_bravo_store: ScheduleStore) -> None:
    before = resolve_position(_record(), alpha_bravo_store, _t("11:30:00"))
    after = resolve_position(_record(), alpha_bravo_store, _t("11:59:00"))

    assert before.progress == 0.0
    assert (before.lat, before.lng) == pytest.approx((36.0, 139.0))
    assert after.progress == 1.0
    assert (after.lat, after.lng) == pytest.approx((36.1, 139.1))


def test_progress_stays_within_bounds(alpha_bravo_store: ScheduleStore) -> None:
    record = _record(delay_seconds=-40)
    for now in range(_t("11:20:00"), _t("12:00:00"), 7):
        position = resolve_position(record, alpha_bravo_store, now)
        assert 0.0 <= position.progress <= 1.0


def test_second_segment_is_matched_by_name_fragment(alpha_bravo_store: ScheduleStore) -> None:
    record = _record(from_stop_id="odpt.Station:Test.Line.Bravo", to_stop_id="odpt.Station:Test.Line.charlie")

    position = resolve_position(record, alpha_bravo_store, _t("11:45:30"))

    assert position.source is PositionSource.INTERPOLATED
    assert position.progress == pytest.approx(0.5)
    assert position.to_station == "Charlie Junction"


def test_loose_trip_id_resolves_schedule(alpha_bravo_store: ScheduleStore) -> None:
    position = resolve_position(_record(trip_id="Test.T1.Weekday"), alpha_bravo_store, _t("11:39:30"))

    assert position.source is PositionSource.INTERPOLATED


def test_same_inputs_give_identical_position(alpha_bravo_store: ScheduleStore) -> None:
    record = _record()

    first = resolve_position(record, alpha_bravo_store, _t("11:38:10"))
    second = resolve_position(record, alpha_bravo_store, _t("11:38:10"))

    assert first == second


# ------------------------------------------------------------------
# Fallback paths
# ------------------------------------------------------------------


def test_stopped_vehicle_uses_reported_coordinate(alpha_bravo_store: ScheduleStore) -> None:
    position = resolve_position(_record(status=VehicleStatus.STOPPED_AT), alpha_bravo_store, _t("11:39:30"))

    assert position.source is PositionSource.SCHEDULE
    assert position.progress == 0.0
    assert (position.lat, position.lng) == (36.02, 139.03)


def test_missing_destination_uses_reported_coordinate(alpha_bravo_store: ScheduleStore) -> None:
    position = resolve_position(_record(to_stop_id=None), alpha_bravo_store, _t("11:39:30"))

    assert position.source is PositionSource.SCHEDULE
    assert (position.lat, position.lng) == (36.02, 139.03)


def test_unknown_trip_falls_back_to_realtime() -> None:
    position = resolve_position(_record(trip_id="X9"), ScheduleStore(), _t("11:39:30"))

    assert position.source is PositionSource.REALTIME
    assert position.progress == 0.5
    assert (position.lat, position.lng) == (36.02, 139.03)


def test_unmatched_destination_falls_back_to_realtime(alpha_bravo_store: ScheduleStore) -> None:
    record = _record(to_stop_id="odpt.Station:Test.Line.Zulu")

    position = resolve_position(record, alpha_bravo_store, _t("11:39:30"))

    assert position.source is PositionSource.REALTIME
    assert (position.lat, position.lng) == (36.02, 139.03)
    assert position.from_station is None


def _two_stop_store(departure: str, arrival: str) -> ScheduleStore:
    return ScheduleStore(
        stations=[
            Station(id="A", name="Alpha", lat=36.0, lng=139.0),
            Station(id="B", name="Bravo", lat=36.1, lng=139.1),
        ],
        trips=[
            TrainSchedule(
                trip_id="T1",
                stops=(
                    ScheduledStop(stop_id="A", arrival=departure, departure=departure, sequence=1),
                    ScheduledStop(stop_id="B", arrival=arrival, departure=arrival, sequence=2),
                ),
            )
        ],
    )


def test_zero_length_segment_returns_departure_station() -> None:
    store = _two_stop_store("11:40:00", "11:40:00")

    position = resolve_position(_record(delay_seconds=30), store, _t("11:40:10"))

    assert position.source is PositionSource.SCHEDULE
    assert position.progress == 0.0
    assert (position.lat, position.lng) == (36.0, 139.0)


def test_segment_across_midnight_is_treated_as_degenerate() -> None:
    store = _two_stop_store("23:58:00", "00:03:00")

    position = resolve_position(_record(), store, _t("23:59:00"))

    assert position.source is PositionSource.SCHEDULE
    assert (position.lat, position.lng) == (36.0, 139.0)


# ------------------------------------------------------------------
# Matching helpers
# ------------------------------------------------------------------


class TestMatching:
    def test_fragment_is_trailing_component_normalized(self) -> None:
        assert station_fragment("odpt.Station:JR-East.Agatsuma.Shibu Kawa") == "shibukawa"

    def test_missing_id_gives_empty_fragment(self) -> None:
        assert station_fragment(None) == ""

    def test_station_match_ignores_case_and_whitespace(self) -> None:
        station = Station(id="C", name="Charlie  Junction", lat=0.0, lng=0.0)
        assert station_matches(station, "charliejunction")
        assert station_matches(station, "junction")
        assert not station_matches(station, "delta")

    def test_empty_origin_matches_first_pair_with_destination(self, alpha_bravo_store: ScheduleStore) -> None:
        schedule = alpha_bravo_store.lookup("T1")
        assert schedule is not None

        segment = find_segment(schedule, alpha_bravo_store, None, "x.Charlie")

        assert segment is not None
        assert segment.from_station.name == "Bravo"

    def test_pairs_with_unknown_station_are_skipped(self) -> None:
        store = ScheduleStore(
            stations=[Station(id="A", name="Alpha", lat=0.0, lng=0.0)],
            trips=[
                TrainSchedule(
                    trip_id="T1",
                    stops=(
                        ScheduledStop(stop_id="A", arrival=0, departure=0, sequence=1),
                        ScheduledStop(stop_id="missing", arrival=60, departure=60, sequence=2),
                    ),
                )
            ],
        )
        schedule = store.lookup("T1")
        assert schedule is not None

        assert find_segment(schedule, store, "Alpha", None) is None

    def test_trip_ids_match_by_containment(self) -> None:
        assert trip_ids_match("1003001M", "1003001M")
        assert trip_ids_match("odpt.Train:JR.1003001M", "1003001M")
        assert trip_ids_match("1003001", "1003001M")
        assert not trip_ids_match("2000", "1003001M")


# ------------------------------------------------------------------
# Timetable-only positions
# ------------------------------------------------------------------


def test_timetable_position_interpolates_in_service_trip(alpha_bravo_store: ScheduleStore) -> None:
    schedule = alpha_bravo_store.lookup("T1")
    assert schedule is not None

    position = timetable_position(schedule, alpha_bravo_store, _t("11:39:30"))

    assert position is not None
    assert position.source is PositionSource.FALLBACK
    assert position.progress == pytest.approx(0.5)
    assert position.lat == pytest.approx(36.05)


def test_timetable_position_none_outside_service(alpha_bravo_store: ScheduleStore) -> None:
    schedule = alpha_bravo_store.lookup("T1")
    assert schedule is not None

    assert timetable_position(schedule, alpha_bravo_store, _t("12:30:00")) is None
