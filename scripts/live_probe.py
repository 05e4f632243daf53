#!/usr/bin/env python3
"""Live feed probe.

Loads a GTFS JSON timetable, connects to a train stream and prints the
fused positions once per second. Use it to check that a feed server and a
timetable line up (how many trips interpolate vs. fall back to the raw
reported coordinate).

Environment variables ``TRAINFUSION_*`` configure the engine; see
``FusionConfig.from_env``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections import Counter
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from trainfusion import (  # noqa: E402
    DataIntegrityError,
    FusionConfig,
    ScheduleStore,
    TrainFusionEngine,
    load_gtfs_json,
)
from trainfusion._time import format_time_of_day, local_now, seconds_of_day  # noqa: E402

_LOG = logging.getLogger("live_probe")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print fused live train positions.")
    parser.add_argument("--gtfs-dir", help="Directory with stops/routes/trips/stop_times JSON files")
    parser.add_argument("--url", help="Stream URL (default: TRAINFUSION_FEED_URL or config default)")
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument("--limit", type=int, default=10, help="Trips to print per report.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


def _print_report(engine: TrainFusionEngine, limit: int) -> None:
    positions = engine.current_positions()
    debug = engine.debug_snapshot()
    sources = Counter(position.source.value for position in positions.values())
    clock = format_time_of_day(seconds_of_day(local_now()))
    summary = ", ".join(f"{source}={count}" for source, count in sorted(sources.items())) or "none"
    print(
        f"[probe] {clock} state={debug.connection_state.value} seq={debug.last_sequence} "
        f"trips={len(positions)} ({summary}) rejected={debug.snapshots_rejected}"
    )
    for trip_id, position in sorted(positions.items())[:limit]:
        segment = ""
        if position.from_station or position.to_station:
            segment = f" {position.from_station} -> {position.to_station}"
        print(
            f"[probe]   {trip_id:<24} {position.lat:.5f},{position.lng:.5f} "
            f"{position.source.value:<12} p={position.progress:.2f}{segment}"
        )


async def _run(args: argparse.Namespace) -> int:
    try:
        store = load_gtfs_json(args.gtfs_dir) if args.gtfs_dir else ScheduleStore()
    except DataIntegrityError as exc:
        print(f"[probe] Timetable rejected ({exc.file}.{exc.field}): {exc}", file=sys.stderr)
        return 2

    config = FusionConfig.from_env()
    async with TrainFusionEngine(store, config) as engine:
        await engine.connect(args.url)
        elapsed = 0
        while args.duration <= 0 or elapsed < args.duration:
            await asyncio.sleep(1)
            elapsed += 1
            _print_report(engine, args.limit)
    return 0


def main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        _LOG.info("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
