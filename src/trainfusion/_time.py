"""Time-of-day helpers.

All timetable arithmetic is done in seconds since local midnight.
"""

from __future__ import annotations

from datetime import datetime

SECONDS_PER_DAY = 86400


def local_now() -> datetime:
    """Timezone-aware wall-clock time in the local zone."""
    return datetime.now().astimezone()


def parse_time_of_day(value: str) -> int:
    """Convert ``HH:MM[:SS]`` to seconds.

    Hours of 24 and above are kept as-is (GTFS service days run past
    midnight), so no wrapping is applied here.
    """
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"invalid time of day: {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    seconds = int(parts[2]) if len(parts) == 3 else 0
    if hours < 0 or not 0 <= minutes < 60 or not 0 <= seconds < 60:
        raise ValueError(f"invalid time of day: {value!r}")
    return hours * 3600 + minutes * 60 + seconds


def format_time_of_day(seconds: float) -> str:
    total = int(seconds)
    hours = (total // 3600) % 24
    minutes = (total % 3600) // 60
    return f"{hours:02d}:{minutes:02d}:{total % 60:02d}"


def seconds_of_day(moment: datetime) -> float:
    """Seconds since midnight of *moment*'s own day, in ``[0, 86400)``."""
    value = moment.hour * 3600 + moment.minute * 60 + moment.second + moment.microsecond / 1_000_000
    return value % SECONDS_PER_DAY
