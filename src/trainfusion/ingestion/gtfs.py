"""GTFS JSON loader.

Reads the four GTFS tables the engine needs, each exported as a JSON array
of row objects, and builds a :class:`~trainfusion.schedule.ScheduleStore`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from trainfusion.exceptions import DataIntegrityError
from trainfusion.schedule import ScheduleStore

_logger = logging.getLogger(__name__)

GTFS_TABLES = ("stops", "routes", "trips", "stop_times")


def _read_table(path: Path, name: str) -> list[dict[str, Any]] | None:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DataIntegrityError(f"{path.name} is not valid JSON: {exc}", file=name) from exc
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise DataIntegrityError(f"{path.name} must contain a JSON array of objects", file=name)
    _logger.debug("Read %d rows from %s", len(data), path)
    return data


def load_gtfs_json(directory: str | Path) -> ScheduleStore:
    """Load ``stops.json``, ``routes.json``, ``trips.json`` and ``stop_times.json``.

    Raises
    ------
    DataIntegrityError
        A table is missing, unreadable, or has rows lacking required fields.
    """
    root = Path(directory)
    tables = {name: _read_table(root / f"{name}.json", name) for name in GTFS_TABLES}
    return ScheduleStore.from_gtfs_tables(**tables)
