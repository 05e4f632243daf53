"""Live feed snapshot parsing.

A ``snapshot`` event body is ``{"seq": int, "vehicles": [ ... ]}``. The
envelope must be well-formed or the whole snapshot is rejected; single
vehicle entries that are unusable are dropped.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from pydantic import ValidationError

from trainfusion.exceptions import SnapshotParseError
from trainfusion.ingestion.normalize import has_coordinates, safe_int
from trainfusion.models.live import LiveVehicleReport, Snapshot

_logger = logging.getLogger(__name__)


def parse_snapshot(data: str | bytes, *, received_at: float | None = None) -> Snapshot:
    """Parse a snapshot event body.

    Vehicles without a usable coordinate or that fail validation are
    skipped. Reports without a timestamp get *received_at* (epoch seconds,
    defaulting to now).

    Raises
    ------
    SnapshotParseError
        The body is not JSON, not an object, or has no ``vehicles`` list.
    """
    try:
        body = json.loads(data)
    except (ValueError, RecursionError) as exc:
        raise SnapshotParseError(f"snapshot is not valid JSON: {exc}") from exc

    if not isinstance(body, dict):
        raise SnapshotParseError("snapshot must be a JSON object")
    vehicles = body.get("vehicles")
    if not isinstance(vehicles, list):
        raise SnapshotParseError("snapshot is missing the 'vehicles' list")

    stamp = received_at if received_at is not None else time.time()
    reports: list[LiveVehicleReport] = []
    for entry in vehicles:
        if not isinstance(entry, dict) or not has_coordinates(entry):
            continue
        payload: dict[str, Any] = dict(entry)
        if payload.get("timestamp") in (None, "", 0):
            payload["timestamp"] = stamp
        try:
            reports.append(LiveVehicleReport.model_validate(payload))
        except ValidationError:
            _logger.debug("Dropping invalid vehicle entry %s", entry, exc_info=True)

    snapshot = Snapshot(sequence_number=safe_int(body.get("seq")), vehicles=tuple(reports))
    _logger.debug(
        "Parsed snapshot seq=%s vehicles=%d (dropped %d)",
        snapshot.sequence_number,
        len(reports),
        len(vehicles) - len(reports),
    )
    return snapshot
