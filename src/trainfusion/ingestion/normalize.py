"""Normalization helpers.

Centralizes defensive parsing of loosely-typed feed values.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def has_coordinates(vehicle: dict[str, Any]) -> bool:
    """Return True when a raw vehicle entry carries a usable lat/lng pair.

    Zero is treated like a missing coordinate; feeds use it as a placeholder.
    """
    lat = safe_float(vehicle.get("lat", vehicle.get("latitude")))
    lng = safe_float(vehicle.get("lng", vehicle.get("lon", vehicle.get("longitude"))))
    return bool(lat) and bool(lng)
