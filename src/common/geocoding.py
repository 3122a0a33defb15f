"""
Shared coordinate types for the address resolution pipeline.

Every coordinate that enters the system (sheet columns, Nominatim results,
LLM answers, cache rows) passes through parse_coordinates so that missing
or non-numeric values are dropped instead of defaulted to zero.
"""

import math
from typing import Any, TypedDict


class Coordinates(TypedDict):
    """Geographic coordinates (WGS84)."""

    lat: float
    lng: float


def _to_float(value: Any) -> float | None:
    """Convert a number or numeric string to a finite float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_coordinates(lat: Any, lng: Any) -> Coordinates | None:
    """
    Validate a latitude/longitude pair.

    Args:
        lat: Latitude as int, float or numeric string
        lng: Longitude as int, float or numeric string

    Returns:
        Coordinates dict, or None if either value is missing, non-numeric
        or out of range
    """
    lat_value = _to_float(lat)
    lng_value = _to_float(lng)
    if lat_value is None or lng_value is None:
        return None
    if not -90.0 <= lat_value <= 90.0 or not -180.0 <= lng_value <= 180.0:
        return None
    return {"lat": lat_value, "lng": lng_value}
