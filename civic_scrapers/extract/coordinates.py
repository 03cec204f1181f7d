"""Coordinate extraction from inline map markers and free text."""

from __future__ import annotations

import json
import math
import re
from typing import Any

from civic_scrapers.common.models import Coordinates
from civic_scrapers.common.text import norm_space

LAT_LNG_RE = re.compile(r"\b([+-]?\d{1,2}\.\d{4,}),\s*([+-]?\d{1,3}\.\d{4,})\b")
_LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        candidate = value
    else:
        # Lenient like parseFloat: "59.91abc" -> 59.91.
        match = _LEADING_FLOAT_RE.match(str(value))
        if not match:
            return None
        candidate = match.group(0)
    try:
        number = float(candidate)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def coerce_coordinates(lat: Any, lon: Any) -> Coordinates | None:
    """Both values as finite floats, or ``None``. Ranges are not checked."""
    lat_f = _safe_float(lat)
    lon_f = _safe_float(lon)
    if lat_f is None or lon_f is None:
        return None
    return lat_f, lon_f


def _load_marker_json(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return json.loads(raw.replace("'", '"'))


def parse_marker_payload(raw: str | None) -> tuple[Coordinates | None, str | None]:
    """Decode a ``data-marker`` value shaped like ``[lat, lng, "address"]``.

    Returns ``(coordinates, address)``; either part may be ``None``.
    """
    if not raw or not raw.strip():
        return None, None
    try:
        payload = _load_marker_json(raw.strip())
    except ValueError:
        return None, None
    if not isinstance(payload, list):
        return None, None

    lat = payload[0] if len(payload) > 0 else None
    lon = payload[1] if len(payload) > 1 else None
    address = None
    if len(payload) > 2 and isinstance(payload[2], str):
        address = norm_space(payload[2]) or None
    return coerce_coordinates(lat, lon), address


def first_lat_lng(text: str | None) -> Coordinates | None:
    if not text:
        return None
    match = LAT_LNG_RE.search(text)
    if not match:
        return None
    return coerce_coordinates(match.group(1), match.group(2))
