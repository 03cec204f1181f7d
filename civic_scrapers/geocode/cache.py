"""Persistent append-only geocode cache."""

from __future__ import annotations

import logging
import math
import threading
from pathlib import Path

from civic_scrapers.common.constants import GEOCODE_CACHE_PREFIX
from civic_scrapers.common.errors import OutputWriteError
from civic_scrapers.common.fs import read_json, write_json
from civic_scrapers.common.logging import default_logger, log_event
from civic_scrapers.common.models import Coordinates
from civic_scrapers.common.text import norm_space


def cache_key(query: str, provider: str = GEOCODE_CACHE_PREFIX) -> str:
    return f"{provider}:{norm_space(query).lower()}"


def _coerce_entry(value: object) -> Coordinates | None:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    try:
        lat, lon = float(value[0]), float(value[1])
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    return lat, lon


class GeocodeCache:
    """Key to ``(lat, lon)`` map, loaded once and flushed only when dirty.

    Entries are never evicted during a run; a save writes the union of what was
    loaded and what was learned.
    """

    def __init__(self, path: Path, *, logger: logging.Logger | None = None) -> None:
        self.path = path
        self.logger = logger or default_logger()
        self._entries: dict[str, Coordinates] = {}
        self._dirty = False
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def load(self) -> int:
        try:
            payload = read_json(self.path)
        except FileNotFoundError:
            payload = None
            log_event(self.logger, "No geocode cache found, starting fresh", event="GEOCODE_CACHE_LOAD", status="empty")
        except (OSError, ValueError) as exc:
            payload = None
            log_event(
                self.logger,
                f"Unreadable geocode cache {self.path}: {exc}; starting fresh",
                level=logging.WARNING,
                event="GEOCODE_CACHE_LOAD",
                status="corrupt",
            )

        entries: dict[str, Coordinates] = {}
        if isinstance(payload, dict):
            for key, value in payload.items():
                coords = _coerce_entry(value)
                if isinstance(key, str) and coords is not None:
                    entries[key] = coords

        with self._lock:
            self._entries = entries
            self._dirty = False
        if payload is not None:
            log_event(
                self.logger,
                f"Geocode cache loaded ({len(entries)} entries)",
                event="GEOCODE_CACHE_LOAD",
                status="ok",
            )
        return len(entries)

    def get(self, key: str) -> Coordinates | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, coords: Coordinates) -> None:
        with self._lock:
            self._entries[key] = coords
            self._dirty = True

    def save(self) -> bool:
        """Write the cache if it changed since the last save. Returns whether a write happened."""
        with self._lock:
            if not self._dirty:
                return False
            snapshot = {key: [lat, lon] for key, (lat, lon) in self._entries.items()}
            try:
                write_json(self.path, snapshot)
            except (OSError, TypeError, ValueError) as exc:
                raise OutputWriteError(f"Could not write geocode cache {self.path}: {exc}") from exc
            self._dirty = False
        log_event(self.logger, f"Geocode cache saved ({len(snapshot)} entries)", event="GEOCODE_CACHE_SAVE", status="ok")
        return True

