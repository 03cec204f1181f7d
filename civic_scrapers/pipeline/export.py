"""Locality record file export."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from civic_scrapers.common.errors import OutputWriteError
from civic_scrapers.common.fs import write_json
from civic_scrapers.common.models import LocalityRecord


def write_records(path: Path, records: Iterable[LocalityRecord]) -> Path:
    """Write records as a pretty-printed JSON array, keeping field order."""
    payload = [record.to_dict() for record in records]
    try:
        write_json(path, payload, sort_keys=False)
    except OSError as exc:
        raise OutputWriteError(f"Could not write {path}: {exc}") from exc
    return path
