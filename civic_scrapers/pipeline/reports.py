"""Run summary report."""

from __future__ import annotations

from pathlib import Path

from civic_scrapers.common.errors import OutputWriteError
from civic_scrapers.common.fs import write_json
from civic_scrapers.pipeline.counters import CrawlCounters


def summary_path(output_dir: Path, org_slug: str) -> Path:
    return output_dir / "reports" / f"{org_slug}_summary.json"


def write_run_summary(
    output_dir: Path,
    *,
    run_id: str,
    org_slug: str,
    status: str,
    localities_total: int,
    counters: CrawlCounters,
    geocode_calls: int,
    output_path: Path,
) -> Path:
    path = summary_path(output_dir, org_slug)
    payload = {
        "run_id": run_id,
        "org": org_slug,
        "status": status,
        "localities_total": localities_total,
        "processed": counters.processed,
        "counts": counters.summary(),
        "geocode_calls": geocode_calls,
        "output_path": str(output_path),
    }
    try:
        write_json(path, payload)
    except OSError as exc:
        raise OutputWriteError(f"Could not write run summary {path}: {exc}") from exc
    return path
