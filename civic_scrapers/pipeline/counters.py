"""Run counters owned by the crawl orchestrator."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from civic_scrapers.common.models import (
    COORD_SOURCE_GEOCODE,
    COORD_SOURCE_PAGE,
    COORD_SOURCE_REGEX,
    ExtractionResult,
)


@dataclass
class CrawlCounters:
    processed: int = 0
    total_written: int = 0
    coords_from_page: int = 0
    coords_from_regex: int = 0
    coords_geocoded: int = 0
    geocode_missed: int = 0
    skipped_no_address: int = 0
    errors: int = 0

    def record_written(self, result: ExtractionResult) -> None:
        self.total_written += 1
        source = result.meta.coord_source
        if source == COORD_SOURCE_PAGE:
            self.coords_from_page += 1
        elif source == COORD_SOURCE_REGEX:
            self.coords_from_regex += 1
        elif source == COORD_SOURCE_GEOCODE:
            self.coords_geocoded += 1
        elif result.record.coordinates is None and result.meta.geocode_tried:
            self.geocode_missed += 1

    def record_skipped(self) -> None:
        self.skipped_no_address += 1

    def record_error(self) -> None:
        self.errors += 1

    def task_done(self) -> None:
        self.processed += 1

    def to_dict(self) -> dict[str, int]:
        return asdict(self)

    def summary(self) -> dict[str, int]:
        counts = self.to_dict()
        counts.pop("processed")
        return counts
