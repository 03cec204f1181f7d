"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from civic_scrapers.common.constants import USER_AGENT

Coordinates = tuple[float, float]

COORD_SOURCE_PAGE = "page"
COORD_SOURCE_REGEX = "regex"
COORD_SOURCE_GEOCODE = "geocode"


@dataclass(frozen=True)
class LocalityRecord:
    name: str | None
    description: str | None
    image: str | None
    address: str | None
    email: str | None
    source_url: str
    coordinates: Coordinates | None
    notes: str | None
    organization: str
    city: str | None

    def to_dict(self) -> dict[str, Any]:
        payload = {("source" if key == "source_url" else key): value for key, value in asdict(self).items()}
        if self.coordinates is not None:
            payload["coordinates"] = [self.coordinates[0], self.coordinates[1]]
        return payload


@dataclass(frozen=True)
class ExtractionMeta:
    coord_source: str | None
    geocode_tried: bool
    had_address: bool


@dataclass(frozen=True)
class ExtractionResult:
    record: LocalityRecord
    meta: ExtractionMeta


@dataclass(frozen=True)
class LocationPath:
    """Position of a URL inside the site's region/locality hierarchy."""

    region: str | None
    locality: str | None
    depth: int


@dataclass(frozen=True)
class GeocodeSettings:
    enabled: bool = False
    rate_seconds: float = 1.1
    max_calls: int = 10000
    endpoint: str = "https://nominatim.openstreetmap.org/search"
    timeout_seconds: float = 20.0
    country_name: str = "Norway"
    country_code: str = "no"


@dataclass(frozen=True)
class CrawlConfig:
    org_slug: str
    concurrency: int = 5
    pause_seconds: float = 0.3
    only_region: str | None = None
    only_locality: str | None = None
    output_dir: Path = Path("data")
    output_filename: str = "local.json"
    partial_filename: str = "local.partial.json"
    cache_path: Path = Path(".cache/geocode-cache.json")
    user_agent: str = USER_AGENT
    max_attempts: int = 3
    base_delay_seconds: float = 0.8
    timeout_seconds: float = 25.0
    geocode: GeocodeSettings = field(default_factory=GeocodeSettings)
    run_id: str | None = None

    @property
    def output_path(self) -> Path:
        return self.output_dir / self.output_filename

    @property
    def partial_path(self) -> Path:
        return self.output_dir / self.partial_filename
