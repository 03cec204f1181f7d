"""Organization-specific site knowledge behind one pipeline."""

from __future__ import annotations

from urllib.parse import unquote, urljoin, urlparse

from civic_scrapers.common.errors import ConfigError
from civic_scrapers.common.models import LocationPath
from civic_scrapers.common.text import fold, title_case


class SiteStrategy:
    """Describes a country -> region -> locality site.

    Subclasses override individual hooks when a site deviates from the common
    layout; the default behaviour is driven entirely by the organization config.
    """

    def __init__(self, org_config: dict) -> None:
        org = org_config["organization"]
        site = org_config["site"]
        discovery = org_config["discovery"]
        extraction = org_config["extraction"]

        self.slug: str = org["slug"]
        self.organization: str = org["name"]
        self.base_url: str = site["base_url"].rstrip("/")
        self.root_marker: str = site["root_marker"].strip("/")
        self.locality_heading_markers = tuple(fold(marker) for marker in discovery["locality_heading_markers"])
        self.deny_slugs = frozenset(fold(slug) for slug in discovery["deny_slugs"])
        self.address_labels = tuple(extraction["address_labels"])
        self.welcome_markers = tuple(fold(marker) for marker in extraction["welcome_markers"])
        self.marker_selector: str = extraction["marker_selector"]
        self.lead_selector: str = extraction["lead_selector"]
        self.country_name: str = org_config["geocode"]["country_name"]
        self.country_code: str = org_config["geocode"]["country_code"]

    @property
    def start_url(self) -> str:
        return f"{self.base_url}/{self.root_marker}/"

    @property
    def host(self) -> str:
        return urlparse(self.base_url).netloc

    def absolute(self, href: str, page_url: str | None = None) -> str:
        return urljoin(page_url or self.start_url, href)

    def canonical(self, href: str, page_url: str | None = None) -> str:
        """Absolute URL without query or fragment, ending in exactly one slash."""
        parsed = urlparse(self.absolute(href, page_url))
        path = parsed.path.rstrip("/") + "/"
        return f"{parsed.scheme}://{parsed.netloc}{path}"

    def parse_location(self, url: str) -> LocationPath:
        parsed = urlparse(self.absolute(url))
        if parsed.netloc and parsed.netloc != self.host:
            return LocationPath(region=None, locality=None, depth=0)
        parts = [unquote(part) for part in parsed.path.split("/") if part]
        if self.root_marker not in parts:
            return LocationPath(region=None, locality=None, depth=0)
        rest = parts[parts.index(self.root_marker) + 1 :]
        return LocationPath(
            region=rest[0] if rest else None,
            locality=rest[1] if len(rest) > 1 else None,
            depth=len(rest),
        )

    def is_region_link(self, href: str) -> bool:
        location = self.parse_location(href)
        return bool(location.region) and location.locality is None and location.depth == 1

    def is_locality_link(self, href: str, expected_region: str | None = None) -> bool:
        location = self.parse_location(href)
        if not location.region or not location.locality:
            return False
        if location.depth != 2:
            return False
        if expected_region and location.region != expected_region:
            return False
        return fold(location.locality) not in self.deny_slugs

    def is_locality_heading(self, text: str) -> bool:
        folded = fold(text.strip())
        return any(marker in folded for marker in self.locality_heading_markers)

    def is_welcome_heading(self, text: str) -> bool:
        folded = fold(text.strip())
        return any(marker in folded for marker in self.welcome_markers)

    def city_name(self, url: str) -> str | None:
        locality = self.parse_location(url).locality
        return title_case(locality) if locality else None


STRATEGY_CLASSES: dict[str, type[SiteStrategy]] = {
    "hierarchy": SiteStrategy,
}


def build_strategy(org_config: dict) -> SiteStrategy:
    name = org_config["strategy"]
    strategy_cls = STRATEGY_CLASSES.get(name)
    if strategy_cls is None:
        available = ", ".join(sorted(STRATEGY_CLASSES))
        raise ConfigError(f"Unknown extraction strategy '{name}' (available: {available})")
    return strategy_cls(org_config)
