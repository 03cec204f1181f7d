"""Region and locality link discovery across the site hierarchy."""

from __future__ import annotations

import logging

from civic_scrapers.common.http import HttpClient
from civic_scrapers.common.logging import default_logger, log_event
from civic_scrapers.extract.html import HEADING_TAGS, links_in, parse_html, siblings_until_heading
from civic_scrapers.extract.strategy import SiteStrategy

LOCALITY_HEADING_TAGS = HEADING_TAGS[:3]


class LinkDiscoverer:
    def __init__(self, client: HttpClient, strategy: SiteStrategy, *, logger: logging.Logger | None = None) -> None:
        self.client = client
        self.strategy = strategy
        self.logger = logger or default_logger()

    def discover_regions(self) -> list[str]:
        start_url = self.strategy.start_url
        soup = parse_html(self.client.get_text(start_url))

        found: set[str] = set()
        for anchor in soup.find_all("a", href=True):
            href = anchor["href"]
            if self.strategy.is_region_link(href):
                found.add(self.strategy.canonical(href, start_url))

        log_event(self.logger, f"{len(found)} regions found", event="DISCOVER_REGIONS", url=start_url, records_out=len(found))
        return sorted(found)

    def _collect(self, hrefs, region_url: str, region: str | None) -> set[str]:
        found: set[str] = set()
        for href in hrefs:
            absolute = self.strategy.absolute(href, region_url)
            if self.strategy.is_locality_link(absolute, region):
                found.add(self.strategy.canonical(absolute))
        return found

    def discover_localities(self, region_url: str) -> list[str]:
        soup = parse_html(self.client.get_text(region_url))
        region = self.strategy.parse_location(region_url).region

        found: set[str] = set()
        heading = next(
            (h for h in soup.find_all(LOCALITY_HEADING_TAGS) if self.strategy.is_locality_heading(h.get_text(" "))),
            None,
        )
        if heading is not None:
            found = self._collect(links_in(siblings_until_heading(heading)), region_url, region)

        if not found:
            found = self._collect((a["href"] for a in soup.find_all("a", href=True)), region_url, region)

        log_event(
            self.logger,
            f"Found {len(found)} localities",
            event="DISCOVER_LOCALITIES",
            url=region_url,
            records_out=len(found),
        )
        return sorted(found)
