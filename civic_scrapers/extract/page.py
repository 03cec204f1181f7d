"""Locality page extraction with per-field fallback chains."""

from __future__ import annotations

import logging
import re
import unicodedata
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from civic_scrapers.common.errors import ExtractError, FetchError
from civic_scrapers.common.http import HttpClient
from civic_scrapers.common.logging import default_logger, log_event
from civic_scrapers.common.models import (
    COORD_SOURCE_GEOCODE,
    COORD_SOURCE_PAGE,
    COORD_SOURCE_REGEX,
    Coordinates,
    ExtractionMeta,
    ExtractionResult,
    LocalityRecord,
)
from civic_scrapers.common.text import first_email, fold, norm_space
from civic_scrapers.extract.coordinates import first_lat_lng, parse_marker_payload
from civic_scrapers.extract.html import minify_fragment, parse_html, siblings_until_heading, text_of
from civic_scrapers.extract.strategy import SiteStrategy
from civic_scrapers.geocode.geocoder import Geocoder


def _text(node: Tag | None) -> str:
    return norm_space(node.get_text(" ")) if node is not None else ""


class PageExtractor:
    def __init__(
        self,
        client: HttpClient,
        strategy: SiteStrategy,
        geocoder: Geocoder | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.strategy = strategy
        self.geocoder = geocoder
        self.logger = logger or default_logger()

        labels = "|".join(re.escape(fold(label)) for label in strategy.address_labels)
        self._label_re = re.compile(labels)
        self._address_text_re = re.compile(
            rf"(?:{labels})\s*:?\s*([^<\n\r]*?\b\d{{4}}\b[^<\n\r]+)",
            re.IGNORECASE,
        )

    def _name(self, soup: BeautifulSoup) -> str | None:
        return _text(soup.find("h1")) or None

    def _description(self, soup: BeautifulSoup) -> str | None:
        block = soup.select_one(self.strategy.lead_selector)
        lead = _text(block.find("p")) if block is not None else ""
        if lead:
            return lead

        meta = soup.find("meta", attrs={"name": "description"})
        if meta is not None and norm_space(meta.get("content")):
            return norm_space(meta.get("content"))

        h1 = soup.find("h1")
        if h1 is None:
            return None
        following = _text(h1.find_next_sibling("p"))
        if following:
            return following

        if h1.parent is not None:
            for sibling in h1.parent.find_next_siblings():
                paragraph = _text(sibling.find("p"))
                if paragraph:
                    return paragraph
        return None

    def _address_from_definition_list(self, soup: BeautifulSoup) -> str | None:
        address = None
        for dt in soup.find_all("dt"):
            if not self._label_re.search(fold(dt.get_text(" "))):
                continue
            dd = dt.find_next_sibling()
            if dd is not None and dd.name == "dd":
                value = _text(dd)
                if value:
                    # Later labels (e.g. postal address) override earlier ones.
                    address = value
        return address

    def _address_from_text(self, soup: BeautifulSoup) -> str | None:
        body = soup.body or soup
        text = unicodedata.normalize("NFC", body.get_text("\n"))
        match = self._address_text_re.search(text)
        if match:
            return norm_space(match.group(1)) or None
        return None

    def _email(self, soup: BeautifulSoup) -> str | None:
        h1 = soup.find("h1")
        if h1 is not None:
            found = first_email(text_of(siblings_until_heading(h1, max_level=2)))
            if found:
                return found
        body = soup.body or soup
        return first_email(body.get_text(" "))

    def _image(self, soup: BeautifulSoup, url: str) -> str | None:
        og = soup.find("meta", attrs={"property": "og:image"})
        if og is not None and norm_space(og.get("content")):
            return urljoin(url, norm_space(og.get("content")))
        img = soup.find("img", src=True)
        if img is not None and norm_space(img["src"]):
            return urljoin(url, norm_space(img["src"]))
        return None

    def _notes(self, soup: BeautifulSoup) -> str | None:
        for heading in soup.find_all(["h2", "h3"]):
            if self.strategy.is_welcome_heading(heading.get_text(" ")):
                return minify_fragment(siblings_until_heading(heading))
        return None

    def _marker(self, soup: BeautifulSoup) -> tuple[Coordinates | None, str | None]:
        element = soup.select_one(self.strategy.marker_selector)
        if element is None:
            return None, None
        return parse_marker_payload(element.get("data-marker"))

    def extract_html(self, url: str, html: str) -> ExtractionResult:
        soup = parse_html(html)
        marker_coords, marker_address = self._marker(soup)

        address = self._address_from_definition_list(soup) or marker_address or self._address_from_text(soup)

        coordinates: Coordinates | None = None
        coord_source: str | None = None
        if marker_coords is not None:
            coordinates, coord_source = marker_coords, COORD_SOURCE_PAGE
        else:
            body = soup.body or soup
            coordinates = first_lat_lng(html) or first_lat_lng(body.get_text(" "))
            if coordinates is not None:
                coord_source = COORD_SOURCE_REGEX

        location = self.strategy.parse_location(url)
        geocode_tried = False
        if coordinates is None and address and self.geocoder is not None and self.geocoder.enabled:
            geocode_tried = True
            coordinates = self.geocoder.resolve(address, location.locality, location.region)
            if coordinates is not None:
                coord_source = COORD_SOURCE_GEOCODE

        record = LocalityRecord(
            name=self._name(soup),
            description=self._description(soup),
            image=self._image(soup, url),
            address=address,
            email=self._email(soup),
            source_url=url,
            coordinates=coordinates,
            notes=self._notes(soup),
            organization=self.strategy.organization,
            city=self.strategy.city_name(url),
        )
        meta = ExtractionMeta(coord_source=coord_source, geocode_tried=geocode_tried, had_address=bool(address))
        return ExtractionResult(record=record, meta=meta)

    def extract(self, url: str) -> ExtractionResult:
        log_event(self.logger, f"Extract {url}", level=logging.DEBUG, event="EXTRACT", url=url)
        try:
            html = self.client.get_text(url)
        except FetchError as exc:
            raise ExtractError(f"Could not fetch {url}: {exc}") from exc
        return self.extract_html(url, html)
