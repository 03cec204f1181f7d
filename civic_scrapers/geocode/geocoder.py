"""Rate-limited, budgeted, cached geocoding against Nominatim."""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Callable

from civic_scrapers.common.constants import MAX_GEOCODE_QUERIES
from civic_scrapers.common.errors import FetchError, GeocodeLookupError
from civic_scrapers.common.http import HttpClient, TimeoutConfig
from civic_scrapers.common.logging import default_logger, log_event
from civic_scrapers.common.models import Coordinates, GeocodeSettings
from civic_scrapers.common.postcode import split_postcode_locality
from civic_scrapers.common.text import norm_space, title_case
from civic_scrapers.geocode.cache import GeocodeCache, cache_key


def build_queries(address: str | None, city: str | None, region: str | None, *, country: str = "Norway") -> list[str]:
    """Ranked, de-duplicated query strings from most to least specific."""
    addr = norm_space(address)
    city_tc = title_case(city)
    region_tc = title_case(region)
    postcode, locality = split_postcode_locality(addr)

    candidates: list[str] = []
    if addr:
        candidates.append(f"{addr}, {country}")
    if addr and region_tc:
        candidates.append(f"{addr}, {region_tc}, {country}")
    if postcode and locality:
        candidates.append(f"{postcode} {title_case(locality)}, {country}")
    if postcode and not locality:
        candidates.append(f"{postcode}, {country}")
    if city_tc and region_tc:
        candidates.append(f"{city_tc}, {region_tc}, {country}")
    if city_tc:
        candidates.append(f"{city_tc}, {country}")

    return list(dict.fromkeys(candidates))[:MAX_GEOCODE_QUERIES]


def parse_provider_payload(payload: Any) -> Coordinates | None:
    """First result's ``lat``/``lon`` as floats; ``None`` for an empty result list."""
    if not isinstance(payload, list):
        raise GeocodeLookupError(f"Unexpected geocode payload type: {type(payload).__name__}")
    if not payload:
        return None
    first = payload[0]
    if not isinstance(first, dict):
        raise GeocodeLookupError("Geocode result is not an object")
    try:
        lat = float(first["lat"])
        lon = float(first["lon"])
    except (KeyError, TypeError, ValueError) as exc:
        raise GeocodeLookupError(f"Geocode result without usable lat/lon: {exc}") from exc
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise GeocodeLookupError("Geocode result has non-finite coordinates")
    return lat, lon


class Geocoder:
    """Resolve addresses to coordinates while respecting the provider's usage policy.

    Lookups go cache first. Misses pass through a single-slot gate so at most one
    provider request is in flight for the whole process, and every successful
    request holds the gate for ``rate_seconds`` before the next one may start.
    A hard ``max_calls`` budget caps provider requests per run. Failures are
    reported as "no result" and never cached. Once ``cancel_event`` is set no
    further provider request is made, so a shortened delay never lets two
    requests through back to back.
    """

    def __init__(
        self,
        cache: GeocodeCache,
        client: HttpClient,
        settings: GeocodeSettings | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        cancel_event: threading.Event | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.cache = cache
        self.client = client
        self.settings = settings or GeocodeSettings()
        self.logger = logger or default_logger()
        self.calls = 0
        self._sleep = sleep
        self.cancel_event = cancel_event or threading.Event()
        self._gate = threading.Semaphore(1)
        self._budget_warned = False

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def load(self) -> int:
        return self.cache.load()

    def save(self) -> bool:
        return self.cache.save()

    def build_queries(self, address: str | None, city: str | None, region: str | None) -> list[str]:
        return build_queries(address, city, region, country=self.settings.country_name)

    def _budget_exhausted(self) -> bool:
        if self.calls < self.settings.max_calls:
            return False
        if not self._budget_warned:
            self._budget_warned = True
            log_event(
                self.logger,
                "Geocode call budget reached; skipping further lookups",
                level=logging.WARNING,
                event="GEOCODE_BUDGET_EXHAUSTED",
                status="skipped",
            )
        return True

    def _request(self, query: str) -> Any:
        try:
            return self.client.get_json(
                self.settings.endpoint,
                params={
                    "q": query,
                    "countrycodes": self.settings.country_code,
                    "format": "jsonv2",
                    "limit": 1,
                    "addressdetails": 1,
                },
                timeout=TimeoutConfig(connect=self.settings.timeout_seconds, read=self.settings.timeout_seconds),
                attempts=1,
            )
        except FetchError as exc:
            raise GeocodeLookupError(str(exc)) from exc

    def lookup(self, query: str) -> Coordinates | None:
        key = cache_key(query)
        cached = self.cache.get(key)
        if cached is not None:
            log_event(self.logger, f"(cache) {query} -> {list(cached)}", level=logging.DEBUG, event="GEOCODE_CACHE_HIT")
            return cached
        if self._budget_exhausted():
            return None

        with self._gate:
            # Another worker may have resolved the same query while we waited.
            cached = self.cache.get(key)
            if cached is not None:
                return cached
            if self._budget_exhausted():
                return None
            if self.cancel_event.is_set():
                return None

            log_event(self.logger, f"Geocoding: {query}", level=logging.DEBUG, event="GEOCODE_CALL")
            try:
                payload = self._request(query)
            except GeocodeLookupError as exc:
                log_event(
                    self.logger,
                    f"Geocode error: {exc}",
                    level=logging.WARNING,
                    event="GEOCODE_ERROR",
                    status="error",
                    error_code=exc.error_code,
                )
                return None

            self.calls += 1
            self._sleep(self.settings.rate_seconds)

            try:
                coords = parse_provider_payload(payload)
            except GeocodeLookupError as exc:
                log_event(
                    self.logger,
                    f"Malformed geocode response for {query}: {exc}",
                    level=logging.WARNING,
                    event="GEOCODE_ERROR",
                    status="error",
                    error_code=exc.error_code,
                )
                return None

            if coords is None:
                log_event(self.logger, f"No geocode result: {query}", level=logging.DEBUG, event="GEOCODE_CALL", status="miss")
                return None

            self.cache.put(key, coords)
            log_event(self.logger, f"Geocode OK: {query} -> {list(coords)}", level=logging.DEBUG, event="GEOCODE_CALL", status="ok")
            return coords

    def resolve(self, address: str | None, city: str | None, region: str | None) -> Coordinates | None:
        if not self.enabled or not norm_space(address):
            return None
        for query in self.build_queries(address, city, region):
            if self.cancel_event.is_set():
                return None
            coords = self.lookup(query)
            if coords is not None:
                return coords
        return None
