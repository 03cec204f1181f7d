"""Norwegian four-digit postcode parsing."""

from __future__ import annotations

import re

from civic_scrapers.common.text import norm_space

POSTCODE_LOCALITY_RE = re.compile(r"(\d{4})\s+([A-ZÆØÅa-zæøå\- ]+)")
TRAILING_POSTCODE_RE = re.compile(r"\b(\d{4})\s*$")


def split_postcode_locality(address: str | None) -> tuple[str | None, str | None]:
    """Return ``(postcode, locality)`` from an address like ``"Storgata 1, 4600 Kristiansand"``."""
    cleaned = norm_space(address)
    if not cleaned:
        return None, None

    match = POSTCODE_LOCALITY_RE.search(cleaned)
    if match:
        locality = norm_space(match.group(2).strip("- "))
        return match.group(1), locality or None

    trailing = TRAILING_POSTCODE_RE.search(cleaned)
    if trailing:
        return trailing.group(1), None
    return None, None
