"""Whitespace, casing and contact-detail helpers."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")
_TITLE_RE = re.compile(r"(^|\s|-)(\w)")
EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)


def norm_space(value: object) -> str:
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def title_case(value: object) -> str:
    """Lowercase, then capitalise the first letter of each space/hyphen separated word."""
    lowered = norm_space(value).lower()
    return _TITLE_RE.sub(lambda m: m.group(1) + m.group(2).upper(), lowered)


def fold(value: str) -> str:
    """Case- and composition-insensitive form for label matching."""
    return unicodedata.normalize("NFC", value).casefold()


def first_email(text: str | None) -> str | None:
    if not text:
        return None
    match = EMAIL_RE.search(text)
    return match.group(0).lower() if match else None
