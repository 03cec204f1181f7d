"""BeautifulSoup helpers shared by discovery and extraction."""

from __future__ import annotations

import re
from typing import Iterable, Iterator

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
_WHITESPACE_RE = re.compile(r"\s+")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def heading_level(node: object) -> int | None:
    if isinstance(node, Tag) and node.name in HEADING_TAGS:
        return int(node.name[1])
    return None


def siblings_until_heading(heading: Tag, *, max_level: int | None = None) -> Iterator[object]:
    """Yield the nodes after ``heading`` up to the next heading of level <= ``max_level``.

    ``max_level`` defaults to the heading's own level (same-or-higher section break).
    """
    stop_at = max_level if max_level is not None else heading_level(heading) or 6
    for node in heading.next_siblings:
        level = heading_level(node)
        if level is not None and level <= stop_at:
            break
        yield node


def links_in(nodes: Iterable[object]) -> Iterator[str]:
    for node in nodes:
        if not isinstance(node, Tag):
            continue
        if node.name == "a" and node.get("href"):
            yield node["href"]
        for anchor in node.find_all("a", href=True):
            yield anchor["href"]


def text_of(nodes: Iterable[object]) -> str:
    parts = []
    for node in nodes:
        if isinstance(node, Comment):
            continue
        if isinstance(node, NavigableString):
            parts.append(str(node))
        elif isinstance(node, Tag):
            parts.append(node.get_text(" "))
    return " ".join(parts)


def minify_fragment(nodes: Iterable[object]) -> str | None:
    """Serialise nodes to HTML with comments removed and whitespace collapsed."""
    pieces = []
    for node in nodes:
        if isinstance(node, Comment):
            continue
        if isinstance(node, Tag):
            fragment = parse_html(str(node))
            for comment in fragment.find_all(string=lambda value: isinstance(value, Comment)):
                comment.extract()
            pieces.append(str(fragment))
        elif isinstance(node, NavigableString):
            pieces.append(str(node))

    html = _WHITESPACE_RE.sub(" ", "".join(pieces)).strip()
    return html or None
