from __future__ import annotations

from bs4 import BeautifulSoup

# Exact `rel` values on a <link href> that still point at a fetchable asset.
_GENERIC_LINK_RELS = {"preload", "icon", "shortcut icon"}


def _attr_text(val: object) -> str:
    return str(val or "")


def discover_references(markup: str) -> set[str]:
    """Collect raw asset references from a document.

    Sources: script[src], link[rel=stylesheet][href], img[src],
    iframe[src], and link[href] whose rel is absent or empty, "preload",
    "icon" or "shortcut icon". `rel` is compared as written (lowercased,
    not stripped), so a whitespace-only rel is not generic. Values are
    deduplicated by exact string; they are not resolved here, so two
    spellings of the same URL both survive.
    """

    # Keep rel/class as raw strings rather than whitespace-split lists.
    soup = BeautifulSoup(markup, "html.parser", multi_valued_attributes=None)
    found: set[str] = set()

    def _add(val: object) -> None:
        text = _attr_text(val)
        if text.strip():
            found.add(text)

    for tag in soup.select("script[src]"):
        _add(tag.get("src"))
    for tag in soup.select("img[src]"):
        _add(tag.get("src"))
    for tag in soup.select("iframe[src]"):
        _add(tag.get("src"))

    for tag in soup.select("link[href]"):
        rel = _attr_text(tag.get("rel")).lower()
        if not rel or rel == "stylesheet" or rel in _GENERIC_LINK_RELS:
            _add(tag.get("href"))

    return found
