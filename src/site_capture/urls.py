from __future__ import annotations

import posixpath
import re
import uuid
from dataclasses import dataclass
from urllib.parse import ParseResult, urljoin, urlparse, urlunparse

from .errors import ResourceResolutionError

_CAPTURE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")

MAX_NAME_LEN = 200
FALLBACK_EXT = ".bin"


def is_capture_url(url: object) -> bool:
    return isinstance(url, str) and bool(_CAPTURE_URL_RE.match(url))


def normalize_url(raw_url: str) -> str:
    """Normalize a URL before it goes on the wire.

    - Lowercases scheme + hostname.
    - Strips fragments.
    """

    parsed: ParseResult = urlparse(raw_url)
    parsed = parsed._replace(
        scheme=(parsed.scheme or "").lower(),
        netloc=(parsed.netloc or "").lower(),
        fragment="",
    )
    return urlunparse(parsed)


def safe_filename(name: str) -> str:
    """Map an arbitrary identifier onto `[A-Za-z0-9._-]{1,200}`.

    Idempotent for any input; an empty result becomes `file_<uuid4>`.
    """

    cleaned = _UNSAFE_NAME_CHARS.sub("_", name or "")[:MAX_NAME_LEN]
    return cleaned or f"file_{uuid.uuid4()}"


@dataclass(frozen=True)
class ResolvedAsset:
    raw: str
    absolute_url: str
    local_name: str


def resolve_reference(base_url: str, raw: str) -> ResolvedAsset:
    """Resolve a markup reference against the document URL.

    Handles relative, root-relative, protocol-relative and absolute
    references. Anything that does not end up as an http(s) URL with a host
    raises ResourceResolutionError.
    """

    try:
        absolute = urljoin(base_url, raw.strip())
        parsed = urlparse(absolute)
        host = parsed.hostname
    except ValueError as e:
        raise ResourceResolutionError(raw, str(e)) from e

    if parsed.scheme.lower() not in {"http", "https"}:
        raise ResourceResolutionError(raw, f"unsupported scheme {parsed.scheme!r}")
    if not host:
        raise ResourceResolutionError(raw, "no host")

    return ResolvedAsset(
        raw=raw,
        absolute_url=absolute,
        local_name=local_name_for(parsed),
    )


def local_name_for(parsed: ParseResult) -> str:
    name = posixpath.basename(parsed.path) or (parsed.hostname or "")
    name = safe_filename(name)
    if not posixpath.splitext(name)[1]:
        guessed = posixpath.splitext(parsed.path)[1]
        name = f"{name}{guessed or FALLBACK_EXT}"
    return name


def with_name_suffix(name: str, n: int) -> str:
    """`style.css`, 2 -> `style-2.css`, still within MAX_NAME_LEN."""

    stem, ext = posixpath.splitext(name)
    suffix = f"-{n}"
    stem = stem[: max(1, MAX_NAME_LEN - len(suffix) - len(ext))]
    return f"{stem}{suffix}{ext}"
