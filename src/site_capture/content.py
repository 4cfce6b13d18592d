from __future__ import annotations

import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Final


class AssetCategory(str, Enum):
    HTML = "html"
    CSS = "css"
    JS = "js"
    IMAGE = "images"
    OTHER = "others"


_IMAGE_EXTS: Final[frozenset[str]] = frozenset(
    {".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".bmp", ".ico"}
)


def classify_name(name: str) -> AssetCategory:
    """Classify a staged file by its extension only.

    Assets served without a meaningful extension land in OTHER; the
    response content type is not consulted.
    """

    ext = posixpath.splitext(name)[1].lower()
    if ext == ".css":
        return AssetCategory.CSS
    if ext == ".js":
        return AssetCategory.JS
    if ext in _IMAGE_EXTS:
        return AssetCategory.IMAGE
    return AssetCategory.OTHER


@dataclass
class AssetCounters:
    html: int = 0
    css: int = 0
    js: int = 0
    images: int = 0
    others: int = 0

    def add(self, category: AssetCategory) -> None:
        setattr(self, category.value, getattr(self, category.value) + 1)

    @property
    def total(self) -> int:
        return self.html + self.css + self.js + self.images + self.others

    def to_dict(self) -> dict[str, int]:
        return {
            "html": self.html,
            "css": self.css,
            "js": self.js,
            "images": self.images,
            "others": self.others,
            "total": self.total,
        }

    def as_headers(self) -> dict[str, str]:
        return {
            "X-HTML-COUNT": str(self.html),
            "X-CSS-COUNT": str(self.css),
            "X-JS-COUNT": str(self.js),
            "X-IMAGE-COUNT": str(self.images),
            "X-TOTAL-FILES": str(self.total),
        }
