"""site-capture core library.

This package fetches a single web page, downloads the static assets it
references, and packages everything into one streamed ZIP archive.

Layout:
- `pipeline` sequences a capture; `server` and `cli` are thin adapters.
- Staging directories never outlive the request that created them.
"""

from __future__ import annotations

from .content import AssetCategory, AssetCounters
from .errors import (
    CaptureError,
    FetchError,
    InputValidationError,
    PrimaryFetchError,
    ResourceResolutionError,
    StagingIOError,
    StreamingError,
)
from .pipeline import CaptureConfig, CapturePipeline, CaptureResult, PreparedCapture

__all__ = [
    "AssetCategory",
    "AssetCounters",
    "CaptureConfig",
    "CaptureError",
    "CapturePipeline",
    "CaptureResult",
    "FetchError",
    "InputValidationError",
    "PreparedCapture",
    "PrimaryFetchError",
    "ResourceResolutionError",
    "StagingIOError",
    "StreamingError",
    "__version__",
]

__version__ = "0.1.0"
