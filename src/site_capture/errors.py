from __future__ import annotations


class CaptureError(Exception):
    """Base class for everything a capture can raise."""


class InputValidationError(CaptureError):
    """The requested URL is missing or not http(s)."""


class FetchError(CaptureError):
    def __init__(self, url: str, cause: BaseException | str) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to fetch {url}: {cause}")


class PrimaryFetchError(CaptureError):
    """The top-level document could not be retrieved; fatal."""

    def __init__(self, url: str, cause: BaseException | str) -> None:
        self.url = url
        self.cause = cause
        super().__init__(str(cause))


class ResourceResolutionError(CaptureError):
    def __init__(self, raw: str, reason: str) -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"Cannot resolve {raw!r}: {reason}")


class StagingIOError(CaptureError):
    def __init__(self, path: object, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Staging I/O failed for {path}: {cause}")


class StreamingError(CaptureError):
    """Archive construction failed after the response had started."""
