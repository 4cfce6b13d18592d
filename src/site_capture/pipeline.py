from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Iterator

import requests

from .archive import DEFAULT_CHUNK_SIZE, ArchiveStreamer, StreamOutcome
from .content import AssetCategory, AssetCounters, classify_name
from .discover import discover_references
from .errors import (
    FetchError,
    InputValidationError,
    PrimaryFetchError,
    ResourceResolutionError,
    StagingIOError,
    StreamingError,
)
from .http_client import DEFAULT_TIMEOUT_S, DEFAULT_USER_AGENT, HttpClient
from .staging import StagingArea
from .urls import is_capture_url, resolve_reference, with_name_suffix

logger = logging.getLogger(__name__)

INVALID_URL_MESSAGE = "Invalid URL. Make sure it starts with http:// or https://"


class CaptureState(str, Enum):
    IDLE = "idle"
    DOCUMENT_FETCHING = "document_fetching"
    DISCOVERING = "discovering"
    ASSET_FETCHING = "asset_fetching"
    PACKAGING = "packaging"
    STREAMING = "streaming"
    CLEANED = "cleaned"
    FATAL_FAILURE = "fatal_failure"


@dataclass(frozen=True)
class CaptureRequest:
    source_url: str

    @classmethod
    def parse(cls, url: object) -> CaptureRequest:
        if not url or not is_capture_url(url):
            raise InputValidationError(INVALID_URL_MESSAGE)
        return cls(str(url))


@dataclass
class CaptureConfig:
    timeout_s: float = DEFAULT_TIMEOUT_S
    user_agent: str = DEFAULT_USER_AGENT
    max_retries: int = 0
    staging_parent: Path | None = None
    index_name: str = "index.html"
    compress_level: int = 9
    chunk_size: int = DEFAULT_CHUNK_SIZE


def archive_name_for(started_ms: int) -> str:
    return f"website-source-{started_ms}.zip"


def archive_name_for(started_ms: int) -> str:
    return f"website-source-{started_ms}.zip"


StateListener = Callable[[CaptureState], None]


@dataclass
class PreparedCapture:
    """Everything fetched and counted, waiting to be streamed.

    Counters are final once `prepare()` returns, so transports can publish
    them before the first archive byte. Whoever holds a PreparedCapture must
    call `close()` (or consume `iter_archive()` / `stream_to()`); both paths
    end in the same single teardown.
    """

    request: CaptureRequest
    staging: StagingArea
    archive_name: str
    config: CaptureConfig
    counters: AssetCounters = field(default_factory=AssetCounters)
    skipped: list[str] = field(default_factory=list)
    state: CaptureState = CaptureState.IDLE
    outcome: StreamOutcome | None = None
    on_state: StateListener | None = field(default=None, repr=False)

    def advance(self, state: CaptureState) -> None:
        if state is self.state:
            return
        logger.debug(
            "%s: %s -> %s", self.request.source_url, self.state.value, state.value
        )
        self.state = state
        if self.on_state is not None:
            self.on_state(state)

    def headers(self) -> dict[str, str]:
        headers = self.counters.as_headers()
        headers["Content-Disposition"] = f'attachment; filename="{self.archive_name}"'
        return headers

    def _streamer(self) -> ArchiveStreamer:
        return ArchiveStreamer(
            self.staging.root,
            compress_level=self.config.compress_level,
            chunk_size=self.config.chunk_size,
        )

    def iter_archive(self) -> Iterator[bytes]:
        self.advance(CaptureState.STREAMING)
        try:
            yield from self._streamer().iter_chunks()
            self.outcome = StreamOutcome.COMPLETED
        except StreamingError:
            # Headers are gone already; ending the body is all that is left.
            self.outcome = StreamOutcome.FAILED
        except GeneratorExit:
            self.outcome = StreamOutcome.DISCONNECTED
            raise
        finally:
            self.close()

    def stream_to(self, sink: BinaryIO) -> StreamOutcome:
        self.advance(CaptureState.STREAMING)
        try:
            self.outcome = self._streamer().stream_to(sink)
        finally:
            self.close()
        return self.outcome

    def close(self) -> None:
        if self.outcome is None and self.state is CaptureState.STREAMING:
            self.outcome = StreamOutcome.DISCONNECTED
        self.staging.teardown()
        if self.state is not CaptureState.FATAL_FAILURE:
            self.advance(CaptureState.CLEANED)

    def __enter__(self) -> PreparedCapture:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass(frozen=True)
class CaptureResult:
    source_url: str
    archive_name: str
    counters: AssetCounters
    outcome: StreamOutcome


class CapturePipeline:
    def __init__(
        self,
        *,
        http: HttpClient | None = None,
        config: CaptureConfig | None = None,
        on_state: StateListener | None = None,
    ) -> None:
        self.cfg = config or CaptureConfig()
        self.http = http or HttpClient(
            requests.Session(),
            timeout_s=self.cfg.timeout_s,
            user_agent=self.cfg.user_agent,
            max_retries=self.cfg.max_retries,
        )
        self.on_state = on_state

    def prepare(self, url: object) -> PreparedCapture:
        """Fetch the page and its assets into a fresh staging area.

        Raises InputValidationError before touching the filesystem, and
        PrimaryFetchError / StagingIOError (after teardown) when the capture
        cannot produce an archive at all.
        """

        if self.on_state is not None:
            self.on_state(CaptureState.IDLE)
        request = CaptureRequest.parse(url)
        started_ms = int(time.time() * 1000)

        try:
            staging = StagingArea.create(self.cfg.staging_parent)
        except StagingIOError:
            if self.on_state is not None:
                self.on_state(CaptureState.FATAL_FAILURE)
            raise

        prepared = PreparedCapture(
            request=request,
            staging=staging,
            archive_name=archive_name_for(started_ms),
            config=self.cfg,
            on_state=self.on_state,
        )
        try:
            self._populate(prepared)
        except BaseException:
            prepared.advance(CaptureState.FATAL_FAILURE)
            prepared.close()
            raise
        prepared.advance(CaptureState.PACKAGING)
        return prepared

    def capture(self, url: object, sink: BinaryIO) -> CaptureResult:
        prepared = self.prepare(url)
        outcome = prepared.stream_to(sink)
        return CaptureResult(
            source_url=prepared.request.source_url,
            archive_name=prepared.archive_name,
            counters=prepared.counters,
            outcome=outcome,
        )

    def _populate(self, prepared: PreparedCapture) -> None:
        url = prepared.request.source_url
        staging = prepared.staging
        counters = prepared.counters

        prepared.advance(CaptureState.DOCUMENT_FETCHING)
        try:
            html = self.http.get_text(url)
        except FetchError as e:
            logger.error("Error scraping %s: %s", url, e)
            raise PrimaryFetchError(url, e) from e
        staging.write_entry(self.cfg.index_name, html)
        counters.add(AssetCategory.HTML)
        taken = {self.cfg.index_name}

        prepared.advance(CaptureState.DISCOVERING)
        references = discover_references(html)
        logger.info("Discovered %d resource(s) on %s", len(references), url)

        # One reference at a time.
        prepared.advance(CaptureState.ASSET_FETCHING)
        for raw in sorted(references):
            try:
                asset = resolve_reference(url, raw)
                body = self.http.get_bytes(asset.absolute_url)
                name = _claim_name(asset.local_name, taken)
                staging.write_entry(name, body)
            except (ResourceResolutionError, FetchError, StagingIOError) as e:
                logger.warning("Failed to download resource %s: %s", raw, e)
                prepared.skipped.append(raw)
                continue
            taken.add(name)
            counters.add(classify_name(name))

        logger.info(
            "Captured %s: %s (%d skipped)",
            url,
            counters.to_dict(),
            len(prepared.skipped),
        )


def _claim_name(name: str, taken: set[str]) -> str:
    if name not in taken:
        return name
    n = 2
    while with_name_suffix(name, n) in taken:
        n += 1
    return with_name_suffix(name, n)
