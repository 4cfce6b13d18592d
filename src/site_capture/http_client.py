from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import requests
from requests import exceptions as req_exc

from .errors import FetchError
from .urls import normalize_url

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 15
DEFAULT_USER_AGENT = "WebScraperPro/1.0"
TRANSIENT_HTTP_STATUSES = {429, 500, 502, 503, 504}


def _retry_after_seconds(headers: dict[str, str]) -> float | None:
    retry_after = headers.get("Retry-After")
    if not retry_after:
        return None
    try:
        return float(retry_after)
    except ValueError:
        return None


def _declared_charset(content_type: str | None) -> str | None:
    for part in (content_type or "").split(";")[1:]:
        key, _, value = part.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            return value.strip().strip("\"'")
    return None


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    headers: dict[str, str]
    fetched_at: float
    body: bytes

    @property
    def content_type(self) -> str | None:
        return self.headers.get("Content-Type")

    def text(self) -> str:
        charset = _declared_charset(self.content_type) or "utf-8"
        try:
            return self.body.decode(charset, errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")


class HttpClient:
    """One GET at a time, bounded by a timeout.

    Any non-2xx answer, timeout or transport error surfaces as FetchError.
    Retries only apply to TRANSIENT_HTTP_STATUSES and are off by default.
    """

    def __init__(
        self,
        session: requests.Session,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        user_agent: str = DEFAULT_USER_AGENT,
        max_retries: int = 0,
        backoff_base_s: float = 1.0,
    ) -> None:
        self._session = session
        self._timeout_s = timeout_s
        self._headers = {"User-Agent": user_agent}
        self._max_retries = max_retries
        self._backoff_base_s = backoff_base_s

    def get(self, url: str) -> FetchResult:
        normalized = normalize_url(url)
        last_error: BaseException | str | None = None

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.get(
                    normalized, timeout=self._timeout_s, headers=self._headers
                )
            except req_exc.RequestException as e:
                last_error = e
                if attempt >= self._max_retries:
                    break
                time.sleep(self._backoff_base_s * (2**attempt))
                continue

            status = int(resp.status_code)
            if status in TRANSIENT_HTTP_STATUSES and attempt < self._max_retries:
                retry_after = _retry_after_seconds(dict(resp.headers))
                wait_s = (
                    retry_after
                    if retry_after is not None
                    else self._backoff_base_s * (2**attempt)
                )
                # Capped at the fetch timeout.
                wait_s = min(max(wait_s, 0.0), self._timeout_s)
                logger.debug("HTTP %s from %s; retrying in %.1fs", status, url, wait_s)
                time.sleep(wait_s)
                continue

            if not 200 <= status < 300:
                last_error = f"HTTP {status}"
                break

            return FetchResult(
                url=normalized,
                final_url=str(resp.url),
                status_code=status,
                headers={k: str(v) for k, v in resp.headers.items()},
                fetched_at=time.time(),
                body=resp.content,
            )

        raise FetchError(normalized, last_error or "no response")

    def get_text(self, url: str) -> str:
        return self.get(url).text()

    def get_bytes(self, url: str) -> bytes:
        return self.get(url).body
