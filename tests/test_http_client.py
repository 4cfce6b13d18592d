from __future__ import annotations

import pytest
import requests
import responses
from responses import matchers

from site_capture.errors import FetchError
from site_capture.http_client import HttpClient

URL = "https://example.com/page"


def make_client(**kwargs) -> HttpClient:
    kwargs.setdefault("backoff_base_s", 0)
    return HttpClient(requests.Session(), timeout_s=1, **kwargs)


@responses.activate
def test_get_text_sends_identifying_user_agent():
    responses.add(
        responses.GET,
        URL,
        body="<html>ok</html>",
        content_type="text/html",
        match=[
            matchers.header_matcher({"User-Agent": "WebScraperPro/1.0"})
        ],
    )
    assert make_client().get_text(URL) == "<html>ok</html>"


@responses.activate
def test_get_text_honors_declared_charset():
    responses.add(
        responses.GET,
        URL,
        body="café".encode("latin-1"),
        content_type="text/html; charset=ISO-8859-1",
    )
    assert make_client().get_text(URL) == "café"


@responses.activate
def test_get_bytes_returns_raw_body():
    responses.add(responses.GET, "https://example.com/a.png", body=b"\x89PNG\r\n")
    assert make_client().get_bytes("https://example.com/a.png") == b"\x89PNG\r\n"


@responses.activate
def test_non_success_status_raises_fetch_error():
    responses.add(responses.GET, URL, status=404)
    with pytest.raises(FetchError) as excinfo:
        make_client().get(URL)
    assert excinfo.value.url == URL
    assert "404" in str(excinfo.value)


@responses.activate
def test_timeout_raises_fetch_error_with_cause():
    responses.add(responses.GET, URL, body=requests.exceptions.ReadTimeout("slow"))
    with pytest.raises(FetchError) as excinfo:
        make_client().get(URL)
    assert isinstance(excinfo.value.cause, requests.exceptions.ReadTimeout)


@responses.activate
def test_transient_status_is_retried_when_enabled():
    responses.add(responses.GET, URL, status=503)
    responses.add(responses.GET, URL, body="fine")
    assert make_client(max_retries=1).get_text(URL) == "fine"
    assert len(responses.calls) == 2


@responses.activate
def test_no_retry_by_default():
    responses.add(responses.GET, URL, status=503)
    with pytest.raises(FetchError):
        make_client().get(URL)
    assert len(responses.calls) == 1


@responses.activate
def test_retry_after_wait_is_capped_at_timeout(monkeypatch):
    waits: list[float] = []
    monkeypatch.setattr("site_capture.http_client.time.sleep", waits.append)
    responses.add(responses.GET, URL, status=429, headers={"Retry-After": "86400"})
    responses.add(responses.GET, URL, body="ok")

    assert make_client(max_retries=1).get_text(URL) == "ok"
    assert waits == [1]
