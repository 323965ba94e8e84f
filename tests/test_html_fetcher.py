"""Tests for :mod:`pdfsuite.html_fetcher`."""
from __future__ import annotations

import httpx
import pytest

from pdfsuite.errors import FetchError, ValidationError
from pdfsuite.html_fetcher import HtmlFetcher, base_href, inject_base_tag


def _fetcher(handler) -> HtmlFetcher:
    fetcher = HtmlFetcher(timeout=1.0)
    fetcher._client = httpx.Client(transport=httpx.MockTransport(handler))  # type: ignore[attr-defined]
    return fetcher


def test_base_href_keeps_directory_of_page() -> None:
    assert base_href("https://example.com/docs/guide/index.html?x=1") == "https://example.com/docs/guide/"
    assert base_href("http://example.com:8080") == "http://example.com:8080/"


def test_base_tag_placement() -> None:
    url = "https://example.com/a/page.html"
    tag = '<base href="https://example.com/a/">'

    assert inject_base_tag("<html><head><title>t</title></head></html>", url) == (
        f"<html><head>{tag}<title>t</title></head></html>"
    )
    assert inject_base_tag("<html><body></body></html>", url) == (
        f"<html><head>{tag}</head><body></body></html>"
    )
    assert inject_base_tag("<p>hi</p>", url) == f"{tag}<p>hi</p>"


def test_fetch_returns_page_with_base_tag() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, text="<html><head></head><body>ok</body></html>")

    html = _fetcher(handler).fetch("https://example.com/site/index.html")

    assert seen == ["https://example.com/site/index.html"]
    assert '<head><base href="https://example.com/site/">' in html


def test_fetch_validates_url() -> None:
    fetcher = HtmlFetcher(timeout=1.0)

    with pytest.raises(ValidationError):
        fetcher.fetch(None)
    with pytest.raises(ValidationError):
        fetcher.fetch("file:///etc/passwd")


def test_upstream_status_is_propagated() -> None:
    fetcher = _fetcher(lambda request: httpx.Response(404))

    with pytest.raises(FetchError) as exc:
        fetcher.fetch("https://example.com/missing")
    assert exc.value.status_code == 404
    assert "Not Found" in exc.value.message


def test_transport_failure_is_a_server_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(FetchError) as exc:
        _fetcher(handler).fetch("https://example.com/")
    assert exc.value.status_code == 500
