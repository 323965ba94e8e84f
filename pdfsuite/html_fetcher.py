"""Fetch a remote HTML page for the HTML-to-PDF preview."""

from __future__ import annotations

import threading
from typing import Optional
from urllib.parse import urlsplit

import httpx

from .errors import FetchError, ValidationError
from .logging_config import get_logger

LOGGER = get_logger(__name__)


def base_href(url: str) -> str:
    """Directory of ``url`` (scheme, host and path up to the last ``/``)."""

    parts = urlsplit(url)
    directory = parts.path[: parts.path.rfind("/") + 1] or "/"
    return f"{parts.scheme}://{parts.netloc}{directory}"


def inject_base_tag(html: str, url: str) -> str:
    """Insert ``<base href>`` so relative assets resolve against the original page."""

    tag = f'<base href="{base_href(url)}">'
    if "<head>" in html:
        return html.replace("<head>", f"<head>{tag}", 1)
    if "<html>" in html:
        return html.replace("<html>", f"<html><head>{tag}</head>", 1)
    return tag + html


class HtmlFetcher:
    """Retrieve http(s) pages with a lazily created, shared :class:`httpx.Client`."""

    def __init__(self, timeout: float) -> None:
        self._timeout = timeout
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()

    def _ensure_client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(timeout=self._timeout, follow_redirects=True)
            return self._client

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def fetch(self, url: Optional[str]) -> str:
        if not url:
            raise ValidationError("A URL is required")
        if not url.startswith(("http://", "https://")):
            raise ValidationError("Invalid URL. It must start with http:// or https://")

        try:
            response = self._ensure_client().get(url)
        except httpx.HTTPError as exc:
            LOGGER.warning("Failed to fetch page", extra={"url": url, "error": str(exc)})
            raise FetchError("Could not retrieve the content of the URL") from exc

        if response.is_error:
            raise FetchError(
                f"Error fetching the page: {response.reason_phrase}",
                status_code=response.status_code,
            )
        LOGGER.info("Fetched page", extra={"url": url, "size": len(response.content)})
        return inject_base_tag(response.text, url)


__all__ = ["HtmlFetcher", "base_href", "inject_base_tag"]
