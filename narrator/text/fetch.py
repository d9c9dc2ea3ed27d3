"""Download the HTML of a page to narrate."""

from __future__ import annotations

from typing import Optional

import requests

from narrator import logging_manager as log_mgr

logger = log_mgr.logger

DEFAULT_USER_AGENT = "narrator/0.1"


class PageFetchError(RuntimeError):
    """Raised when a page cannot be downloaded."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"Failed to load {url}: {message}")


def fetch_page_html(
    url: str,
    *,
    timeout: float = 30.0,
    session: Optional[requests.Session] = None,
) -> str:
    """Return the body of ``url`` decoded as text.

    Args:
        url: Absolute http(s) URL of the page.
        timeout: Seconds to wait for the server.
        session: Optional requests session for connection pooling.
    """

    http = session or requests.Session()
    try:
        response = http.get(url, timeout=timeout, headers={"User-Agent": DEFAULT_USER_AGENT})
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning(
            "Page download failed: %s",
            exc,
            extra={"event": "text.fetch.failed", "url": url},
        )
        raise PageFetchError(url, str(exc)) from exc
    finally:
        if session is None:
            http.close()

    if not response.encoding or response.encoding.lower() == "iso-8859-1":
        response.encoding = response.apparent_encoding or "utf-8"
    logger.info(
        "Downloaded %s (%d bytes)",
        url,
        len(response.content),
        extra={"event": "text.fetch.complete"},
    )
    return response.text


__all__ = ["DEFAULT_USER_AGENT", "PageFetchError", "fetch_page_html"]
