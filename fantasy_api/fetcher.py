# fantasy_api/fetcher.py
from __future__ import annotations

import logging
import time
from typing import Iterable, Mapping, Optional, Tuple

import requests

from fantasy_api.config import CRICBUZZ_BASE_URL, SCRAPER_HEADERS, SCRAPER_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def absolute_url(href: Optional[str], base_url: str = CRICBUZZ_BASE_URL) -> Optional[str]:
    if not href:
        return None
    if href.startswith("http://") or href.startswith("https://"):
        return href
    return f"{base_url.rstrip('/')}/{href.lstrip('/')}"


def unique_strings(values: Iterable[Optional[str]]) -> list:
    """Order-preserving de-duplication that skips empty values."""
    out = []
    seen = set()
    for v in values:
        if not v or v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


def pause(seconds: float) -> None:
    """Politeness delay between outbound requests."""
    if seconds and seconds > 0:
        time.sleep(seconds)


class PageFetcher:
    """
    Single outbound page fetch with fixed identity headers and a timeout.

    IMPORTANT:
    - Never raises on non-2xx or network errors: returns None and records
      the status/error on the instance for diagnostics.
    - Never retries. Retry policy belongs to the caller.
    """

    def __init__(
        self,
        headers: Optional[Mapping[str, str]] = None,
        timeout: float = SCRAPER_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.headers = dict(headers or SCRAPER_HEADERS)
        self.timeout = timeout
        self._session = session or requests.Session()
        self.last_status: Optional[int] = None
        self.last_error: Optional[str] = None
        self.last_url: Optional[str] = None

    def fetch(self, url: str, label: str = "fetch") -> Optional[str]:
        self.last_url = url
        self.last_status = None
        self.last_error = None

        logger.debug("%s: requesting %s", label, url)
        try:
            r = self._session.get(url, timeout=self.timeout, headers=self.headers, allow_redirects=True)
        except requests.RequestException as e:
            self.last_error = str(e)
            logger.warning("%s failed for %s: %s", label, url, e)
            return None

        self.last_status = r.status_code
        if not 200 <= r.status_code < 300:
            self.last_error = f"HTTP {r.status_code}"
            logger.warning("%s: non-2xx status (%s) for %s", label, r.status_code, url)
            return None

        html = r.text or ""
        logger.debug("%s: HTTP %s, %d bytes", label, r.status_code, len(html))
        return html

    def fetch_first_working(self, urls: Iterable[str], label: str = "fetch") -> Tuple[Optional[str], Optional[str]]:
        """Try candidate URLs in order; returns (url, html) of the first that loads."""
        for url in unique_strings(urls):
            html = self.fetch(url, label)
            if html:
                return url, html
        return None, None

    def close(self) -> None:
        self._session.close()
