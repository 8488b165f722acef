"""
Source calendar retrieval over HTTP or from the local filesystem.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from urllib.parse import unquote
from urllib.parse import urlparse

import requests

from calendar_combine.models import DEFAULT_MAX_WORKERS
from calendar_combine.models import DEFAULT_TIMEOUT
from calendar_combine.models import FormatError
from calendar_combine.models import SourceError

logger = logging.getLogger(__name__)

USER_AGENT = "calendar-combine/1.0"

_HTTP_SCHEMES = frozenset({"http", "https"})


def get_calendar_urls(value: str | None) -> list[str]:
    """Split a comma- or newline-separated source list, dropping blanks."""
    if not value:
        return []
    parts = value.replace("\n", ",").split(",")
    return [part.strip() for part in parts if part.strip()]


def describe_source(url: str) -> tuple[str, str]:
    """
    Classify a source location.

    Returns:
        Tuple of (kind, location) where kind is 'http', 'file' or 'invalid'
        and location is the URL or the resolved filesystem path.
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme in _HTTP_SCHEMES:
        return ("http", url) if parsed.netloc else ("invalid", url)
    if scheme == "file":
        return ("file", unquote(parsed.path))
    # A single letter is a Windows drive, not a scheme.
    if not scheme or len(scheme) == 1:
        return ("file", url)
    return ("invalid", url)


class CalendarDownloader:
    """Fetches iCalendar texts, sharing one HTTP session across downloads."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session: requests.Session | None = None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def download(self, url: str) -> str:
        """Download one calendar and return its text."""
        kind, location = describe_source(url)
        if kind == "invalid":
            raise SourceError(f"Unsupported calendar location: {url}")

        logger.debug("Downloading calendar from %s", url)
        if kind == "file":
            try:
                # Bytes, so CRLF line endings reach the parser untouched.
                data = Path(location).read_bytes()
            except OSError as e:
                raise SourceError(f"Failed to read calendar {location}: {e}") from e
            try:
                text = data.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise FormatError(f"Calendar is not valid UTF-8: {e}", source=url) from e
        else:
            try:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise SourceError(f"Failed to download calendar {url}: {e}") from e
            # iCalendar defaults to UTF-8; servers often omit the charset.
            if not response.encoding or response.encoding.lower() == "iso-8859-1":
                response.encoding = "utf-8"
            text = response.text

        logger.debug("Downloaded calendar from %s, size: %d characters", url, len(text))
        return text

    def download_all(self, urls: list[str], max_workers: int = DEFAULT_MAX_WORKERS) -> list[str]:
        """
        Download several calendars concurrently.

        Texts are returned in the order of urls. The first failure is raised
        once all downloads have settled.
        """
        if not urls:
            return []
        workers = max(1, min(max_workers, len(urls)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self.download, url) for url in urls]
        return [future.result() for future in futures]

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def download_calendar(url: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Download a single calendar with a throwaway session."""
    with CalendarDownloader(timeout=timeout) as downloader:
        return downloader.download(url)
