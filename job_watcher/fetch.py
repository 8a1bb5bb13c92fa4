"""
Fetch module for the Job Watcher pipeline.

This module retrieves the raw markup of a configured source with a plain
GET request. There is no retry or backoff: a failed fetch raises
FetchError and is left to the caller.
"""

import threading
from typing import List, Optional
from urllib.parse import urlparse

import requests

from job_watcher.utils import get_logger


# Module logger
logger = get_logger("fetch")

# Default configuration
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class FetchError(Exception):
    """Raised when a source page cannot be fetched or its body read."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def create_session() -> requests.Session:
    """
    Create a requests session with browser-like default headers.

    Returns:
        Configured requests.Session instance.
    """
    session = requests.Session()
    session.headers.update({
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    })
    return session


def validate_url(url: str) -> bool:
    """
    Validate that a URL is well-formed and uses HTTP/HTTPS.

    Args:
        url: URL string to validate.

    Returns:
        True if URL is valid, False otherwise.
    """
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except ValueError:
        return False


def fetch_url(
    url: str,
    session: requests.Session,
    timeout: int = DEFAULT_TIMEOUT
) -> str:
    """
    Fetch a single URL and return its body text.

    A non-success status is logged but the body is still returned, since
    error pages are diffed like any other content.

    Args:
        url: URL to fetch.
        session: Configured requests session.
        timeout: Request timeout in seconds.

    Returns:
        Response body as text.

    Raises:
        FetchError: If the URL is invalid or the request fails.
    """
    logger.debug(f"Fetching URL: {url}")

    if not validate_url(url):
        raise FetchError(f"Invalid URL format: {url}", url=url)

    try:
        response = session.get(url, timeout=timeout)
        body = response.text
    except requests.exceptions.Timeout as e:
        raise FetchError(f"Request timeout for {url}", url=url) from e
    except requests.exceptions.ConnectionError as e:
        raise FetchError(f"Connection error for {url}: {e}", url=url) from e
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Request failed for {url}: {e}", url=url) from e

    if not response.ok:
        logger.warning(f"HTTP {response.status_code} for {url}, using body anyway")
    else:
        logger.info(f"Fetched {url} ({len(body)} chars)")

    return body


class HttpFetcher:
    """
    Fetch adapter holding one requests session per thread.

    Each worker thread lazily creates its own session on first fetch. An
    injected session is used by every thread as-is. Usable as a context
    manager so every session is closed after a cycle.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = DEFAULT_TIMEOUT):
        self.timeout = timeout
        self._shared_session = session
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """Session for the calling thread."""
        if self._shared_session is not None:
            return self._shared_session

        session = getattr(self._local, "session", None)
        if session is None:
            session = create_session()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def fetch(self, url: str) -> str:
        return fetch_url(url, self.session, timeout=self.timeout)

    def close(self) -> None:
        if self._shared_session is not None:
            self._shared_session.close()

        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
