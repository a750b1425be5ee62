"""Synchronous HTTP byte source using requests."""

import requests
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Optional

from .base import RangeNotSupportedError, RANGE_FALLBACK_MAX


# Module-level session for connection pooling
_session = None


def _get_session():
    """Get or create the global requests session."""
    global _session
    if _session is None:
        _session = requests.Session()
    return _session


def _decide_full_get(content_length: Optional[int], accept_ranges: bool) -> bool:
    """Return True only when not accept_ranges and content_length and content_length < RANGE_FALLBACK_MAX."""
    return (not accept_ranges and
            content_length is not None and
            content_length < RANGE_FALLBACK_MAX)


def _too_large_without_ranges(content_length: Optional[int], accept_ranges: bool) -> bool:
    return (not accept_ranges and
            content_length is not None and
            content_length >= RANGE_FALLBACK_MAX)


def _parse_last_modified(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


class HTTPByteSource:
    """Synchronous seekable HTTP object reader with Range support."""

    def __init__(self, url: str):
        self.url = url
        self.bytes_fetched = 0
        self.requests_made = 0
        self.content_length: Optional[int] = None
        self.last_modified: Optional[datetime] = None
        self._accept_ranges = False
        self._full_content: Optional[bytes] = None
        self._position = 0
        self._session = _get_session()

        # Perform HEAD request immediately
        self._perform_head()

    def _perform_head(self):
        """Perform HEAD request to check capabilities."""
        try:
            self.requests_made += 1
            response = self._session.head(self.url, timeout=30)
            if response.status_code >= 400:
                raise IOError(f"HEAD request failed with status {response.status_code}")

            content_length_header = response.headers.get('content-length')
            if content_length_header:
                self.content_length = int(content_length_header)

            accept_ranges = response.headers.get('accept-ranges', '').lower()
            self._accept_ranges = accept_ranges == 'bytes'
            self.last_modified = _parse_last_modified(response.headers.get('last-modified'))

            if _too_large_without_ranges(self.content_length, self._accept_ranges):
                raise RangeNotSupportedError("Server doesn't support ranges and file is too large")

        except requests.RequestException as e:
            raise IOError(f"HEAD request failed: {e}")

    def _fetch_full_content(self):
        """Download entire object for small files without range support."""
        if self._full_content is not None:
            return

        try:
            self.requests_made += 1
            response = self._session.get(self.url, timeout=60)
            if response.status_code >= 400:
                raise IOError(f"GET request failed with status {response.status_code}")

            self._full_content = response.content
            self.bytes_fetched = len(self._full_content)

        except requests.RequestException as e:
            raise IOError(f"GET request failed: {e}")

    def _fetch_range(self, start: int, length: int, retry_count: int = 0) -> bytes:
        """Fetch a specific byte range; may return fewer bytes at end of object."""
        end = start + length - 1
        headers = {'Range': f'bytes={start}-{end}'}

        try:
            self.requests_made += 1
            response = self._session.get(self.url, headers=headers, timeout=30)

            if response.status_code == 200:
                # Server ignored the Range header and sent everything
                if self.content_length and self.content_length >= RANGE_FALLBACK_MAX:
                    raise RangeNotSupportedError("Server doesn't support ranges and file is too large")

                self._full_content = response.content
                self.bytes_fetched = len(self._full_content)
                return self._full_content[start:start + length]

            elif response.status_code == 206:
                data = response.content

                # Server might return less than requested - ask once more for the rest
                if len(data) < length and retry_count == 0 and (
                        self.content_length is None or start + len(data) < self.content_length):
                    remaining = length - len(data)
                    self.bytes_fetched += len(data)
                    return data + self._fetch_range(start + len(data), remaining, retry_count + 1)

                self.bytes_fetched += len(data)
                return data

            elif response.status_code == 416:
                # Past the end of the object
                return b''

            else:
                raise IOError(f"Range request failed with status {response.status_code}")

        except requests.RequestException as e:
            if retry_count == 0:
                # One automatic retry
                return self._fetch_range(start, length, retry_count + 1)
            raise IOError(f"Range request failed: {e}")

    def seek(self, offset: int) -> None:
        if offset < 0:
            raise IOError("Start offset cannot be negative")
        self._position = offset

    def read(self, size: int) -> bytes:
        """Return up to `size` bytes from the cursor; b'' at end of object."""
        if size <= 0:
            raise IOError("Length must be positive")

        start = self._position
        if self.content_length is not None:
            if start >= self.content_length:
                return b''
            size = min(size, self.content_length - start)

        if self._full_content is not None:
            data = self._full_content[start:start + size]
        elif _decide_full_get(self.content_length, self._accept_ranges):
            self._fetch_full_content()
            data = self._full_content[start:start + size]
        elif not self._accept_ranges:
            raise RangeNotSupportedError("Server doesn't support ranges and file is too large")
        else:
            data = self._fetch_range(start, size)

        self._position += len(data)
        return data

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        # Session is shared, only drop the cached body
        self._full_content = None


def open_http_source(url: str) -> HTTPByteSource:
    """Create a synchronous HTTP byte source."""
    return HTTPByteSource(url)
