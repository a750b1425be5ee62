"""Asynchronous HTTP byte source using httpx."""

import httpx
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

from .base import RangeNotSupportedError, RANGE_FALLBACK_MAX
from .http_sync import _decide_full_get, _parse_last_modified, _too_large_without_ranges


# Global async client
_client: Optional[httpx.AsyncClient] = None


@asynccontextmanager
async def _get_client():
    """Get or create the global httpx AsyncClient."""
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=60.0)

    try:
        yield _client
    finally:
        # Don't close the client here - it's shared
        pass


class HTTPAsyncByteSource:
    """Asynchronous seekable HTTP object reader with Range support."""

    def __init__(self, url: str):
        self.url = url
        self.bytes_fetched = 0
        self.requests_made = 0
        self.content_length: Optional[int] = None
        self.last_modified: Optional[datetime] = None
        self._accept_ranges = False
        self._full_content: Optional[bytes] = None
        self._position = 0
        self._initialized = False

    async def _ensure_initialized(self):
        """Perform HEAD request to check capabilities if not already done."""
        if self._initialized:
            return

        async with _get_client() as client:
            try:
                self.requests_made += 1
                response = await client.head(self.url)
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

                self._initialized = True

            except httpx.RequestError as e:
                raise IOError(f"HEAD request failed: {e}")

    async def _fetch_full_content(self):
        """Download entire object for small files without range support."""
        if self._full_content is not None:
            return

        async with _get_client() as client:
            try:
                self.requests_made += 1
                response = await client.get(self.url)
                if response.status_code >= 400:
                    raise IOError(f"GET request failed with status {response.status_code}")

                self._full_content = response.content
                self.bytes_fetched = len(self._full_content)

            except httpx.RequestError as e:
                raise IOError(f"GET request failed: {e}")

    async def _fetch_range(self, start: int, length: int, retry_count: int = 0) -> bytes:
        """Fetch a specific byte range; may return fewer bytes at end of object."""
        end = start + length - 1
        headers = {'Range': f'bytes={start}-{end}'}

        async with _get_client() as client:
            try:
                self.requests_made += 1
                response = await client.get(self.url, headers=headers)

                if response.status_code == 200:
                    # Server ignored the Range header and sent everything
                    if self.content_length and self.content_length >= RANGE_FALLBACK_MAX:
                        raise RangeNotSupportedError("Server doesn't support ranges and file is too large")

                    self._full_content = response.content
                    self.bytes_fetched = len(self._full_content)
                    return self._full_content[start:start + length]

                elif response.status_code == 206:
                    data = response.content

                    if len(data) < length and retry_count == 0 and (
                            self.content_length is None or start + len(data) < self.content_length):
                        remaining = length - len(data)
                        self.bytes_fetched += len(data)
                        return data + await self._fetch_range(start + len(data), remaining, retry_count + 1)

                    self.bytes_fetched += len(data)
                    return data

                elif response.status_code == 416:
                    return b''

                else:
                    raise IOError(f"Range request failed with status {response.status_code}")

            except httpx.RequestError as e:
                if retry_count == 0:
                    # One automatic retry
                    return await self._fetch_range(start, length, retry_count + 1)
                raise IOError(f"Range request failed: {e}")

    async def seek(self, offset: int) -> None:
        if offset < 0:
            raise IOError("Start offset cannot be negative")
        self._position = offset

    async def read(self, size: int) -> bytes:
        """Return up to `size` bytes from the cursor; b'' at end of object."""
        await self._ensure_initialized()

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
            await self._fetch_full_content()
            data = self._full_content[start:start + size]
        elif not self._accept_ranges:
            raise RangeNotSupportedError("Server doesn't support ranges and file is too large")
        else:
            data = await self._fetch_range(start, size)

        self._position += len(data)
        return data

    async def __aenter__(self):
        await self._ensure_initialized()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        # Client is shared, only drop the cached body
        self._full_content = None


async def open_http_source_async(url: str) -> HTTPAsyncByteSource:
    """Create an asynchronous HTTP byte source."""
    source = HTTPAsyncByteSource(url)
    await source._ensure_initialized()
    return source


async def close_global_client():
    """Close the global httpx client. Call this at application shutdown."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
