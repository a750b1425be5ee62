"""Local file byte sources."""

import asyncio
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Tuple, Union


class LocalByteSource:
    """Synchronous seekable reader over a path or an open binary file."""

    def __init__(self, source: Union[Path, str, BinaryIO]):
        self.bytes_fetched = 0
        self.requests_made = 0
        self._should_close_file = False

        if hasattr(source, 'read'):
            # BinaryIO object, owned by the caller
            if not source.seekable():
                raise IOError("File is not seekable")
            self._file = source
        else:
            self._file = open(source, 'rb')
            self._should_close_file = True

    def seek(self, offset: int) -> None:
        if offset < 0:
            raise IOError("Start offset cannot be negative")
        self._file.seek(offset)

    def read(self, size: int) -> bytes:
        """Return up to `size` bytes from the current position."""
        if size <= 0:
            raise IOError("Length must be positive")
        self.requests_made += 1
        data = self._file.read(size)
        self.bytes_fetched += len(data)
        return data

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close the file if we opened it."""
        if self._should_close_file and self._file is not None:
            self._file.close()
            self._file = None


class LocalAsyncByteSource:
    """Asynchronous byte source - thin wrapper around a sync one, run in threads."""

    def __init__(self, source: Union[Path, str, BinaryIO]):
        self._sync_source = LocalByteSource(source)

    @classmethod
    def wrap(cls, sync_source) -> "LocalAsyncByteSource":
        """Adapt an already opened synchronous ByteSource."""
        self = cls.__new__(cls)
        self._sync_source = sync_source
        return self

    @property
    def bytes_fetched(self) -> int:
        return self._sync_source.bytes_fetched

    @property
    def requests_made(self) -> int:
        return self._sync_source.requests_made

    async def seek(self, offset: int) -> None:
        await asyncio.to_thread(self._sync_source.seek, offset)

    async def read(self, size: int) -> bytes:
        return await asyncio.to_thread(self._sync_source.read, size)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the underlying sync source."""
        await asyncio.to_thread(self._sync_source.close)


def stat_local(path: Union[Path, str]) -> Tuple[int, datetime]:
    """Return (size, last_modified) for a local file."""
    st = os.stat(path)
    return st.st_size, datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)


def open_local_source(source: Union[Path, str, BinaryIO]) -> LocalByteSource:
    """Create a synchronous local byte source."""
    return LocalByteSource(source)


async def open_local_source_async(source: Union[Path, str, BinaryIO]) -> LocalAsyncByteSource:
    """Create an asynchronous local byte source."""
    if hasattr(source, 'read'):
        return LocalAsyncByteSource(source)
    return LocalAsyncByteSource.wrap(await asyncio.to_thread(LocalByteSource, source))
