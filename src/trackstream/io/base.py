"""Base protocols and shared types for I/O layer."""

from typing import Protocol, runtime_checkable


class RangeNotSupportedError(RuntimeError):
    """Raised when server rejects Range and file size > RANGE_FALLBACK_MAX."""


RANGE_FALLBACK_MAX = 10 * 1024 * 1024  # 10 MB


@runtime_checkable
class ByteSource(Protocol):
    """Protocol for synchronous seekable byte sources."""

    bytes_fetched: int  # running total

    def seek(self, offset: int) -> None:
        """Move the read cursor to absolute offset `offset`."""
        ...

    def read(self, size: int) -> bytes:
        """Return up to `size` bytes from the cursor; b'' once the data is exhausted."""
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class AsyncByteSource(Protocol):
    """Protocol for asynchronous seekable byte sources."""

    bytes_fetched: int  # running total

    async def seek(self, offset: int) -> None:
        ...

    async def read(self, size: int) -> bytes:
        """Return up to `size` bytes from the cursor; b'' once the data is exhausted."""
        ...

    async def close(self) -> None:
        ...
