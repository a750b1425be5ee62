from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Tuple

ByteWindow = Tuple[int, "int | None"]          # (start, end) with end optional


@dataclass(slots=True, frozen=True)
class StreamRequest:
    resource_id: str
    requested_range: ByteWindow | None = None   # None -> plain GET

    @classmethod
    def from_header(cls, resource_id: str, range_header: str | None) -> "StreamRequest":
        """Build a request from the raw `Range` header (malformed -> no range)."""
        from .ranges import parse_range_header
        return cls(resource_id=resource_id, requested_range=parse_range_header(range_header))


@dataclass(slots=True, frozen=True)
class ResolvedRange:
    begin: int
    end: int                   # inclusive
    is_partial: bool

    @property
    def length(self) -> int:
        return self.end - self.begin + 1


@dataclass(slots=True)
class StreamOutcome:
    bytes_sent: int
    terminated_early: bool
    reason: str                # "complete" | "disconnected" | "exhausted"
    bytes_fetched: int = 0     # read from the source, may exceed bytes_sent
    requests_made: int = 0


@dataclass(slots=True, frozen=True)
class StreamableResource:
    """Snapshot of a byte-addressable resource taken at request start."""

    size: int
    last_modified: datetime
    mime_type: str
    display_name: str
    opener: Callable[[], Any]
    async_opener: Callable[[], Any] | None = None

    def open_reader(self):
        """Open a seekable ByteSource positioned at offset 0."""
        return self.opener()

    async def open_reader_async(self):
        """Open an AsyncByteSource; falls back to wrapping the sync opener."""
        if self.async_opener is not None:
            return await self.async_opener()
        from ..io.local import LocalAsyncByteSource
        return LocalAsyncByteSource.wrap(self.opener())


class TrackStreamError(RuntimeError):
    """Base class for trackstream errors."""
    pass


class ResourceUnavailable(TrackStreamError, IOError):
    """Raised when a storage key cannot be opened or does not exist."""
    pass


class TrackNotFound(ResourceUnavailable):
    """Raised when a track id is not present in the catalog."""
    pass


class RangeUnsatisfiable(TrackStreamError):
    """Raised in strict mode when the requested range lies outside the resource."""

    def __init__(self, size: int, requested: ByteWindow | None = None):
        super().__init__(f"Range {requested!r} not satisfiable for {size} bytes")
        self.size = size
        self.requested = requested
