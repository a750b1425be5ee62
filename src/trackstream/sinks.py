"""Response sinks: where streamed bytes go and how peer liveness is reported."""

from __future__ import annotations
from pathlib import Path
from typing import BinaryIO, List, Optional, Protocol, Tuple, Union, runtime_checkable


@runtime_checkable
class ResponseSink(Protocol):
    """Capability handed to the streamer instead of global header/output access."""

    def set_status(self, status: int) -> None: ...

    def set_header(self, name: str, value: str) -> None: ...

    def send_headers(self) -> None:
        """Commit status and headers; no header may change afterwards."""
        ...

    def write_chunk(self, data: bytes) -> bool:
        """Deliver `data`; return False when the peer is gone."""
        ...

    def is_client_connected(self) -> bool: ...


@runtime_checkable
class AsyncResponseSink(Protocol):
    def set_status(self, status: int) -> None: ...

    def set_header(self, name: str, value: str) -> None: ...

    async def send_headers(self) -> None: ...

    async def write_chunk(self, data: bytes) -> bool: ...

    def is_client_connected(self) -> bool: ...


class HeaderSink:
    """Status/header bookkeeping shared by the concrete sinks."""

    def __init__(self):
        self.status: Optional[int] = None
        self.headers: List[Tuple[str, str]] = []
        self.headers_sent = False
        self.connected = True

    def set_status(self, status: int) -> None:
        if self.headers_sent:
            raise RuntimeError("Headers already sent")
        self.status = status

    def set_header(self, name: str, value: str) -> None:
        if self.headers_sent:
            raise RuntimeError("Headers already sent")
        self.headers = [(k, v) for k, v in self.headers if k.lower() != name.lower()]
        self.headers.append((name, value))

    def header(self, name: str) -> Optional[str]:
        for k, v in self.headers:
            if k.lower() == name.lower():
                return v
        return None

    def is_client_connected(self) -> bool:
        return self.connected


class MemorySink(HeaderSink):
    """Collects the response in memory.

    `disconnect_after` simulates a peer that goes away once that many chunks
    have been accepted.
    """

    def __init__(self, disconnect_after: Optional[int] = None):
        super().__init__()
        self.chunks: List[bytes] = []
        self.disconnect_after = disconnect_after

    def send_headers(self) -> None:
        self.headers_sent = True

    def write_chunk(self, data: bytes) -> bool:
        if not self.connected:
            return False
        self.chunks.append(bytes(data))
        if self.disconnect_after is not None and len(self.chunks) >= self.disconnect_after:
            self.connected = False
        return True

    @property
    def body(self) -> bytes:
        return b"".join(self.chunks)


class AsyncMemorySink(MemorySink):
    """Coroutine flavour of MemorySink."""

    async def send_headers(self) -> None:
        MemorySink.send_headers(self)

    async def write_chunk(self, data: bytes) -> bool:
        return MemorySink.write_chunk(self, data)


class FileSink(HeaderSink):
    """Writes the body to a binary file object or a path (None discards it).

    A path is opened when the headers are sent, so a request that fails
    before that point leaves no file behind.
    """

    def __init__(self, target: Union[BinaryIO, str, Path, None] = None):
        super().__init__()
        self._path = Path(target) if isinstance(target, (str, Path)) else None
        self._file = None if self._path is not None else target
        self.bytes_written = 0

    def send_headers(self) -> None:
        if self._path is not None and self._file is None:
            self._file = open(self._path, "wb")
        self.headers_sent = True

    def write_chunk(self, data: bytes) -> bool:
        if not self.connected:
            return False
        try:
            if self._file is not None:
                self._file.write(data)
        except BrokenPipeError:
            self.connected = False
            return False
        self.bytes_written += len(data)
        return True

    def close(self) -> None:
        """Close the file if the sink opened it."""
        if self._path is not None and self._file is not None:
            self._file.close()
            self._file = None


class AsyncFileSink(FileSink):
    """Coroutine flavour of FileSink; writes stay on the loop thread."""

    async def send_headers(self) -> None:
        FileSink.send_headers(self)

    async def write_chunk(self, data: bytes) -> bool:
        return FileSink.write_chunk(self, data)
