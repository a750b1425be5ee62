"""Storage layer: resolve a storage key to a StreamableResource.

The root is either a local directory or an ``http(s)://`` base URL (an object
store or any server honouring ``Range``). Size and modification time are read
once when the resource is resolved; every ``open_reader`` call opens a fresh,
request-owned byte source.
"""

from __future__ import annotations
import logging
import mimetypes
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Tuple, Union
from urllib.parse import quote, unquote, urlparse

from .core.config import StreamConfig
from .core.model import ResourceUnavailable, StreamableResource
from .io import is_url, open_source, open_source_async
from .io.base import RangeNotSupportedError
from .io.local import LocalByteSource, open_local_source_async, stat_local
from .io.http_sync import HTTPByteSource
from .io.http_async import open_http_source_async

logger = logging.getLogger(__name__)


class Storage:
    def __init__(self, root: Union[str, Path], config: StreamConfig | None = None):
        self.root = str(root).rstrip("/") if is_url(root) else Path(root).resolve()
        self.config = config or StreamConfig()

    @property
    def is_remote(self) -> bool:
        return isinstance(self.root, str)

    def location(self, key: str) -> Union[str, Path]:
        """Return the path or URL for `key`, refusing keys that escape the root."""
        if not key or key.startswith("/") or ".." in Path(key).parts:
            raise ResourceUnavailable(f"Invalid storage key: {key!r}")
        if self.is_remote:
            return f"{self.root}/{quote(key)}"
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise ResourceUnavailable(f"Invalid storage key: {key!r}")
        return path

    def stat(self, key: str) -> Tuple[int, datetime]:
        """Return (size, last_modified) for `key`."""
        location = self.location(key)
        if self.is_remote:
            with _opening(key):
                source = HTTPByteSource(location)
            if source.content_length is None:
                raise ResourceUnavailable(f"No Content-Length for {key!r}")
            return source.content_length, source.last_modified or datetime.now(timezone.utc)
        with _opening(key):
            return stat_local(location)

    def open(self, key: str):
        """Open a fresh ByteSource for `key`."""
        location = self.location(key)
        with _opening(key):
            if self.is_remote:
                return HTTPByteSource(location)
            return LocalByteSource(location)

    async def open_async(self, key: str):
        """Open a fresh AsyncByteSource for `key`."""
        location = self.location(key)
        with _opening(key):
            if self.is_remote:
                return await open_http_source_async(location)
            return await open_local_source_async(location)

    def resource(self, key: str, *, mime_type: str | None = None,
                 display_name: str | None = None) -> StreamableResource:
        """Snapshot `key` into a StreamableResource."""
        size, last_modified = self.stat(key)
        display_name = display_name or Path(key).name
        logger.debug("Resolved %s: %d bytes, modified %s", key, size, last_modified)
        return StreamableResource(
            size=size,
            last_modified=last_modified,
            mime_type=mime_type or guess_mime_type(key, display_name, default=self.config.default_mime_type),
            display_name=display_name,
            opener=lambda: self.open(key),
            async_opener=lambda: self.open_async(key),
        )


@contextmanager
def _opening(key: str):
    """Translate I/O failures while opening `key` into ResourceUnavailable."""
    try:
        yield
    except ResourceUnavailable:
        raise
    except (OSError, RangeNotSupportedError) as e:
        raise ResourceUnavailable(f"Cannot open {key!r}: {e}") from e


def guess_mime_type(*names: str, default: str = "application/octet-stream") -> str:
    """Mime type of the first name `mimetypes` recognises, else `default`."""
    for name in names:
        if name:
            mime, _ = mimetypes.guess_type(name)
            if mime:
                return mime
    return default


def resource_for(location, *, mime_type: str | None = None, display_name: str | None = None,
                 config: StreamConfig | None = None) -> StreamableResource:
    """Snapshot a single local path or URL, without a storage root."""
    config = config or StreamConfig()
    location = str(location)
    with _opening(location):
        if is_url(location):
            remote = HTTPByteSource(location)
            if remote.content_length is None:
                raise ResourceUnavailable(f"No Content-Length for {location!r}")
            size, last_modified = remote.content_length, remote.last_modified or datetime.now(timezone.utc)
            name = unquote(Path(urlparse(location).path).name)
        else:
            size, last_modified = stat_local(location)
            name = Path(location).name
    display_name = display_name or name

    def opener():
        with _opening(location):
            return open_source(location)

    async def async_opener():
        with _opening(location):
            return await open_source_async(location)

    return StreamableResource(
        size=size,
        last_modified=last_modified,
        mime_type=mime_type or guess_mime_type(display_name, default=config.default_mime_type),
        display_name=display_name,
        opener=opener,
        async_opener=async_opener,
    )
