"""I/O layer for trackstream - seekable byte sources over files and HTTP storage."""

# Re-export these for import convenience
from .base import ByteSource, AsyncByteSource, RangeNotSupportedError
from .local import open_local_source, open_local_source_async
from .http_sync import open_http_source
from .http_async import open_http_source_async


def is_url(location) -> bool:
    return str(location).startswith(('http://', 'https://'))


def open_source(location):
    """Factory function to create the appropriate ByteSource for a location."""
    if hasattr(location, 'read'):  # BinaryIO
        return open_local_source(location)

    if is_url(location):
        return open_http_source(str(location))
    return open_local_source(location)


async def open_source_async(location):
    """Factory function to create the appropriate AsyncByteSource for a location."""
    if hasattr(location, 'read'):  # BinaryIO
        return await open_local_source_async(location)

    if is_url(location):
        return await open_http_source_async(str(location))
    return await open_local_source_async(location)


__all__ = [
    "ByteSource", "AsyncByteSource", "RangeNotSupportedError",
    "open_source", "open_source_async", "is_url",
]
