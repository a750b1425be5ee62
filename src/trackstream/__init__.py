"""trackstream - HTTP byte-range streaming of audio tracks."""

from .core.config import StreamConfig
from .core.model import (                                              # re-export
    StreamRequest, ResolvedRange, StreamOutcome, StreamableResource,
    TrackStreamError, ResourceUnavailable, TrackNotFound, RangeUnsatisfiable,
)
from .core.ranges import parse_range_header, resolve_range
from .catalog import Track, TrackResolver, JsonTrackCatalog
from .storage import Storage, resource_for
from .streamer import RangeStreamer


async def stream(source, sink, *, range_header: str | None = None,
                 config: StreamConfig | None = None, **resource_options) -> StreamOutcome:
    """Stream a path or URL asynchronously into an AsyncResponseSink."""
    resource = resource_for(source, config=config, **resource_options)
    request = StreamRequest.from_header(str(source), range_header)
    return await RangeStreamer(config).serve_async(request, resource, sink)


def stream_sync(source, sink, *, range_header: str | None = None,
                config: StreamConfig | None = None, **resource_options) -> StreamOutcome:
    """Stream a path or URL synchronously into a ResponseSink."""
    resource = resource_for(source, config=config, **resource_options)
    request = StreamRequest.from_header(str(source), range_header)
    return RangeStreamer(config).serve(request, resource, sink)


__all__ = [
    "stream", "stream_sync",
    "StreamConfig", "StreamRequest", "ResolvedRange", "StreamOutcome", "StreamableResource",
    "TrackStreamError", "ResourceUnavailable", "TrackNotFound", "RangeUnsatisfiable",
    "parse_range_header", "resolve_range",
    "Track", "TrackResolver", "JsonTrackCatalog",
    "Storage", "resource_for", "RangeStreamer",
]
