"""HTTP byte-range streaming of a resource into a response sink."""

from __future__ import annotations
import logging

from .core.config import StreamConfig
from .core.model import (
    ResolvedRange, ResourceUnavailable, StreamableResource, StreamOutcome, StreamRequest,
)
from .core.ranges import resolve_range
from .core.util import content_disposition, http_date

logger = logging.getLogger(__name__)

COMPLETE = "complete"
DISCONNECTED = "disconnected"
EXHAUSTED = "exhausted"


class RangeStreamer:
    """Serve a (possibly partial) resource with bounded memory.

    One instance can be shared by any number of concurrent requests: it only
    holds the immutable config, all stream state lives in `serve` locals.
    """

    def __init__(self, config: StreamConfig | None = None):
        self.config = config or StreamConfig()

    # ------------------------------------------------------------------ #
    def resolve(self, request: StreamRequest, resource: StreamableResource) -> ResolvedRange:
        return resolve_range(request.requested_range, resource.size, strict=self.config.strict_ranges)

    def response_headers(self, rng: ResolvedRange, resource: StreamableResource) -> list[tuple[str, str]]:
        headers = [
            ("Content-Type", resource.mime_type),
            ("Accept-Ranges", "bytes"),
            ("Content-Length", str(rng.length)),
            ("Content-Disposition", content_disposition(resource.display_name)),
            ("Content-Transfer-Encoding", "binary"),
            ("Last-Modified", http_date(resource.last_modified)),
            ("Cache-Control", self.config.cache_control),
            ("Pragma", "no-cache"),
        ]
        if rng.is_partial:
            headers.append(("Content-Range", f"bytes {rng.begin}-{rng.end}/{resource.size}"))
        return headers

    def _emit_metadata(self, sink, rng: ResolvedRange, resource: StreamableResource) -> None:
        sink.set_status(206 if rng.is_partial else 200)
        for name, value in self.response_headers(rng, resource):
            sink.set_header(name, value)

    def _next_read_size(self, position: int, rng: ResolvedRange) -> int:
        return min(self.config.chunk_size, rng.end - position + 1)

    def _finish(self, request: StreamRequest, rng: ResolvedRange, sent: int, reason: str,
                source=None) -> StreamOutcome:
        if reason == EXHAUSTED:
            logger.warning("Source for %s ended after %d of %d bytes",
                           request.resource_id, sent, rng.length)
        elif reason == DISCONNECTED:
            logger.debug("Client left %s after %d of %d bytes",
                         request.resource_id, sent, rng.length)
        else:
            logger.debug("Streamed %s bytes %d-%d (%d bytes)",
                         request.resource_id, rng.begin, rng.end, sent)
        return StreamOutcome(
            bytes_sent=sent,
            terminated_early=reason != COMPLETE,
            reason=reason,
            bytes_fetched=getattr(source, "bytes_fetched", 0),
            requests_made=getattr(source, "requests_made", 0),
        )

    # ------------------------------------------------------------------ #
    def serve(self, request: StreamRequest, resource: StreamableResource, sink, *,
              head_only: bool = False) -> StreamOutcome:
        """Stream the requested window of `resource` into `sink` (blocking I/O).

        With `head_only` the status and headers are sent and no source is opened.
        """
        rng = self.resolve(request, resource)
        if head_only:
            self._emit_metadata(sink, rng, resource)
            sink.send_headers()
            return self._finish(request, rng, 0, COMPLETE)

        try:
            source = resource.open_reader()
        except ResourceUnavailable:
            raise
        except OSError as e:
            raise ResourceUnavailable(f"Cannot open {request.resource_id!r}: {e}") from e

        try:
            self._emit_metadata(sink, rng, resource)
            sink.send_headers()

            position, sent, reason = rng.begin, 0, COMPLETE
            if rng.length > 0:
                source.seek(rng.begin)
            while position <= rng.end:
                if not sink.is_client_connected():
                    reason = DISCONNECTED
                    break
                chunk = source.read(self._next_read_size(position, rng))
                if not chunk:
                    reason = EXHAUSTED
                    break
                if not sink.write_chunk(chunk):
                    reason = DISCONNECTED
                    break
                position += len(chunk)
                sent += len(chunk)
        finally:
            source.close()

        return self._finish(request, rng, sent, reason, source)

    async def serve_async(self, request: StreamRequest, resource: StreamableResource, sink, *,
                          head_only: bool = False) -> StreamOutcome:
        """Coroutine twin of `serve` for AsyncByteSource / AsyncResponseSink."""
        rng = self.resolve(request, resource)
        if head_only:
            self._emit_metadata(sink, rng, resource)
            await sink.send_headers()
            return self._finish(request, rng, 0, COMPLETE)

        try:
            source = await resource.open_reader_async()
        except ResourceUnavailable:
            raise
        except OSError as e:
            raise ResourceUnavailable(f"Cannot open {request.resource_id!r}: {e}") from e

        try:
            self._emit_metadata(sink, rng, resource)
            await sink.send_headers()

            position, sent, reason = rng.begin, 0, COMPLETE
            if rng.length > 0:
                await source.seek(rng.begin)
            while position <= rng.end:
                if not sink.is_client_connected():
                    reason = DISCONNECTED
                    break
                chunk = await source.read(self._next_read_size(position, rng))
                if not chunk:
                    reason = EXHAUSTED
                    break
                if not await sink.write_chunk(chunk):
                    reason = DISCONNECTED
                    break
                position += len(chunk)
                sent += len(chunk)
        finally:
            await source.close()

        return self._finish(request, rng, sent, reason, source)
