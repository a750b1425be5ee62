"""Plain ASGI application for async servers (uvicorn, hypercorn, ...)."""

from __future__ import annotations
import asyncio
import logging
from typing import Optional
from urllib.parse import parse_qs

from werkzeug.exceptions import HTTPException

from ..catalog import TrackResolver
from ..core.config import StreamConfig
from ..core.model import RangeUnsatisfiable, ResourceUnavailable
from ..io.http_async import close_global_client
from ..sinks import HeaderSink
from ..storage import Storage
from .service import StreamService

logger = logging.getLogger(__name__)


class ASGISink(HeaderSink):
    """Sink emitting ASGI http.response.* messages.

    A listener task watches `receive` so an `http.disconnect` flips the sink to
    disconnected while the body is still being produced.
    """

    def __init__(self, receive, send):
        super().__init__()
        self._receive = receive
        self._send = send
        self._listener: Optional[asyncio.Task] = None

    async def _listen(self):
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                self.connected = False
                return

    def start_listening(self):
        self._listener = asyncio.create_task(self._listen())

    async def stop_listening(self):
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None

    async def send_headers(self) -> None:
        await self._send({
            "type": "http.response.start",
            "status": self.status,
            "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in self.headers],
        })
        self.headers_sent = True

    async def write_chunk(self, data: bytes) -> bool:
        if not self.connected:
            return False
        try:
            await self._send({"type": "http.response.body", "body": data, "more_body": True})
        except OSError:
            self.connected = False
            return False
        return True

    async def finish(self) -> None:
        if self.connected:
            try:
                await self._send({"type": "http.response.body", "body": b"", "more_body": False})
            except OSError:
                self.connected = False


class ASGIStreamApp:
    def __init__(self, service: StreamService):
        self.service = service

    @classmethod
    def create(cls, storage_root, catalog: Optional[TrackResolver] = None,
               config: Optional[StreamConfig] = None) -> "ASGIStreamApp":
        config = config or StreamConfig()
        return cls(StreamService(Storage(storage_root, config), catalog, config))

    async def __call__(self, scope, receive, send):
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        try:
            endpoint, values = self.service.match(scope["path"], scope["method"])
        except HTTPException as e:
            await _send_simple(send, e.code, [("Content-Type", "text/plain")],
                               e.description.encode("utf-8"))
            return

        headers = {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in scope.get("headers", [])}
        query = parse_qs(scope.get("query_string", b"").decode("latin-1"))
        mime = query.get("mime", [None])[0]

        try:
            # storage lookups are blocking, keep them off the event loop
            stream_request, resource = await asyncio.to_thread(
                self.service.prepare, endpoint, values, headers.get("range"), mime)
            sink = ASGISink(receive, send)
            sink.start_listening()
            try:
                outcome = await self.service.streamer.serve_async(
                    stream_request, resource, sink, head_only=scope["method"] == "HEAD")
                await sink.finish()
            finally:
                await sink.stop_listening()
        except (ResourceUnavailable, RangeUnsatisfiable) as e:
            status, err_headers, body = self.service.error_response(e)
            await _send_simple(send, status, err_headers, body)
            return

        logger.info("%s %s -> %d, %d bytes (%s)", scope["method"], scope["path"],
                    sink.status, outcome.bytes_sent, outcome.reason)

    async def _lifespan(self, receive, send):
        """Close the shared HTTP client when the server shuts down."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await close_global_client()
                await send({"type": "lifespan.shutdown.complete"})
                return


async def _send_simple(send, status: int, headers, body: bytes) -> None:
    await send({
        "type": "http.response.start",
        "status": status,
        "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers],
    })
    await send({"type": "http.response.body", "body": body})
