"""WSGI application built on werkzeug."""

from __future__ import annotations
import logging
from typing import Optional

from werkzeug.exceptions import HTTPException
from werkzeug.wrappers import Request, Response

from ..catalog import TrackResolver
from ..core.config import StreamConfig
from ..core.model import RangeUnsatisfiable, ResourceUnavailable
from ..sinks import HeaderSink
from ..storage import Storage
from .service import StreamService, status_line

logger = logging.getLogger(__name__)


class WSGISink(HeaderSink):
    """Sink writing through the WSGI `write` callable returned by start_response."""

    def __init__(self, start_response):
        super().__init__()
        self._start_response = start_response
        self._write = None

    def send_headers(self) -> None:
        self._write = self._start_response(status_line(self.status), list(self.headers))
        self.headers_sent = True

    def write_chunk(self, data: bytes) -> bool:
        if not self.connected:
            return False
        try:
            self._write(data)
        except OSError:
            # ConnectionResetError, BrokenPipeError, ...: the peer went away
            self.connected = False
            return False
        return True


class StreamApp:
    def __init__(self, service: StreamService):
        self.service = service

    def __call__(self, environ, start_response):
        request = Request(environ)
        try:
            endpoint, values = self.service.match(request.path, request.method)
        except HTTPException as e:
            return e(environ, start_response)

        try:
            stream_request, resource = self.service.prepare(
                endpoint, values, request.headers.get("Range"), request.args.get("mime"))
            sink = WSGISink(start_response)
            outcome = self.service.streamer.serve(
                stream_request, resource, sink, head_only=request.method == "HEAD")
        except (ResourceUnavailable, RangeUnsatisfiable) as e:
            status, headers, body = self.service.error_response(e)
            return Response(body, status=status, headers=headers)(environ, start_response)

        logger.info("%s %s -> %d, %d bytes (%s)", request.method, request.path,
                    sink.status, outcome.bytes_sent, outcome.reason)
        return []


def create_app(storage_root, catalog: Optional[TrackResolver] = None,
               config: Optional[StreamConfig] = None) -> StreamApp:
    """Build the WSGI app for a storage root (directory or base URL)."""
    config = config or StreamConfig()
    return StreamApp(StreamService(Storage(storage_root, config), catalog, config))
