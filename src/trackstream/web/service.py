"""Routing and request preparation shared by the WSGI and ASGI apps."""

from __future__ import annotations
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from werkzeug.http import HTTP_STATUS_CODES
from werkzeug.routing import Map, Rule

from ..catalog import TrackResolver
from ..core.config import StreamConfig
from ..core.model import (
    RangeUnsatisfiable, ResourceUnavailable, StreamableResource, StreamRequest,
)
from ..storage import Storage
from ..streamer import RangeStreamer

logger = logging.getLogger(__name__)

ErrorResponse = Tuple[int, List[Tuple[str, str]], bytes]


class StreamService:
    """Resolve routed requests into (StreamRequest, StreamableResource) pairs."""

    def __init__(self, storage: Storage, catalog: Optional[TrackResolver] = None,
                 config: Optional[StreamConfig] = None):
        self.storage = storage
        self.catalog = catalog
        self.config = config or storage.config
        self.streamer = RangeStreamer(self.config)
        self.url_map = Map([
            Rule("/tracks/<track_id>/stream", endpoint="track", methods=["GET"]),
            Rule("/files/<path:key>", endpoint="file", methods=["GET"]),
        ])

    def match(self, path: str, method: str = "GET") -> Tuple[str, Dict[str, Any]]:
        """Return (endpoint, values); raises werkzeug NotFound / MethodNotAllowed."""
        adapter = self.url_map.bind("localhost")
        return adapter.match(path, method=method)

    def prepare(self, endpoint: str, values: Dict[str, Any], range_header: Optional[str],
                mime: Optional[str] = None) -> Tuple[StreamRequest, StreamableResource]:
        if endpoint == "track":
            if self.catalog is None:
                raise ResourceUnavailable("No track catalog configured")
            track = self.catalog.resolve(values["track_id"])
            resource = self.storage.resource(
                track.storage_key,
                mime_type=mime or track.mime_type,
                display_name=track.name,
            )
            resource_id = track.id
        else:
            resource = self.storage.resource(values["key"], mime_type=mime)
            resource_id = values["key"]
        return StreamRequest.from_header(resource_id, range_header), resource

    def error_response(self, exc: RangeUnsatisfiable | ResourceUnavailable) -> ErrorResponse:
        """Map a pre-stream failure onto (status, headers, body)."""
        headers = [("Content-Type", "application/json")]
        if isinstance(exc, RangeUnsatisfiable):
            status = 416
            headers.append(("Content-Range", f"bytes */{exc.size}"))
        else:
            status = 404
        body = json.dumps({"error": HTTP_STATUS_CODES[status], "detail": str(exc)}).encode("utf-8")
        headers.append(("Content-Length", str(len(body))))
        logger.info("Stream request failed with %d: %s", status, exc)
        return status, headers, body


def status_line(status: int) -> str:
    return f"{status} {HTTP_STATUS_CODES.get(status, 'UNKNOWN')}"
