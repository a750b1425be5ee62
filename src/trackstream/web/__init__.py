"""HTTP front-ends (WSGI and ASGI) for the range streamer."""

from .service import StreamService
from .wsgi import StreamApp, create_app
from .asgi import ASGIStreamApp

__all__ = ["StreamService", "StreamApp", "create_app", "ASGIStreamApp"]
