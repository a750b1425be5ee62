"""Tests for the ASGI application."""

import asyncio

import httpx
import pytest

from trackstream.catalog import JsonTrackCatalog, Track
from trackstream.core.config import StreamConfig
from trackstream.web.asgi import ASGISink, ASGIStreamApp

from conftest import AUDIO


def _client(audio_file, config=None):
    catalog = JsonTrackCatalog([Track(id="7", name="Blue in Green", key=audio_file.name)])
    app = ASGIStreamApp.create(audio_file.parent, catalog, config)
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


class TestASGIStreamApp:
    """Test the ASGI endpoint end to end."""

    @pytest.mark.asyncio
    async def test_full_track(self, audio_file):
        async with _client(audio_file) as client:
            response = await client.get("/tracks/7/stream")

        assert response.status_code == 200
        assert response.headers["content-length"] == str(len(AUDIO))
        assert response.headers["content-transfer-encoding"] == "binary"
        assert response.content == AUDIO

    @pytest.mark.asyncio
    async def test_partial_track(self, audio_file):
        async with _client(audio_file) as client:
            response = await client.get("/tracks/7/stream", headers={"Range": "bytes=500-599"})

        assert response.status_code == 206
        assert response.headers["content-range"] == f"bytes 500-599/{len(AUDIO)}"
        assert response.content == AUDIO[500:600]

    @pytest.mark.asyncio
    async def test_mime_query(self, audio_file):
        async with _client(audio_file) as client:
            response = await client.get("/tracks/7/stream", params={"mime": "audio/ogg"})

        assert response.headers["content-type"] == "audio/ogg"

    @pytest.mark.asyncio
    async def test_unknown_track(self, audio_file):
        async with _client(audio_file) as client:
            response = await client.get("/tracks/1/stream")

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    @pytest.mark.asyncio
    async def test_unknown_route(self, audio_file):
        async with _client(audio_file) as client:
            response = await client.get("/nowhere")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_strict_unsatisfiable(self, audio_file):
        async with _client(audio_file, StreamConfig(strict_ranges=True)) as client:
            response = await client.get("/tracks/7/stream", headers={"Range": "bytes=999999-"})

        assert response.status_code == 416
        assert response.headers["content-range"] == f"bytes */{len(AUDIO)}"

    @pytest.mark.asyncio
    async def test_head_sends_no_body(self, audio_file):
        app = ASGIStreamApp.create(audio_file.parent)
        sent = []

        async def receive():
            await asyncio.Event().wait()

        async def send(message):
            sent.append(message)

        scope = {"type": "http", "method": "HEAD", "path": f"/files/{audio_file.name}",
                 "headers": [], "query_string": b""}
        await app(scope, receive, send)

        start = sent[0]
        assert start["type"] == "http.response.start"
        assert start["status"] == 200
        assert (b"content-length", str(len(AUDIO)).encode()) in start["headers"]
        assert b"".join(m.get("body", b"") for m in sent[1:]) == b""
        assert sent[-1]["more_body"] is False

    @pytest.mark.asyncio
    async def test_lifespan_closes_http_client(self, audio_file, monkeypatch):
        closed = []

        async def fake_close():
            closed.append(True)

        monkeypatch.setattr("trackstream.web.asgi.close_global_client", fake_close)
        app = ASGIStreamApp.create(audio_file.parent)
        incoming = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent = []

        async def receive():
            return incoming.pop(0)

        async def send(message):
            sent.append(message["type"])

        await app({"type": "lifespan"}, receive, send)

        assert sent == ["lifespan.startup.complete", "lifespan.shutdown.complete"]
        assert closed == [True]


class TestASGISink:
    """Test disconnect detection on the ASGI sink."""

    @pytest.mark.asyncio
    async def test_disconnect_message(self):
        disconnected = asyncio.Event()
        sent = []

        async def receive():
            await disconnected.wait()
            return {"type": "http.disconnect"}

        async def send(message):
            sent.append(message)

        sink = ASGISink(receive, send)
        sink.set_status(200)
        sink.start_listening()
        try:
            await sink.send_headers()
            assert await sink.write_chunk(b"abc") is True

            disconnected.set()
            await asyncio.wait_for(sink._listener, timeout=1)

            assert sink.is_client_connected() is False
            assert await sink.write_chunk(b"def") is False
        finally:
            await sink.stop_listening()

        assert [m["type"] for m in sent] == ["http.response.start", "http.response.body"]

    @pytest.mark.asyncio
    async def test_send_failure(self):
        async def receive():
            await asyncio.Event().wait()

        async def send(message):
            if message["type"] == "http.response.body":
                raise ConnectionResetError()

        sink = ASGISink(receive, send)
        sink.set_status(200)
        await sink.send_headers()

        assert await sink.write_chunk(b"abc") is False
        assert sink.is_client_connected() is False
