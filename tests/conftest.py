"""Shared fixtures."""

import io
from datetime import datetime, timezone

import pytest

from trackstream.core.model import StreamableResource
from trackstream.io.local import LocalByteSource

AUDIO = bytes(range(256)) * 300          # 76800 bytes, not a multiple of 16 KiB
MODIFIED = datetime(2015, 3, 14, 9, 26, 53, tzinfo=timezone.utc)


class RecordingSource(LocalByteSource):
    """In-memory ByteSource that records reads and whether it was closed."""

    def __init__(self, data: bytes):
        super().__init__(io.BytesIO(data))
        self.reads = []
        self.closed = False

    def read(self, size: int) -> bytes:
        self.reads.append(size)
        return super().read(size)

    def close(self):
        self.closed = True
        super().close()


def make_resource(data: bytes = AUDIO, *, name: str = "Blue in Green",
                  mime_type: str = "audio/mpeg", sources: list | None = None) -> StreamableResource:
    """Resource over `data`; every opened source is appended to `sources`."""

    def opener():
        src = RecordingSource(data)
        if sources is not None:
            sources.append(src)
        return src

    return StreamableResource(
        size=len(data),
        last_modified=MODIFIED,
        mime_type=mime_type,
        display_name=name,
        opener=opener,
    )


@pytest.fixture
def audio_file(tmp_path):
    """AUDIO written to disk inside a storage root."""
    path = tmp_path / "blue-in-green.mp3"
    path.write_bytes(AUDIO)
    return path
