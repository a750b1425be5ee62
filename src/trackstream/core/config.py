from __future__ import annotations
from dataclasses import dataclass

CHUNK_SIZE = 16 * 1024  # 16 KiB
CACHE_CONTROL = "public, must-revalidate, max-age=0"


@dataclass(slots=True, frozen=True)
class StreamConfig:
    chunk_size: int = CHUNK_SIZE
    strict_ranges: bool = False          # True -> 416 instead of full response
    cache_control: str = CACHE_CONTROL
    default_mime_type: str = "audio/mpeg"

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
