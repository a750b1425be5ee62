from __future__ import annotations
import re

from .model import ByteWindow, ResolvedRange, RangeUnsatisfiable

# first "<start>-<end?>" pair of a bytes range; anything after it is ignored
_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d+)\s*-\s*(\d*)\s*(?:,.*)?$", re.IGNORECASE)


def parse_range_header(value: str | None) -> ByteWindow | None:
    """Return (start, end|None) for `bytes=<start>-<end>`, None when absent or malformed."""
    if not value:
        return None
    m = _RANGE_RE.match(value)
    if m is None:
        return None
    start = int(m.group(1))
    end = int(m.group(2)) if m.group(2) else None
    return start, end


def resolve_range(requested: ByteWindow | None, size: int, *, strict: bool = False) -> ResolvedRange:
    """Map a requested window onto a resource of `size` bytes.

    An end past the last byte is clamped. A start outside the resource, or a
    start after the end, cannot be honoured: strict mode raises
    RangeUnsatisfiable, lenient mode serves the whole resource instead.
    """
    full = ResolvedRange(begin=0, end=size - 1, is_partial=False)
    if requested is None:
        return full

    begin, end = requested
    if end is None or end > size - 1:
        end = size - 1

    if begin >= size or begin > end:
        if strict:
            raise RangeUnsatisfiable(size, requested)
        return full

    return ResolvedRange(begin=begin, end=end, is_partial=True)
