from __future__ import annotations
import unicodedata
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Dict, Iterable
from urllib.parse import quote

from .model import StreamOutcome


def http_date(value: datetime) -> str:
    """Format a datetime as an IMF-fixdate (`Sun, 06 Nov 1994 08:49:37 GMT`)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def content_disposition(filename: str, disposition: str = "inline") -> str:
    """Return a Content-Disposition value, adding RFC 5987 `filename*` for non-ASCII names."""
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    quoted = ascii_name.replace("\\", "\\\\").replace('"', '\\"')
    value = f'{disposition}; filename="{quoted}"'
    if ascii_name != filename:
        value += f"; filename*=UTF-8''{quote(filename, safe='')}"
    return value


def outcome_asdict(outcome: StreamOutcome, *, status: int | None = None,
                   headers: Iterable[tuple[str, str]] | None = None) -> Dict[str, Any]:
    """Return a JSON-serialisable dict describing a finished stream."""
    payload: Dict[str, Any] = {
        "bytes_sent": outcome.bytes_sent,
        "terminated_early": outcome.terminated_early,
        "reason": outcome.reason,
        "bytes_fetched": outcome.bytes_fetched,
        "requests_made": outcome.requests_made,
    }
    if status is not None:
        payload["status"] = status
    if headers is not None:
        payload["headers"] = dict(headers)
    return payload
