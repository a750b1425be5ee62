"""Track catalog: map a track id to the storage key holding its audio."""

from __future__ import annotations
import hashlib
import json
import re
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Protocol, Sequence, Union, runtime_checkable

from .core.model import TrackNotFound

_SLUG_STRIP = re.compile(r"[^\w\s-]")
_SLUG_DASH = re.compile(r"[-\s_]+")


def slugify(value: str) -> str:
    """ASCII, lowercase, dash-separated slug ("Miles Davis" -> "miles-davis")."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = _SLUG_STRIP.sub("", value).strip().lower()
    return _SLUG_DASH.sub("-", value).strip("-")


def storage_key_for(artist: str, album: str, name: str) -> str:
    """Storage key of an uploaded track: md5 of its artist, album and title slugs."""
    joined = f"{slugify(artist)}_{slugify(album)}_{slugify(name)}"
    return hashlib.md5(joined.encode("utf-8")).hexdigest()


@dataclass(slots=True, frozen=True)
class Track:
    id: str
    name: str
    album: str = ""
    artists: Sequence[str] = field(default_factory=tuple)
    key: str | None = None            # explicit storage key overrides derivation
    mime_type: str | None = None

    @property
    def storage_key(self) -> str:
        if self.key:
            return self.key
        artist = self.artists[0] if self.artists else ""
        return storage_key_for(artist, self.album, self.name)


@runtime_checkable
class TrackResolver(Protocol):
    def resolve(self, track_id: str) -> Track:
        """Return the track for `track_id`; raise TrackNotFound when unknown."""
        ...


class JsonTrackCatalog:
    """Read-only catalog loaded from a JSON list of track objects.

    Each object needs ``id`` and ``name``; ``album``, ``artists``,
    ``storage_key`` and ``mime_type`` are optional.
    """

    def __init__(self, tracks: Sequence[Track]):
        self._tracks: Dict[str, Track] = {t.id: t for t in tracks}

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "JsonTrackCatalog":
        with open(path, "r", encoding="utf-8") as fh:
            entries = json.load(fh)
        return cls([_track_from_dict(e) for e in entries])

    def __len__(self) -> int:
        return len(self._tracks)

    def resolve(self, track_id: str) -> Track:
        try:
            return self._tracks[str(track_id)]
        except KeyError:
            raise TrackNotFound(f"No track with id {track_id!r}") from None


def _track_from_dict(entry: dict) -> Track:
    if "id" not in entry or "name" not in entry:
        raise ValueError(f"Track entry needs 'id' and 'name': {entry!r}")
    artists = entry.get("artists") or ()
    if isinstance(artists, str):
        artists = (artists,)
    return Track(
        id=str(entry["id"]),
        name=entry["name"],
        album=entry.get("album", ""),
        artists=tuple(artists),
        key=entry.get("storage_key"),
        mime_type=entry.get("mime_type"),
    )
