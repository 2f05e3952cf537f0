"""
Media domain models.

Contains data structures for acquired tracks, their pipeline bookkeeping, and
the sound-event descriptors registered for each chunk.
"""

from dataclasses import asdict, dataclass, replace
from typing import Any, NamedTuple

# Bumped whenever chunk layout changes; older index entries get re-chunked
CURRENT_INDEX_VERSION = 1

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_ARTIST = "Unknown Artist"


class TrackMetadata(NamedTuple):
    """Metadata reported by the metadata tool for one source URL."""

    title: str = UNKNOWN_TITLE
    artist: str = UNKNOWN_ARTIST
    thumbnail_url: str = ""
    duration_seconds: int = 0


@dataclass(frozen=True)
class MediaInfo:
    """Represents a fully acquired track, ready for playback.

    Produced once per successful acquisition and immutable afterwards.
    """

    track_id: str
    source_url: str
    title: str
    artist: str
    thumbnail_url: str
    duration_seconds: int
    chunk_count: int
    thumbnail_asset_ref: str = ""  # "" when no thumbnail could be registered

    @property
    def duration_ms(self) -> int:
        return self.duration_seconds * 1000

    def with_chunk_count(self, chunk_count: int) -> "MediaInfo":
        return replace(self, chunk_count=chunk_count)


@dataclass
class LibraryEntry:
    """Pipeline bookkeeping for one TrackId, persisted in the song index."""

    track_id: str
    source_kind: str  # 'youtube' | 'soundcloud' | 'web'
    chunk_count: int
    chunk_duration_ms: int
    source_url: str = ""
    title: str = ""
    artist: str = ""
    duration_seconds: int = 0
    version: int = CURRENT_INDEX_VERSION

    def is_stale(self, chunk_duration_ms: int) -> bool:
        """True when the stored chunks were cut under different settings."""
        return (
            self.version < CURRENT_INDEX_VERSION
            or self.chunk_duration_ms != chunk_duration_ms
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LibraryEntry":
        return cls(
            track_id=data["track_id"],
            source_kind=data.get("source_kind", "web"),
            chunk_count=int(data.get("chunk_count", 0)),
            chunk_duration_ms=int(data.get("chunk_duration_ms", 0)),
            source_url=data.get("source_url", ""),
            title=data.get("title", ""),
            artist=data.get("artist", ""),
            duration_seconds=int(data.get("duration_seconds", 0)),
            version=int(data.get("version", 0)),
        )


@dataclass(frozen=True)
class SoundEventDescriptor:
    """Sound event registered for a single chunk file."""

    file_ref: str  # Asset path, e.g. Sounds/media_radio/<file>
    volume_db: float = 0.0
    layer_volume_db: float = 0.0
    pitch: float = 0.0
    max_distance: float = 60.0
    start_attenuation_distance: float = 10.0
    category: str = "SFX_Attn_Quiet"

    def to_document(self) -> dict[str, Any]:
        """Render the descriptor in the host platform's sound-event layout."""
        return {
            "StartAttenuationDistance": self.start_attenuation_distance,
            "MaxDistance": self.max_distance,
            "Volume": self.volume_db,
            "Parent": self.category,
            "Pitch": self.pitch,
            "Layers": [
                {
                    "Files": [self.file_ref],
                    "Volume": self.layer_volume_db,
                }
            ],
        }
