"""
Media acquisition domain module.

Turns a source URL into a chunked, registered, playable track: identity
resolution, external tool orchestration (yt-dlp, ffmpeg), chunk asset
registration and index bookkeeping.
"""

from .assets import (
    AssetPublisher,
    AssetRegistry,
    InMemoryAssetRegistry,
    InMemorySoundEventRegistry,
    SoundEventRegistry,
    chunk_event_name,
)
from .exceptions import (
    AcquisitionError,
    AssetRegistrationWarning,
    ChunkingError,
    DownloadError,
    MediaRadioError,
    MetadataFetchError,
    MetadataParseError,
    MissingAssetRetryExceeded,
    UnsupportedInputError,
)
from .identity import detect_source_kind, normalize_url, resolve_track_id
from .index import SongIndex
from .models import LibraryEntry, MediaInfo, SoundEventDescriptor, TrackMetadata
from .pipeline import AcquisitionPipeline

__all__ = [
    # Assets
    "AssetPublisher",
    "AssetRegistry",
    "InMemoryAssetRegistry",
    "InMemorySoundEventRegistry",
    "SoundEventRegistry",
    "chunk_event_name",
    # Exceptions
    "AcquisitionError",
    "AssetRegistrationWarning",
    "ChunkingError",
    "DownloadError",
    "MediaRadioError",
    "MetadataFetchError",
    "MetadataParseError",
    "MissingAssetRetryExceeded",
    "UnsupportedInputError",
    # Identity
    "detect_source_kind",
    "normalize_url",
    "resolve_track_id",
    # Models
    "LibraryEntry",
    "MediaInfo",
    "SoundEventDescriptor",
    "TrackMetadata",
    # Pipeline
    "AcquisitionPipeline",
    "SongIndex",
]
