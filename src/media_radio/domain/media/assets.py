"""Registration of chunk files as named assets and playable sound events.

The host platform's registries sit behind two small protocols. In-memory
implementations back the CLI and the tests.
"""

import threading
from pathlib import Path
from typing import Optional, Protocol

from loguru import logger

from media_radio.core.config import SoundEventConfig
from media_radio.utils.volume import (
    DEFAULT_PERCENT,
    percent_to_event_db,
    percent_to_layer_db,
)

from .exceptions import AssetRegistrationWarning
from .models import SoundEventDescriptor

SOUND_ASSET_PREFIX = "Sounds/media_radio/"
THUMBNAIL_ASSET_PREFIX = "UI/Thumbs/"


class AssetRegistry(Protocol):
    """Named binary assets visible to the platform."""

    def register_named_asset(self, name: str, data: bytes) -> None: ...

    def has_asset(self, name: str) -> bool: ...

    def remove_asset_by_name(self, name: str) -> None: ...


class SoundEventRegistry(Protocol):
    """Named sound events, addressable by integer index once visible."""

    def register(self, name: str, descriptor: SoundEventDescriptor) -> None: ...

    def index_of(self, name: str) -> Optional[int]: ...

    def unregister(self, name: str) -> None: ...


class InMemoryAssetRegistry:
    """Thread-safe dict-backed AssetRegistry."""

    def __init__(self) -> None:
        self._assets: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def register_named_asset(self, name: str, data: bytes) -> None:
        if not name:
            raise AssetRegistrationWarning("Asset name is empty")
        with self._lock:
            self._assets[name] = data

    def has_asset(self, name: str) -> bool:
        with self._lock:
            return name in self._assets

    def remove_asset_by_name(self, name: str) -> None:
        with self._lock:
            self._assets.pop(name, None)

    def get(self, name: str) -> Optional[bytes]:
        with self._lock:
            return self._assets.get(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._assets)


class InMemorySoundEventRegistry:
    """Thread-safe SoundEventRegistry handing out stable integer indexes."""

    def __init__(self) -> None:
        self._indexes: dict[str, int] = {}
        self._descriptors: dict[str, SoundEventDescriptor] = {}
        self._next_index = 0
        self._lock = threading.Lock()

    def register(self, name: str, descriptor: SoundEventDescriptor) -> None:
        with self._lock:
            if name not in self._indexes:
                self._indexes[name] = self._next_index
                self._next_index += 1
            self._descriptors[name] = descriptor

    def index_of(self, name: str) -> Optional[int]:
        with self._lock:
            return self._indexes.get(name)

    def unregister(self, name: str) -> None:
        with self._lock:
            self._indexes.pop(name, None)
            self._descriptors.pop(name, None)

    def descriptor(self, name: str) -> Optional[SoundEventDescriptor]:
        with self._lock:
            return self._descriptors.get(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._indexes)


def chunk_event_name(track_id: str, index: int) -> str:
    """Sound event name for a chunk, e.g. Track_Ab12..._chunk_007."""
    return f"{track_id}_chunk_{index:03d}"


class AssetPublisher:
    """Turns chunk files on disk into registered assets and sound events."""

    def __init__(
        self,
        assets: AssetRegistry,
        sound_events: SoundEventRegistry,
        chunk_dir: Path,
        audio_extension: str = "ogg",
        sound_config: Optional[SoundEventConfig] = None,
    ):
        self.assets = assets
        self.sound_events = sound_events
        self.chunk_dir = chunk_dir
        self.audio_extension = audio_extension
        self.sound_config = sound_config or SoundEventConfig()

    def chunk_file(self, track_id: str, index: int) -> Path:
        name = chunk_event_name(track_id, index)
        return self.chunk_dir / f"{name}.{self.audio_extension}"

    def chunk_pattern(self, track_id: str) -> Path:
        """ffmpeg output pattern matching chunk_file()."""
        return self.chunk_dir / f"{track_id}_chunk_%03d.{self.audio_extension}"

    def chunk_asset_name(self, track_id: str, index: int) -> str:
        return SOUND_ASSET_PREFIX + self.chunk_file(track_id, index).name

    def count_chunks(self, track_id: str) -> int:
        """Count chunk files by probing sequential names until one is missing."""
        count = 0
        while self.chunk_file(track_id, count).exists():
            count += 1
        return count

    def build_descriptor(
        self, asset_name: str, volume_percent: float = DEFAULT_PERCENT
    ) -> SoundEventDescriptor:
        return SoundEventDescriptor(
            file_ref=asset_name,
            volume_db=percent_to_event_db(volume_percent),
            layer_volume_db=percent_to_layer_db(volume_percent),
            pitch=self.sound_config.pitch,
            max_distance=self.sound_config.max_distance,
            start_attenuation_distance=self.sound_config.start_attenuation_distance,
            category=self.sound_config.category,
        )

    def publish_range(self, track_id: str, start: int, end: int) -> int:
        """Register chunks [start, end) that are not registered yet.

        A chunk that fails to register is logged and skipped.

        Returns:
            Number of chunks newly registered
        """
        published = 0
        for index in range(start, end):
            event_name = chunk_event_name(track_id, index)
            asset_name = self.chunk_asset_name(track_id, index)
            try:
                if not self.assets.has_asset(asset_name):
                    data = self.chunk_file(track_id, index).read_bytes()
                    self.assets.register_named_asset(asset_name, data)
                if self.sound_events.index_of(event_name) is None:
                    self.sound_events.register(
                        event_name, self.build_descriptor(asset_name)
                    )
                    published += 1
            except (OSError, AssetRegistrationWarning) as e:
                logger.warning(f"Skipping chunk asset {event_name}: {e}")
        return published

    def is_published(self, track_id: str, chunk_count: int) -> bool:
        return all(
            self.sound_events.index_of(chunk_event_name(track_id, i)) is not None
            for i in range(chunk_count)
        )

    def publish_file(self, asset_name: str, path: Path) -> None:
        """Register an arbitrary file (e.g. a thumbnail) under asset_name."""
        if not self.assets.has_asset(asset_name):
            self.assets.register_named_asset(asset_name, path.read_bytes())

    def remove_track(self, track_id: str, chunk_count: int) -> int:
        """Unregister a track's chunk events and assets and delete chunk files.

        Returns:
            Number of chunk files deleted
        """
        deleted = 0
        count = max(chunk_count, self.count_chunks(track_id))
        for index in range(count):
            self.sound_events.unregister(chunk_event_name(track_id, index))
            self.assets.remove_asset_by_name(self.chunk_asset_name(track_id, index))
            path = self.chunk_file(track_id, index)
            if path.exists():
                path.unlink()
                deleted += 1
        logger.info(f"Removed {deleted} chunk files for {track_id}")
        return deleted
