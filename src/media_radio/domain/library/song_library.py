"""Per-owner saved song lists, persisted as one JSON document."""

import json
import threading
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Optional

from loguru import logger

STATUS_DOWNLOADING = "Downloading"
STATUS_READY = "Ready"
STATUS_PLAYING = "Playing"


@dataclass(frozen=True)
class SavedSong:
    """A song in an owner's list."""

    url: str
    title: str = ""
    artist: str = ""
    thumbnail_url: str = ""
    track_id: str = ""
    thumbnail_asset_ref: str = ""
    duration_seconds: int = 0
    status: str = STATUS_READY  # 'Downloading' | 'Ready' | 'Playing'


class SongLibrary:
    """Thread-safe owner -> [SavedSong] store keyed by song URL."""

    def __init__(self, path: Path):
        self.path = path
        self._songs: dict[str, list[SavedSong]] = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, encoding="utf-8") as f:
                raw: dict[str, list[dict[str, Any]]] = json.load(f)
            self._songs = {
                owner: [SavedSong(**song) for song in songs]
                for owner, songs in raw.items()
            }
        except (OSError, json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Could not read song library {self.path}: {e}")

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(
                {
                    owner: [asdict(song) for song in songs]
                    for owner, songs in self._songs.items()
                },
                f,
                indent=2,
            )
        tmp_path.replace(self.path)

    def get_songs(self, owner_id: str) -> list[SavedSong]:
        with self._lock:
            return list(self._songs.get(owner_id, []))

    def find(self, owner_id: str, url: str) -> Optional[SavedSong]:
        with self._lock:
            return next(
                (s for s in self._songs.get(owner_id, []) if s.url == url), None
            )

    def upsert(self, owner_id: str, url: str, **fields: Any) -> SavedSong:
        """Create or update the owner's entry for url with the given fields."""
        with self._lock:
            songs = self._songs.setdefault(owner_id, [])
            for i, song in enumerate(songs):
                if song.url == url:
                    songs[i] = replace(song, **fields)
                    self._save()
                    return songs[i]
            song = SavedSong(url=url, **fields)
            songs.append(song)
            self._save()
            return song

    def set_status(self, owner_id: str, url: str, status: str) -> bool:
        with self._lock:
            songs = self._songs.get(owner_id, [])
            for i, song in enumerate(songs):
                if song.url == url:
                    songs[i] = replace(song, status=status)
                    self._save()
                    return True
            return False

    def remove(self, owner_id: str, url: str) -> bool:
        with self._lock:
            songs = self._songs.get(owner_id, [])
            remaining = [s for s in songs if s.url != url]
            if len(remaining) == len(songs):
                return False
            if remaining:
                self._songs[owner_id] = remaining
            else:
                self._songs.pop(owner_id, None)
            self._save()
            return True

    def is_referenced(self, url: str, excluding_owner: Optional[str] = None) -> bool:
        """True if any owner (other than excluding_owner) still saves url."""
        with self._lock:
            return any(
                song.url == url
                for owner, songs in self._songs.items()
                if owner != excluding_owner
                for song in songs
            )
