"""Persistent song index: TrackId -> LibraryEntry, stored as JSON."""

import json
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from .models import LibraryEntry


class SongIndex:
    """Thread-safe JSON-backed map of pipeline bookkeeping entries.

    The file is rewritten atomically on every mutation.
    """

    def __init__(self, path: Path):
        self.path = path
        self._entries: dict[str, LibraryEntry] = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read song index {self.path}: {e}")
            return

        for track_id, data in raw.items():
            try:
                self._entries[track_id] = LibraryEntry.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping malformed index entry {track_id}: {e}")

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(
                {tid: entry.to_dict() for tid, entry in self._entries.items()},
                f,
                indent=2,
            )
        tmp_path.replace(self.path)

    def get(self, track_id: str) -> Optional[LibraryEntry]:
        with self._lock:
            return self._entries.get(track_id)

    def put(self, entry: LibraryEntry) -> None:
        with self._lock:
            self._entries[entry.track_id] = entry
            self._save()

    def remove(self, track_id: str) -> bool:
        with self._lock:
            if self._entries.pop(track_id, None) is None:
                return False
            self._save()
            return True

    def __contains__(self, track_id: str) -> bool:
        with self._lock:
            return track_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
