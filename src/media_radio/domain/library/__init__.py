"""
Library domain module.

Per-owner saved song lists with download/playback status.
"""

from .song_library import (
    STATUS_DOWNLOADING,
    STATUS_PLAYING,
    STATUS_READY,
    SavedSong,
    SongLibrary,
)

__all__ = [
    "STATUS_DOWNLOADING",
    "STATUS_PLAYING",
    "STATUS_READY",
    "SavedSong",
    "SongLibrary",
]
