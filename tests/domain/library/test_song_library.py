"""Tests for per-owner saved song lists."""

from pathlib import Path

import pytest

from media_radio.domain.library import (
    STATUS_DOWNLOADING,
    STATUS_PLAYING,
    STATUS_READY,
    SongLibrary,
)

URL = "https://youtu.be/dQw4w9WgXcQ"


@pytest.fixture
def library(tmp_path: Path) -> SongLibrary:
    return SongLibrary(tmp_path / "songs.json")


class TestSongLibrary:
    """Tests for SongLibrary."""

    def test_upsert_creates(self, library: SongLibrary) -> None:
        song = library.upsert("alice", URL, status=STATUS_DOWNLOADING)

        assert song.url == URL
        assert song.status == STATUS_DOWNLOADING
        assert library.get_songs("alice") == [song]

    def test_upsert_updates_in_place(self, library: SongLibrary) -> None:
        library.upsert("alice", "https://example.com/first.mp3")
        library.upsert("alice", URL, status=STATUS_DOWNLOADING)

        library.upsert("alice", URL, title="Never Gonna", status=STATUS_READY)

        songs = library.get_songs("alice")
        assert [s.url for s in songs] == ["https://example.com/first.mp3", URL]
        assert songs[1].title == "Never Gonna"
        assert songs[1].status == STATUS_READY

    def test_set_status(self, library: SongLibrary) -> None:
        library.upsert("alice", URL)

        assert library.set_status("alice", URL, STATUS_PLAYING)
        assert library.find("alice", URL).status == STATUS_PLAYING
        assert not library.set_status("bob", URL, STATUS_PLAYING)

    def test_remove(self, library: SongLibrary) -> None:
        library.upsert("alice", URL)

        assert library.remove("alice", URL)
        assert not library.remove("alice", URL)
        assert library.get_songs("alice") == []

    def test_is_referenced(self, library: SongLibrary) -> None:
        library.upsert("alice", URL)
        library.upsert("bob", URL)

        assert library.is_referenced(URL)
        assert library.is_referenced(URL, excluding_owner="alice")

        library.remove("bob", URL)
        assert not library.is_referenced(URL, excluding_owner="alice")

    def test_persists(self, tmp_path: Path) -> None:
        path = tmp_path / "songs.json"
        SongLibrary(path).upsert("alice", URL, title="Song", duration_seconds=212)

        song = SongLibrary(path).find("alice", URL)

        assert song.title == "Song"
        assert song.duration_seconds == 212

    def test_corrupt_file_starts_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "songs.json"
        path.write_text("[broken")
        assert SongLibrary(path).get_songs("alice") == []
