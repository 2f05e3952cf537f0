"""Tests for track identity resolution."""

import pytest

from media_radio.domain.media.exceptions import UnsupportedInputError
from media_radio.domain.media.identity import (
    detect_source_kind,
    normalize_url,
    resolve_track_id,
)


class TestNormalizeUrl:
    """Tests for normalize_url function."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtube.com/watch?v=dQw4w9WgXcQ&t=42s",
            "https://m.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
            "https://www.youtube.com/shorts/dQw4w9WgXcQ",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ?si=abc",
            "youtu.be/dQw4w9WgXcQ",
            "  https://youtu.be/dQw4w9WgXcQ  ",
        ],
    )
    def test_youtube_forms_collapse(self, url: str) -> None:
        """Every YouTube link shape normalizes to the short form."""
        assert normalize_url(url) == "https://youtu.be/dQw4w9WgXcQ"

    def test_other_urls_only_trimmed(self) -> None:
        """Non-YouTube URLs are returned trimmed and otherwise untouched."""
        assert (
            normalize_url("  https://soundcloud.com/artist/track?in=x  ")
            == "https://soundcloud.com/artist/track?in=x"
        )

    def test_youtube_without_video_id_untouched(self) -> None:
        """A YouTube URL with no video ID is not rewritten."""
        url = "https://www.youtube.com/feed/subscriptions"
        assert normalize_url(url) == url


class TestResolveTrackId:
    """Tests for resolve_track_id function."""

    def test_known_digest(self) -> None:
        """TrackId is Track_ + first 16 hex chars of SHA-256."""
        assert resolve_track_id("https://youtu.be/dQw4w9WgXcQ") == "Track_61e610a9d7fd37bc"

    def test_first_char_capitalized(self) -> None:
        """A leading hex letter is upper-cased."""
        assert resolve_track_id("https://example.com/a.mp3") == "Track_F0494a592230c989"

    def test_deterministic(self) -> None:
        """Repeated calls with the same URL return the same TrackId."""
        url = "https://example.com/b.mp3"
        assert resolve_track_id(url) == resolve_track_id(url)

    def test_equivalent_urls_share_id(self) -> None:
        """Different spellings of one video resolve to one TrackId."""
        assert resolve_track_id(
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        ) == resolve_track_id("https://youtu.be/dQw4w9WgXcQ")

    def test_different_urls_differ(self) -> None:
        """Different sources produce different TrackIds."""
        assert resolve_track_id("https://example.com/c.mp3") != resolve_track_id(
            "https://example.com/d.mp3"
        )

    def test_format(self) -> None:
        """TrackId has the prefix plus 16 hash characters."""
        track_id = resolve_track_id("https://soundcloud.com/artist/track")
        assert track_id.startswith("Track_")
        assert len(track_id) == len("Track_") + 16

    @pytest.mark.parametrize("url", [None, "", "   "])
    def test_empty_input_rejected(self, url) -> None:
        """None, empty and blank URLs raise UnsupportedInputError."""
        with pytest.raises(UnsupportedInputError):
            resolve_track_id(url)


class TestDetectSourceKind:
    """Tests for detect_source_kind function."""

    def test_youtube(self) -> None:
        assert detect_source_kind("https://youtu.be/dQw4w9WgXcQ") == "youtube"
        assert detect_source_kind("https://music.youtube.com/watch?v=x") == "youtube"

    def test_soundcloud(self) -> None:
        assert detect_source_kind("https://soundcloud.com/a/b") == "soundcloud"
        assert detect_source_kind("https://m.soundcloud.com/a/b") == "soundcloud"

    def test_generic_web(self) -> None:
        assert detect_source_kind("https://example.com/song.mp3") == "web"
