"""Tests for the yt-dlp / ffmpeg / HTTP tool adapters."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yt_dlp

from media_radio.domain.media.exceptions import (
    AcquisitionError,
    ChunkingError,
    DownloadError,
    MetadataFetchError,
    MetadataParseError,
)
from media_radio.domain.media.tools import (
    FfmpegSplitter,
    HttpThumbnailFetcher,
    YtDlpAudioDownloader,
    YtDlpMetadataFetcher,
    parse_metadata,
    run_tool,
)


def _mock_ydl(mock_cls: MagicMock) -> MagicMock:
    """Make patched YoutubeDL usable as a context manager; return the instance."""
    instance = MagicMock()
    mock_cls.return_value.__enter__.return_value = instance
    return instance


class TestRunTool:
    """Tests for run_tool function."""

    @patch("media_radio.domain.media.tools.subprocess.run")
    def test_success_returns_process(self, mock_run: MagicMock) -> None:
        mock_run.return_value = subprocess.CompletedProcess(["ffmpeg"], 0, "", "")

        result = run_tool(["ffmpeg", "-version"], ChunkingError, "ffmpeg")

        assert result.returncode == 0

    @patch("media_radio.domain.media.tools.subprocess.run")
    def test_nonzero_exit_raises_with_context(self, mock_run: MagicMock) -> None:
        """Exit code and stderr tail are carried on the exception."""
        mock_run.return_value = subprocess.CompletedProcess(
            ["ffmpeg"], 1, "", "Invalid data found"
        )

        with pytest.raises(ChunkingError) as exc_info:
            run_tool(["ffmpeg", "-i", "x"], ChunkingError, "ffmpeg split")

        assert exc_info.value.exit_code == 1
        assert "Invalid data found" in exc_info.value.output

    @patch("media_radio.domain.media.tools.subprocess.run")
    def test_missing_binary_raises(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = FileNotFoundError("ffmpeg")

        with pytest.raises(ChunkingError, match="not found"):
            run_tool(["ffmpeg"], ChunkingError, "ffmpeg split")


class TestFfmpegSplitter:
    """Tests for FfmpegSplitter."""

    @patch("media_radio.domain.media.tools.subprocess.run")
    def test_segment_command(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """Segments are cut by stream copy at the requested length."""
        mock_run.return_value = subprocess.CompletedProcess([], 0, "", "")
        pattern = tmp_path / "chunks" / "Track_X_chunk_%03d.ogg"

        FfmpegSplitter("/opt/ffmpeg").split(tmp_path / "in.ogg", pattern, 0.75)

        command = mock_run.call_args.args[0]
        assert command[0] == "/opt/ffmpeg"
        assert command[command.index("-segment_time") + 1] == "0.750"
        assert command[command.index("-c") + 1] == "copy"
        assert command[-1] == str(pattern)
        assert pattern.parent.exists()


class TestParseMetadata:
    """Tests for parse_metadata function."""

    def test_full_info(self) -> None:
        metadata = parse_metadata(
            {
                "title": "Sandstorm",
                "uploader": "Darude",
                "thumbnail": "https://img/t.jpg",
                "duration": 225.4,
            }
        )
        assert metadata.title == "Sandstorm"
        assert metadata.artist == "Darude"
        assert metadata.thumbnail_url == "https://img/t.jpg"
        assert metadata.duration_seconds == 225

    def test_missing_fields_use_defaults(self) -> None:
        metadata = parse_metadata({})
        assert metadata.title == "Unknown Title"
        assert metadata.artist == "Unknown Artist"
        assert metadata.thumbnail_url == ""
        assert metadata.duration_seconds == 0

    def test_non_numeric_duration(self) -> None:
        with pytest.raises(MetadataParseError):
            parse_metadata({"duration": "live"})

    def test_not_a_dict(self) -> None:
        with pytest.raises(MetadataParseError):
            parse_metadata(None)


class TestYtDlpMetadataFetcher:
    """Tests for YtDlpMetadataFetcher."""

    @patch("media_radio.domain.media.tools.yt_dlp.YoutubeDL")
    def test_fetch(self, mock_ydl_cls: MagicMock) -> None:
        ydl = _mock_ydl(mock_ydl_cls)
        ydl.extract_info.return_value = {"title": "Song", "uploader": "Me", "duration": 61}

        metadata = YtDlpMetadataFetcher().fetch("https://youtu.be/abcdefghijk")

        assert metadata.title == "Song"
        assert metadata.duration_seconds == 61
        ydl.extract_info.assert_called_once_with(
            "https://youtu.be/abcdefghijk", download=False
        )

    @patch("media_radio.domain.media.tools.yt_dlp.YoutubeDL")
    def test_download_error_maps_to_fetch_error(self, mock_ydl_cls: MagicMock) -> None:
        ydl = _mock_ydl(mock_ydl_cls)
        ydl.extract_info.side_effect = yt_dlp.utils.DownloadError("Video unavailable")

        with pytest.raises(MetadataFetchError):
            YtDlpMetadataFetcher().fetch("https://youtu.be/abcdefghijk")

    @patch("media_radio.domain.media.tools.yt_dlp.YoutubeDL")
    def test_forbidden_gets_hint(self, mock_ydl_cls: MagicMock) -> None:
        ydl = _mock_ydl(mock_ydl_cls)
        ydl.extract_info.side_effect = yt_dlp.utils.DownloadError(
            "HTTP Error 403: Forbidden"
        )

        with pytest.raises(MetadataFetchError, match="403"):
            YtDlpMetadataFetcher().fetch("https://youtu.be/abcdefghijk")

    @patch("media_radio.domain.media.tools.yt_dlp.YoutubeDL")
    def test_empty_info_is_parse_error(self, mock_ydl_cls: MagicMock) -> None:
        ydl = _mock_ydl(mock_ydl_cls)
        ydl.extract_info.return_value = None

        with pytest.raises(MetadataParseError):
            YtDlpMetadataFetcher().fetch("https://youtu.be/abcdefghijk")


class TestYtDlpAudioDownloader:
    """Tests for YtDlpAudioDownloader."""

    @patch("media_radio.domain.media.tools.yt_dlp.YoutubeDL")
    def test_download_returns_expected_file(
        self, mock_ydl_cls: MagicMock, tmp_path: Path
    ) -> None:
        ydl = _mock_ydl(mock_ydl_cls)
        stem = tmp_path / "Track_A"
        ydl.download.side_effect = lambda urls: (tmp_path / "Track_A.ogg").write_bytes(
            b"audio"
        )

        path = YtDlpAudioDownloader().download("https://youtu.be/abcdefghijk", stem)

        assert path == tmp_path / "Track_A.ogg"
        options = mock_ydl_cls.call_args.args[0]
        assert options["outtmpl"] == f"{stem}.%(ext)s"
        assert options["postprocessors"][0]["preferredcodec"] == "vorbis"

    @patch("media_radio.domain.media.tools.yt_dlp.YoutubeDL")
    def test_missing_output_raises(self, mock_ydl_cls: MagicMock, tmp_path: Path) -> None:
        _mock_ydl(mock_ydl_cls)

        with pytest.raises(DownloadError, match="not found"):
            YtDlpAudioDownloader().download("https://youtu.be/x", tmp_path / "Track_B")

    @patch("media_radio.domain.media.tools.yt_dlp.YoutubeDL")
    def test_tool_failure_raises(self, mock_ydl_cls: MagicMock, tmp_path: Path) -> None:
        ydl = _mock_ydl(mock_ydl_cls)
        ydl.download.side_effect = yt_dlp.utils.DownloadError("network down")

        with pytest.raises(DownloadError):
            YtDlpAudioDownloader().download("https://youtu.be/x", tmp_path / "Track_C")


class TestHttpThumbnailFetcher:
    """Tests for HttpThumbnailFetcher."""

    def test_writes_file_with_content_type_extension(self, tmp_path: Path) -> None:
        session = MagicMock()
        response = session.get.return_value
        response.headers = {"Content-Type": "image/png"}
        response.content = b"\x89PNG"

        path = HttpThumbnailFetcher(session=session).fetch(
            "https://img.example/t", tmp_path / "Track_A_src"
        )

        assert path == tmp_path / "Track_A_src.png"
        assert path.read_bytes() == b"\x89PNG"
        response.raise_for_status.assert_called_once()

    def test_http_error_propagates(self, tmp_path: Path) -> None:
        import requests

        session = MagicMock()
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("404")

        with pytest.raises(requests.HTTPError):
            HttpThumbnailFetcher(session=session).fetch(
                "https://img.example/t.jpg", tmp_path / "Track_A_src"
            )


class TestExceptions:
    """Tests for the acquisition exception hierarchy."""

    @pytest.mark.parametrize(
        "error_cls",
        [MetadataFetchError, MetadataParseError, DownloadError, ChunkingError],
    )
    def test_step_errors_inherit(self, error_cls: type) -> None:
        with pytest.raises(AcquisitionError):
            raise error_cls("failed", exit_code=2, output="tail")
