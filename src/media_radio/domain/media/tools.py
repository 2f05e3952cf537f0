"""External tool adapters: yt-dlp for metadata/audio, ffmpeg for splitting.

Each adapter satisfies a small protocol so the pipeline can be driven by fakes
in tests and by alternative tools in deployments.
"""

import mimetypes
import subprocess
from pathlib import Path
from typing import Any, Optional, Protocol
from urllib.parse import urlparse

import requests
import yt_dlp
from loguru import logger

from .exceptions import (
    AcquisitionError,
    ChunkingError,
    DownloadError,
    MetadataFetchError,
    MetadataParseError,
)
from .models import UNKNOWN_ARTIST, UNKNOWN_TITLE, TrackMetadata

# Trailing tool output kept on exceptions
_OUTPUT_TAIL_CHARS = 2000


class MetadataFetcher(Protocol):
    def fetch(self, url: str) -> TrackMetadata: ...


class AudioDownloader(Protocol):
    def download(self, url: str, output_stem: Path) -> Path: ...


class AudioSplitter(Protocol):
    def split(
        self, audio_file: Path, output_pattern: Path, segment_seconds: float
    ) -> None: ...


class ThumbnailFetcher(Protocol):
    def fetch(self, url: str, output_stem: Path) -> Path: ...


class ImageConverter(Protocol):
    def convert(self, source: Path, destination: Path) -> None: ...


def run_tool(
    command: list[str], error_cls: type[AcquisitionError], description: str
) -> subprocess.CompletedProcess:
    """Run an external command, mapping failures to error_cls.

    Args:
        command: Argument vector; command[0] is the binary
        error_cls: Exception raised on a missing binary or non-zero exit
        description: Human-readable step name for messages

    Returns:
        The completed process (exit code 0)

    Raises:
        AcquisitionError subclass: If the binary is missing or exits non-zero
    """
    logger.debug(f"Running {description}: {' '.join(command)}")
    try:
        result = subprocess.run(command, capture_output=True, text=True, check=False)
    except FileNotFoundError as e:
        raise error_cls(f"{description} failed: {command[0]} not found") from e
    except OSError as e:
        raise error_cls(f"{description} failed to start: {e}") from e

    if result.returncode != 0:
        output = (result.stderr or result.stdout or "")[-_OUTPUT_TAIL_CHARS:]
        raise error_cls(
            f"{description} exited with code {result.returncode}",
            exit_code=result.returncode,
            output=output,
        )
    return result


def parse_metadata(info: Any) -> TrackMetadata:
    """Convert a yt-dlp info dict into TrackMetadata.

    Raises:
        MetadataParseError: If info is not a dict or duration is not numeric
    """
    if not isinstance(info, dict):
        raise MetadataParseError("Metadata tool returned no information")

    raw_duration = info.get("duration")
    try:
        duration = int(float(raw_duration)) if raw_duration is not None else 0
    except (TypeError, ValueError) as e:
        raise MetadataParseError(f"Invalid duration: {raw_duration!r}") from e

    return TrackMetadata(
        title=info.get("title") or UNKNOWN_TITLE,
        artist=info.get("uploader") or info.get("artist") or UNKNOWN_ARTIST,
        thumbnail_url=info.get("thumbnail") or "",
        duration_seconds=max(0, duration),
    )


class YtDlpMetadataFetcher:
    """Fetch track metadata with yt-dlp without downloading media."""

    def __init__(self, extra_options: Optional[dict] = None):
        self.extra_options = extra_options or {}

    def fetch(self, url: str) -> TrackMetadata:
        ydl_opts = {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "skip_download": True,
            **self.extra_options,
        }
        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(url, download=False)
        except yt_dlp.utils.DownloadError as e:
            error_msg = str(e)
            if "403" in error_msg:
                raise MetadataFetchError(
                    "Metadata request was refused (HTTP 403); yt-dlp may need updating",
                    output=error_msg,
                ) from e
            raise MetadataFetchError(
                f"Metadata fetch failed: {e}", output=error_msg
            ) from e

        metadata = parse_metadata(info)
        logger.info(
            f"Resolved metadata: {metadata.title} by {metadata.artist} "
            f"({metadata.duration_seconds}s)"
        )
        return metadata


class YtDlpAudioDownloader:
    """Download best audio with yt-dlp and transcode it via FFmpegExtractAudio."""

    def __init__(
        self,
        codec: str = "vorbis",
        extension: str = "ogg",
        ffmpeg_location: Optional[str] = None,
        extra_options: Optional[dict] = None,
    ):
        self.codec = codec
        self.extension = extension
        self.ffmpeg_location = ffmpeg_location
        self.extra_options = extra_options or {}

    def download(self, url: str, output_stem: Path) -> Path:
        """Download url to <output_stem>.<extension>.

        Raises:
            DownloadError: On tool failure or when no output file appears
        """
        output_stem.parent.mkdir(parents=True, exist_ok=True)
        ydl_opts = {
            "format": "bestaudio/best",
            "outtmpl": f"{output_stem}.%(ext)s",
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "postprocessors": [
                {
                    "key": "FFmpegExtractAudio",
                    "preferredcodec": self.codec,
                    "preferredquality": "0",
                }
            ],
            **self.extra_options,
        }
        if self.ffmpeg_location:
            ydl_opts["ffmpeg_location"] = self.ffmpeg_location

        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                ydl.download([url])
        except yt_dlp.utils.DownloadError as e:
            raise DownloadError(f"Download failed: {e}", output=str(e)) from e

        expected = output_stem.parent / f"{output_stem.name}.{self.extension}"
        if not expected.exists():
            raise DownloadError(f"Download completed but {expected.name} not found")

        logger.info(f"Downloaded audio: {url} -> {expected}")
        return expected


class FfmpegSplitter:
    """Split audio into fixed-length segments with ffmpeg's segment muxer."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path

    def split(
        self, audio_file: Path, output_pattern: Path, segment_seconds: float
    ) -> None:
        output_pattern.parent.mkdir(parents=True, exist_ok=True)
        command = [
            self.ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-i",
            str(audio_file),
            "-map",
            "0:a:0",
            "-f",
            "segment",
            "-segment_time",
            f"{segment_seconds:.3f}",
            "-reset_timestamps",
            "1",
            "-c",
            "copy",
            str(output_pattern),
        ]
        run_tool(command, ChunkingError, "ffmpeg split")


class HttpThumbnailFetcher:
    """Download a thumbnail image over HTTP."""

    def __init__(
        self, timeout: float = 15.0, session: Optional[requests.Session] = None
    ):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, url: str, output_stem: Path) -> Path:
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()

        content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        extension = (
            mimetypes.guess_extension(content_type)
            or Path(urlparse(url).path).suffix
            or ".jpg"
        )
        if extension == ".jpe":
            extension = ".jpg"

        output_stem.parent.mkdir(parents=True, exist_ok=True)
        path = output_stem.parent / f"{output_stem.name}{extension}"
        path.write_bytes(response.content)
        return path


class FfmpegImageConverter:
    """Convert an image to PNG (or whatever destination's suffix implies)."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path

    def convert(self, source: Path, destination: Path) -> None:
        command = [
            self.ffmpeg_path,
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-i",
            str(source),
            "-frames:v",
            "1",
            str(destination),
        ]
        run_tool(command, AcquisitionError, "ffmpeg thumbnail conversion")
