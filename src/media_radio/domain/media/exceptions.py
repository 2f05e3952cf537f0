"""Media acquisition and playback exceptions."""

from typing import Optional


class MediaRadioError(Exception):
    """Base exception for Media Radio operations."""

    pass


class UnsupportedInputError(MediaRadioError):
    """Raised when a source URL is empty or cannot identify a track."""

    pass


class AcquisitionError(MediaRadioError):
    """Base exception for pipeline step failures.

    Carries the exit context of the external tool that caused it, when there
    was one.
    """

    def __init__(
        self, message: str, exit_code: Optional[int] = None, output: str = ""
    ):
        self.exit_code = exit_code
        self.output = output
        super().__init__(message)


class MetadataFetchError(AcquisitionError):
    """Raised when the metadata tool cannot run or cannot retrieve the page."""

    pass


class MetadataParseError(AcquisitionError):
    """Raised when the metadata tool's output is empty or malformed."""

    pass


class DownloadError(AcquisitionError):
    """Raised when the audio download fails or produces no file."""

    pass


class ChunkingError(AcquisitionError):
    """Raised when splitting audio into chunks fails or yields no chunks."""

    pass


class AssetRegistrationWarning(MediaRadioError):
    """Raised by registries for a single failed registration; never fatal."""

    pass


class MissingAssetRetryExceeded(MediaRadioError):
    """A chunk's sound event never became visible within the retry budget."""

    def __init__(self, event_name: str, attempts: int):
        self.event_name = event_name
        self.attempts = attempts
        super().__init__(
            f"Chunk asset {event_name} still missing after {attempts} attempts"
        )
