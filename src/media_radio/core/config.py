"""
Configuration management for Media Radio
"""

import os
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class PathsConfig:
    """Configuration for on-disk locations."""

    data_dir: Optional[str] = None  # Default: ~/.local/share/media-radio

    def resolve_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return get_data_dir()


@dataclass
class AcquisitionConfig:
    """Configuration for the download/transcode/split pipeline."""

    workers: int = 4
    ffmpeg_path: str = "ffmpeg"
    audio_codec: str = "vorbis"  # yt-dlp FFmpegExtractAudio codec
    audio_extension: str = "ogg"
    initial_asset_batch: int = 100  # Chunks registered before the request completes
    background_asset_batch: int = 75
    background_asset_delay_ms: int = 750
    wait_for_full_assets: bool = True
    thumbnail_timeout_seconds: float = 15.0

    def validate(self) -> None:
        """Validate acquisition configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.initial_asset_batch < 1 or self.background_asset_batch < 1:
            raise ValueError("Asset batch sizes must be >= 1")
        if self.background_asset_delay_ms < 0:
            raise ValueError("background_asset_delay_ms must be >= 0")


@dataclass
class PlaybackConfig:
    """Configuration for chunked playback.

    chunk_duration_ms drives both the splitter's segment length and the
    scheduler's tick.
    """

    chunk_duration_ms: int = 750
    max_missing_asset_retries: int = 40
    missing_asset_retry_delay_ms: int = 500
    chunk_overlap_base_ms: int = 15
    chunk_overlap_max_ms: int = 120
    default_volume_percent: int = 100
    cleanup_idle_tracks: bool = False  # Drop chunk assets once no session uses a track

    @property
    def segment_seconds(self) -> float:
        return self.chunk_duration_ms / 1000.0

    def validate(self) -> None:
        """Validate playback configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.chunk_duration_ms < 100:
            raise ValueError(
                f"chunk_duration_ms must be >= 100, got {self.chunk_duration_ms}"
            )
        if self.max_missing_asset_retries < 0:
            raise ValueError("max_missing_asset_retries must be >= 0")
        if self.missing_asset_retry_delay_ms < 0:
            raise ValueError("missing_asset_retry_delay_ms must be >= 0")
        if self.chunk_overlap_base_ms < 0 or self.chunk_overlap_max_ms < 0:
            raise ValueError("Overlap settings must be >= 0")
        if self.chunk_overlap_max_ms >= self.chunk_duration_ms:
            raise ValueError(
                "chunk_overlap_max_ms must be smaller than chunk_duration_ms"
            )
        if not 0 <= self.default_volume_percent <= 200:
            raise ValueError(
                f"default_volume_percent must be 0-200, got {self.default_volume_percent}"
            )


@dataclass
class SoundEventConfig:
    """Defaults baked into every registered chunk sound event."""

    max_distance: float = 60.0
    start_attenuation_distance: float = 10.0
    category: str = "SFX_Attn_Quiet"
    pitch: float = 0.0


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/media-radio/media-radio.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of rotated files to keep
    console_output: bool = False  # Also output to stderr (for debugging)


@dataclass
class Config:
    """Main configuration object."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    acquisition: AcquisitionConfig = field(default_factory=AcquisitionConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    sound_events: SoundEventConfig = field(default_factory=SoundEventConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def data_dir(self) -> Path:
        return self.paths.resolve_data_dir()


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "media-radio"
    return Path.home() / ".config" / "media-radio"


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Current working directory
    2. XDG_CONFIG_HOME/media-radio (or ~/.config/media-radio)
    """
    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "media-radio"
    return Path.home() / ".local" / "share" / "media-radio"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Media Radio Configuration

[paths]
# Where downloaded audio, chunks, thumbnails and indexes live
# data_dir = "~/.local/share/media-radio"

[acquisition]
# Concurrent acquisition workers
workers = 4

# ffmpeg binary used for splitting and thumbnail conversion
ffmpeg_path = "ffmpeg"

# Audio codec/extension produced by yt-dlp
audio_codec = "vorbis"
audio_extension = "ogg"

# Chunks registered before a request completes, then background batches
initial_asset_batch = 100
background_asset_batch = 75
background_asset_delay_ms = 750

# Register every chunk before the request completes
wait_for_full_assets = true

thumbnail_timeout_seconds = 15.0

[playback]
# Length of each chunk; also the ffmpeg segment length
chunk_duration_ms = 750

# Missing chunk asset retries before a session is stopped
max_missing_asset_retries = 40
missing_asset_retry_delay_ms = 500

# Timers fire slightly early to hide scheduling lag
chunk_overlap_base_ms = 15
chunk_overlap_max_ms = 120

# Default volume (0-200)
default_volume_percent = 100

# Remove chunk assets when no session is playing a track
cleanup_idle_tracks = false

[sound_events]
max_distance = 60.0
start_attenuation_distance = 10.0
category = "SFX_Attn_Quiet"
pitch = 0.0

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/media-radio/media-radio.log)
# log_file = "/path/to/custom/media-radio.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of rotated log files to keep
backup_count = 5

# Also output logs to stderr (useful for debugging)
console_output = false
""".strip()


def _section(cls: type, data: Dict[str, Any], default: Any) -> Any:
    """Build a config section from TOML data, keeping defaults for missing keys."""
    values = {
        name: data.get(name, getattr(default, name))
        for name in (f.name for f in fields(default))
    }
    return cls(**values)


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - MEDIA_RADIO_DATA_DIR
    - MEDIA_RADIO_FFMPEG
    """
    # Load .env file from config directory if it exists
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    if config_path is None:
        config_path = get_config_path()

    config = Config()

    if not config_path.exists():
        # Create config directory and default file
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
    else:
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            print(f"Error loading config from {config_path}: {e}")
            print("Using default configuration.")
            toml_data = {}

        if "paths" in toml_data:
            config.paths = _section(PathsConfig, toml_data["paths"], config.paths)

        if "acquisition" in toml_data:
            config.acquisition = _section(
                AcquisitionConfig, toml_data["acquisition"], config.acquisition
            )
            try:
                config.acquisition.validate()
            except ValueError as e:
                print(f"Warning: Invalid acquisition configuration: {e}")
                print("Using default acquisition configuration.")
                config.acquisition = AcquisitionConfig()

        if "playback" in toml_data:
            config.playback = _section(
                PlaybackConfig, toml_data["playback"], config.playback
            )
            try:
                config.playback.validate()
            except ValueError as e:
                print(f"Warning: Invalid playback configuration: {e}")
                print("Using default playback configuration.")
                config.playback = PlaybackConfig()

        if "sound_events" in toml_data:
            config.sound_events = _section(
                SoundEventConfig, toml_data["sound_events"], config.sound_events
            )

        if "logging" in toml_data:
            config.logging = _section(
                LoggingConfig, toml_data["logging"], config.logging
            )
            config.logging.level = config.logging.level.upper()
            if config.logging.log_file:
                config.logging.log_file = str(
                    Path(config.logging.log_file).expanduser()
                )

    # Environment overrides
    data_dir_override = os.environ.get("MEDIA_RADIO_DATA_DIR")
    if data_dir_override:
        config.paths.data_dir = data_dir_override

    ffmpeg_override = os.environ.get("MEDIA_RADIO_FFMPEG")
    if ffmpeg_override:
        config.acquisition.ffmpeg_path = ffmpeg_override

    return config


def ensure_directories(config: Config) -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    config.data_dir.mkdir(parents=True, exist_ok=True)
