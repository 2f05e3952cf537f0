"""Track identity: URL normalization and deterministic TrackId derivation."""

import hashlib
import re
from urllib.parse import parse_qs, urlparse

from .exceptions import UnsupportedInputError

TRACK_ID_PREFIX = "Track_"
TRACK_ID_HASH_LENGTH = 16

_YOUTUBE_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"}
_YOUTU_BE_HOSTS = {"youtu.be", "www.youtu.be"}
_VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{6,}$")


def _youtube_video_id(url: str) -> str | None:
    """Extract a YouTube video ID from the common URL shapes.

    Handles watch?v=ID, /shorts/ID, /embed/ID, /live/ID and youtu.be/ID.
    """
    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = (parsed.hostname or "").lower()
    segments = [s for s in parsed.path.split("/") if s]

    candidate = None
    if host in _YOUTU_BE_HOSTS and segments:
        candidate = segments[0]
    elif host in _YOUTUBE_HOSTS:
        if parsed.path == "/watch":
            candidate = parse_qs(parsed.query).get("v", [None])[0]
        elif len(segments) >= 2 and segments[0] in ("shorts", "embed", "live"):
            candidate = segments[1]

    if candidate and _VIDEO_ID_PATTERN.match(candidate):
        return candidate
    return None


def normalize_url(url: str) -> str:
    """Normalize a source URL so equivalent links share one identity.

    YouTube links collapse to https://youtu.be/<id>; anything else is only
    trimmed.

    Example:
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42" -> "https://youtu.be/dQw4w9WgXcQ"
    """
    trimmed = url.strip()
    video_id = _youtube_video_id(trimmed)
    if video_id:
        return f"https://youtu.be/{video_id}"
    return trimmed


def resolve_track_id(source_url: str | None) -> str:
    """Map a source URL to its stable TrackId.

    Args:
        source_url: Any non-empty URL string (normalized before hashing)

    Returns:
        "Track_" followed by the first 16 hex chars of SHA-256(normalized URL),
        first char upper-cased

    Raises:
        UnsupportedInputError: If the URL is None, empty, or whitespace
    """
    if source_url is None or not source_url.strip():
        raise UnsupportedInputError("Source URL is empty")

    normalized = normalize_url(source_url)
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()
    short = digest[:TRACK_ID_HASH_LENGTH]
    return TRACK_ID_PREFIX + short[0].upper() + short[1:]


def detect_source_kind(url: str) -> str:
    """Classify a URL as youtube, soundcloud or generic web."""
    parsed = urlparse(url.strip() if "://" in url else f"https://{url.strip()}")
    host = (parsed.hostname or "").lower()
    if host in _YOUTUBE_HOSTS or host in _YOUTU_BE_HOSTS:
        return "youtube"
    if host == "soundcloud.com" or host.endswith(".soundcloud.com"):
        return "soundcloud"
    return "web"
