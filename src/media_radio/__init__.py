"""Media Radio: chunked playback of remote audio as short sound events."""

__version__ = "0.1.0"
