"""
Playback domain module.

Chunked playback: per-target session state machines driven by a scheduler
that triggers one registered sound event per chunk.
"""

from .emitter import LoggingSoundEmitter, SoundEmitter
from .scheduler import PlaybackScheduler, PlaybackStatus, SessionEndedHook
from .session import (
    AdvanceResult,
    BlockPosition,
    ListenerRef,
    PlaybackSession,
    PlaybackTarget,
    SessionState,
    monotonic_ms,
)
from .timers import ThreadingTimerService, TimerService, create_world_executor

__all__ = [
    "LoggingSoundEmitter",
    "SoundEmitter",
    "PlaybackScheduler",
    "PlaybackStatus",
    "SessionEndedHook",
    "AdvanceResult",
    "BlockPosition",
    "ListenerRef",
    "PlaybackSession",
    "PlaybackTarget",
    "SessionState",
    "monotonic_ms",
    "ThreadingTimerService",
    "TimerService",
    "create_world_executor",
]
