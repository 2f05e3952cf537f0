"""
Playback session: the per-listener chunk playback state machine.

States are STOPPED (initial), PLAYING and PAUSED. Elapsed time is anchored to a
millisecond clock rather than counted tick by tick.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from media_radio.domain.media.assets import chunk_event_name

Clock = Callable[[], int]


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class SessionState(Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


class AdvanceResult(Enum):
    MORE_CHUNKS = "more_chunks"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class BlockPosition:
    """A fixed point in the world that emits sound."""

    x: int
    y: int
    z: int

    @property
    def key(self) -> str:
        return f"{self.x},{self.y},{self.z}"


@dataclass(frozen=True)
class ListenerRef:
    """A user that hears sound wherever they are."""

    listener_id: str
    name: str = ""

    @property
    def key(self) -> str:
        return self.listener_id


PlaybackTarget = Union[BlockPosition, ListenerRef]


class PlaybackSession:
    """Mutable playback state for one target.

    Owned by the scheduler; callers mutate it while holding ``lock``.
    """

    def __init__(
        self,
        track_id: str,
        target: PlaybackTarget,
        total_chunks: int,
        chunk_duration_ms: int,
        duration_seconds: int = 0,
        title: str = "",
        artist: str = "",
        thumbnail_asset_ref: str = "",
        source_url: str = "",
        volume_db: float = 0.0,
        clock: Optional[Clock] = None,
    ):
        self.track_id = track_id
        self.target = target
        self.total_chunks = max(0, total_chunks)
        self.chunk_duration_ms = chunk_duration_ms
        self.total_duration_ms = (
            duration_seconds * 1000
            if duration_seconds > 0
            else self.total_chunks * chunk_duration_ms
        )
        self.title = title
        self.artist = artist
        self.thumbnail_asset_ref = thumbnail_asset_ref
        self.source_url = source_url
        self.volume_db = volume_db
        self.loop_enabled = False
        self.lock = threading.RLock()

        self._clock = clock or monotonic_ms
        self._state = SessionState.STOPPED
        self._paused_by_user = False
        self._current_chunk = 0
        self._chunk_start_ms = 0
        self._paused_offset_ms = 0
        self._pending_seek = False
        self._missing_asset_retries = 0
        self._last_schedule_lag_ms = 0
        self._pending_timer: Optional[Any] = None
        self._timer_generation = 0

    # ------------------------------------------------------------------ state

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is SessionState.PLAYING

    @property
    def is_paused(self) -> bool:
        return self._state is SessionState.PAUSED

    @property
    def is_stopped(self) -> bool:
        return self._state is SessionState.STOPPED

    @property
    def paused_by_user(self) -> bool:
        return self._paused_by_user

    @property
    def current_chunk(self) -> int:
        return self._current_chunk

    @property
    def chunk_start_ms(self) -> int:
        return self._chunk_start_ms

    @property
    def is_listener_bound(self) -> bool:
        return isinstance(self.target, ListenerRef)

    def current_event_name(self) -> str:
        return chunk_event_name(self.track_id, self._current_chunk)

    # ------------------------------------------------------------------ transitions

    def play(self) -> None:
        """Start from STOPPED or resume from PAUSED; no-op while PLAYING."""
        now = self._clock()
        if self._state is SessionState.STOPPED:
            if self._pending_seek:
                self._chunk_start_ms = now - self._paused_offset_ms
                self._pending_seek = False
            else:
                self._current_chunk = 0
                self._chunk_start_ms = now
            self._paused_offset_ms = 0
            self._missing_asset_retries = 0
            self._last_schedule_lag_ms = 0
        elif self._state is SessionState.PAUSED:
            self._chunk_start_ms = now - self._paused_offset_ms
            self._paused_offset_ms = 0
        else:
            return
        self._state = SessionState.PLAYING
        self._paused_by_user = False

    def pause(self, by_user: bool = False) -> None:
        """Freeze the in-chunk offset; only meaningful while PLAYING."""
        if self._state is not SessionState.PLAYING:
            return
        self._paused_offset_ms = max(0, self._clock() - self._chunk_start_ms)
        self._state = SessionState.PAUSED
        self._paused_by_user = by_user
        self.cancel_pending_timer()

    def stop(self) -> None:
        self._state = SessionState.STOPPED
        self._paused_by_user = False
        self._current_chunk = 0
        self._chunk_start_ms = 0
        self._paused_offset_ms = 0
        self._pending_seek = False
        self._missing_asset_retries = 0
        self._last_schedule_lag_ms = 0
        self.cancel_pending_timer()

    def advance_chunk(self) -> AdvanceResult:
        """Move to the next chunk, wrapping when looping.

        Returns EXHAUSTED (and stops) after the last chunk without loop, and
        EXHAUSTED without any change when not playing.
        """
        if self._state is not SessionState.PLAYING:
            return AdvanceResult.EXHAUSTED

        if self._current_chunk < self.total_chunks - 1:
            self._current_chunk += 1
        elif self.loop_enabled and self.total_chunks > 0:
            self._current_chunk = 0
        else:
            self.stop()
            return AdvanceResult.EXHAUSTED

        self._chunk_start_ms = self._clock()
        return AdvanceResult.MORE_CHUNKS

    def seek_to_ms(self, target_ms: int) -> None:
        """Jump to target_ms, clamped into [0, total_duration_ms - 1]."""
        if self.total_chunks == 0 or self.chunk_duration_ms <= 0:
            return
        target_ms = min(max(0, int(target_ms)), max(0, self.total_duration_ms - 1))
        chunk = min(target_ms // self.chunk_duration_ms, self.total_chunks - 1)
        offset = target_ms - chunk * self.chunk_duration_ms

        self._current_chunk = chunk
        if self._state is SessionState.PLAYING:
            self._chunk_start_ms = self._clock() - offset
        else:
            self._paused_offset_ms = offset
            self._pending_seek = self._state is SessionState.STOPPED

    def seek_to_chunk(self, index: int) -> None:
        self.seek_to_ms(index * self.chunk_duration_ms)

    def mark_chunk_start(self) -> None:
        self._chunk_start_ms = self._clock()

    # ------------------------------------------------------------------ position

    def position_ms(self) -> int:
        if self._state is SessionState.STOPPED:
            return 0
        if self._state is SessionState.PAUSED:
            in_chunk = self._paused_offset_ms
        else:
            in_chunk = max(0, self._clock() - self._chunk_start_ms)
        position = self._current_chunk * self.chunk_duration_ms + in_chunk
        return min(position, self.total_duration_ms)

    def progress(self) -> float:
        if self.total_duration_ms <= 0:
            return 0.0
        return min(1.0, max(0.0, self.position_ms() / self.total_duration_ms))

    # ------------------------------------------------------------------ retries / lag

    @property
    def missing_asset_retries(self) -> int:
        return self._missing_asset_retries

    def increment_missing_asset_retries(self) -> int:
        self._missing_asset_retries += 1
        return self._missing_asset_retries

    def reset_missing_asset_retries(self) -> None:
        self._missing_asset_retries = 0

    @property
    def last_schedule_lag_ms(self) -> int:
        return self._last_schedule_lag_ms

    @last_schedule_lag_ms.setter
    def last_schedule_lag_ms(self, value: int) -> None:
        self._last_schedule_lag_ms = max(0, int(value))

    # ------------------------------------------------------------------ timers

    @property
    def pending_timer(self) -> Optional[Any]:
        return self._pending_timer

    @property
    def timer_generation(self) -> int:
        return self._timer_generation

    def next_timer_generation(self) -> int:
        """Invalidate callbacks armed so far and return the new generation."""
        self._timer_generation += 1
        return self._timer_generation

    def set_pending_timer(self, handle: Optional[Any]) -> None:
        """Replace the pending timer, cancelling the previous one."""
        previous = self._pending_timer
        if previous is not None and previous is not handle:
            previous.cancel()
        self._pending_timer = handle

    def clear_pending_timer(self) -> None:
        """Forget the pending timer without cancelling it (it has fired)."""
        self._pending_timer = None

    def cancel_pending_timer(self) -> None:
        self.next_timer_generation()
        self.set_pending_timer(None)

    def __repr__(self) -> str:
        return (
            f"PlaybackSession({self.track_id}, target={self.target}, "
            f"state={self._state.value}, chunk={self._current_chunk}/{self.total_chunks})"
        )
