"""
Playback scheduler.

Owns every playback session, fires one sound event per chunk on the world
executor, and arms the timer that advances to the next chunk. A chunk whose
sound event is not registered yet is retried on a fixed delay, up to a cap.
"""

import threading
from concurrent.futures import Executor
from functools import partial
from typing import Callable, NamedTuple, Optional

from loguru import logger

from media_radio.core.config import PlaybackConfig, SoundEventConfig
from media_radio.domain.media.assets import SoundEventRegistry
from media_radio.domain.media.exceptions import MissingAssetRetryExceeded
from media_radio.domain.media.models import MediaInfo
from media_radio.utils.volume import (
    clamp_percent,
    event_db_to_percent,
    percent_to_event_db,
    ratio_to_percent,
)

from .emitter import SoundEmitter
from .session import (
    AdvanceResult,
    BlockPosition,
    Clock,
    ListenerRef,
    PlaybackSession,
    PlaybackTarget,
    monotonic_ms,
)
from .timers import TimerService

# Never let the early-fire overlap eat the whole chunk
_MIN_CHUNK_DELAY_MS = 5
# Log the missing-asset warning on the 1st, 6th, 11th... attempt
_RETRY_LOG_EVERY = 5

SessionEndedHook = Callable[[PlaybackSession, Optional[Exception]], None]


class PlaybackStatus(NamedTuple):
    """Snapshot of a target's playback state."""

    is_playing: bool = False
    is_paused: bool = False
    is_stopped: bool = True
    progress: float = 0.0
    position_ms: int = 0
    duration_ms: int = 0


class PlaybackScheduler:
    """Drives chunked playback for block-bound and listener-bound targets.

    Args:
        sound_events: Registry used to resolve chunk event indexes
        emitter: Fire-and-forget sound trigger
        timers: One-shot timer service
        world_executor: Serialized executor on which every trigger runs
        config: Chunk duration, retry and overlap settings
        sound_config: Category and pitch passed to the emitter
        eligibility: Whether a listener may currently hear playback
        on_session_ended: Called on the world executor for every session
            that ends, with the failure (if any) that ended it
        clock: Millisecond clock shared with sessions
    """

    def __init__(
        self,
        sound_events: SoundEventRegistry,
        emitter: SoundEmitter,
        timers: TimerService,
        world_executor: Executor,
        config: Optional[PlaybackConfig] = None,
        sound_config: Optional[SoundEventConfig] = None,
        eligibility: Optional[Callable[[ListenerRef], bool]] = None,
        on_session_ended: Optional[SessionEndedHook] = None,
        clock: Optional[Clock] = None,
    ):
        self.sound_events = sound_events
        self.emitter = emitter
        self.timers = timers
        self.world_executor = world_executor
        self.config = config or PlaybackConfig()
        self.sound_config = sound_config or SoundEventConfig()
        self.eligibility = eligibility
        self.on_session_ended = on_session_ended
        self._clock = clock or monotonic_ms

        self._block_sessions: dict[str, PlaybackSession] = {}
        self._listener_sessions: dict[str, PlaybackSession] = {}
        self._loop_preferences: dict[tuple[str, str], bool] = {}
        self._volume_preferences: dict[tuple[str, str], float] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ lookup

    @staticmethod
    def _pref_key(target: PlaybackTarget) -> tuple[str, str]:
        kind = "listener" if isinstance(target, ListenerRef) else "block"
        return kind, target.key

    def _sessions_for(self, target: PlaybackTarget) -> dict[str, PlaybackSession]:
        if isinstance(target, ListenerRef):
            return self._listener_sessions
        return self._block_sessions

    def get_session(self, target: PlaybackTarget) -> Optional[PlaybackSession]:
        with self._lock:
            return self._sessions_for(target).get(target.key)

    def active_sessions(self) -> list[PlaybackSession]:
        with self._lock:
            return [*self._block_sessions.values(), *self._listener_sessions.values()]

    def is_track_active(self, track_id: str) -> bool:
        return any(s.track_id == track_id for s in self.active_sessions())

    def _is_eligible(self, listener: ListenerRef) -> bool:
        return self.eligibility is None or self.eligibility(listener)

    def _volume_db_for(self, target: PlaybackTarget) -> float:
        percent = self._volume_preferences.get(
            self._pref_key(target), float(self.config.default_volume_percent)
        )
        return percent_to_event_db(percent)

    # ------------------------------------------------------------------ commands

    def play(
        self,
        target: PlaybackTarget,
        media: MediaInfo,
        chunk_duration_ms: Optional[int] = None,
    ) -> Optional[PlaybackSession]:
        """Start media on target, replacing whatever was playing there.

        Returns:
            The new session, or None when the media has no chunks or the
            listener is not eligible
        """
        if media.chunk_count <= 0:
            logger.warning(f"Cannot play {media.track_id}: no chunks available")
            return None
        if isinstance(target, ListenerRef) and not self._is_eligible(target):
            logger.info(f"Skipping playback for ineligible listener {target.key}")
            return None

        session = PlaybackSession(
            track_id=media.track_id,
            target=target,
            total_chunks=media.chunk_count,
            chunk_duration_ms=chunk_duration_ms or self.config.chunk_duration_ms,
            duration_seconds=media.duration_seconds,
            title=media.title,
            artist=media.artist,
            thumbnail_asset_ref=media.thumbnail_asset_ref,
            source_url=media.source_url,
            volume_db=self._volume_db_for(target),
            clock=self._clock,
        )

        with self._lock:
            sessions = self._sessions_for(target)
            previous = sessions.pop(target.key, None)
            sessions[target.key] = session
            session.loop_enabled = self._loop_preferences.get(
                self._pref_key(target), False
            )

        if previous is not None:
            logger.debug(f"Replacing session on {target.key}: {previous.track_id}")
            self._end_session(previous, None)

        with session.lock:
            session.play()
        self._dispatch(session)

        logger.info(
            f"Playing {media.title} ({media.track_id}) on {target.key}: "
            f"{media.chunk_count} chunks"
        )
        return session

    def resume(self, target: PlaybackTarget) -> bool:
        session = self.get_session(target)
        if session is None:
            return False
        with session.lock:
            if not session.is_paused:
                return False
            session.play()
        self._dispatch(session)
        return True

    def pause(self, target: PlaybackTarget) -> bool:
        """User-initiated pause; never auto-resumed."""
        return self._pause(target, by_user=True)

    def auto_pause(self, target: PlaybackTarget) -> bool:
        """Environmental pause; resumed by refresh_listener()."""
        return self._pause(target, by_user=False)

    def _pause(self, target: PlaybackTarget, by_user: bool) -> bool:
        session = self.get_session(target)
        if session is None:
            return False
        with session.lock:
            if not session.is_playing:
                return False
            session.pause(by_user=by_user)
        return True

    def stop(self, target: PlaybackTarget) -> bool:
        with self._lock:
            session = self._sessions_for(target).pop(target.key, None)
        if session is None:
            return False
        self._end_session(session, None)
        return True

    def seek(self, target: PlaybackTarget, progress: float) -> bool:
        """Seek to a fraction (0.0-1.0) of the track."""
        session = self.get_session(target)
        if session is None or session.total_chunks == 0:
            return False
        progress = min(1.0, max(0.0, progress))
        with session.lock:
            session.seek_to_ms(int(progress * session.total_duration_ms))
            playing = session.is_playing
            if playing:
                session.cancel_pending_timer()
        if playing:
            self._dispatch(session)
        return True

    def set_loop_enabled(self, target: PlaybackTarget, enabled: bool) -> None:
        with self._lock:
            self._loop_preferences[self._pref_key(target)] = enabled
            session = self._sessions_for(target).get(target.key)
        if session is not None:
            with session.lock:
                session.loop_enabled = enabled

    def is_loop_enabled(self, target: PlaybackTarget) -> bool:
        with self._lock:
            return self._loop_preferences.get(self._pref_key(target), False)

    def set_volume(self, target: PlaybackTarget, percent: float) -> float:
        """Set volume in percent (0-200, 100 neutral); applies from the next chunk.

        Returns:
            The clamped percent actually stored
        """
        percent = clamp_percent(percent)
        with self._lock:
            self._volume_preferences[self._pref_key(target)] = percent
            session = self._sessions_for(target).get(target.key)
        if session is not None:
            with session.lock:
                session.volume_db = percent_to_event_db(percent)
        return percent

    def set_volume_ratio(self, target: PlaybackTarget, ratio: float) -> float:
        return self.set_volume(target, ratio_to_percent(ratio))

    def get_volume_percent(self, target: PlaybackTarget) -> float:
        session = self.get_session(target)
        if session is not None:
            return round(event_db_to_percent(session.volume_db), 2)
        with self._lock:
            return self._volume_preferences.get(
                self._pref_key(target), float(self.config.default_volume_percent)
            )

    def get_status(self, target: PlaybackTarget) -> PlaybackStatus:
        session = self.get_session(target)
        if session is None:
            return PlaybackStatus()
        with session.lock:
            return PlaybackStatus(
                is_playing=session.is_playing,
                is_paused=session.is_paused,
                is_stopped=session.is_stopped,
                progress=session.progress(),
                position_ms=session.position_ms(),
                duration_ms=session.total_duration_ms,
            )

    def refresh_listener(self, listener: ListenerRef) -> None:
        """Re-evaluate eligibility: auto-pause or auto-resume as needed."""
        session = self.get_session(listener)
        if session is None:
            return
        resumed = False
        with session.lock:
            eligible = self._is_eligible(listener)
            if session.is_playing and not eligible:
                session.pause(by_user=False)
                logger.info(f"Auto-paused {listener.key}: no longer eligible")
            elif session.is_paused and not session.paused_by_user and eligible:
                session.play()
                resumed = True
        if resumed:
            logger.info(f"Auto-resumed {listener.key}")
            self._dispatch(session)

    def stop_all_for_track(self, track_id: str) -> int:
        with self._lock:
            ended = []
            for sessions in (self._block_sessions, self._listener_sessions):
                for key in [k for k, s in sessions.items() if s.track_id == track_id]:
                    ended.append(sessions.pop(key))
        for session in ended:
            self._end_session(session, None)
        if ended:
            logger.info(f"Stopped {len(ended)} sessions playing {track_id}")
        return len(ended)

    def shutdown(self) -> None:
        with self._lock:
            ended = [*self._block_sessions.values(), *self._listener_sessions.values()]
            self._block_sessions.clear()
            self._listener_sessions.clear()
        for session in ended:
            with session.lock:
                session.stop()
        logger.info(f"Scheduler shut down, stopped {len(ended)} sessions")

    # ------------------------------------------------------------------ chunk loop

    def _dispatch(self, session: PlaybackSession) -> None:
        with session.lock:
            generation = session.next_timer_generation()
        try:
            self.world_executor.submit(self._play_current_chunk, session, generation)
        except RuntimeError as e:
            logger.debug(f"World executor unavailable, dropping trigger: {e}")

    def _play_current_chunk(self, session: PlaybackSession, generation: int) -> None:
        failure: Optional[MissingAssetRetryExceeded] = None
        with session.lock:
            if generation != session.timer_generation or not session.is_playing:
                return

            event_name = session.current_event_name()
            index = self.sound_events.index_of(event_name)
            if index is None:
                attempts = session.increment_missing_asset_retries()
                if attempts > self.config.max_missing_asset_retries:
                    failure = MissingAssetRetryExceeded(event_name, attempts)
                    logger.warning(f"{failure}; stopping playback on {session.target.key}")
                else:
                    if attempts % _RETRY_LOG_EVERY == 1:
                        logger.warning(
                            f"Chunk asset {event_name} not ready "
                            f"(attempt {attempts}/{self.config.max_missing_asset_retries})"
                        )
                    self._arm_timer(
                        session,
                        self.config.missing_asset_retry_delay_ms,
                        self._on_retry_timer,
                    )
                    return
            else:
                session.reset_missing_asset_retries()
                session.mark_chunk_start()
                if session.is_listener_bound and not self._is_eligible(session.target):
                    session.pause(by_user=False)
                    logger.info(f"Auto-paused {session.target.key}: no longer eligible")
                    return
                self._emit(session, index)
                self._arm_timer(
                    session, self._next_chunk_delay(session), self._on_chunk_timer
                )
                return

        if self._remove_session(session):
            self._end_session(session, failure)

    def _emit(self, session: PlaybackSession, event_index: int) -> None:
        target = session.target
        if isinstance(target, BlockPosition):
            self.emitter.trigger_at(
                event_index,
                self.sound_config.category,
                session.volume_db,
                self.sound_config.pitch,
                target,
            )
        else:
            self.emitter.trigger_for_listener(
                event_index,
                self.sound_config.category,
                target,
                session.volume_db,
                self.sound_config.pitch,
            )

    def _next_chunk_delay(self, session: PlaybackSession) -> int:
        """Fire slightly early, more so when the last tick ran late."""
        chunk_ms = session.chunk_duration_ms
        overlap = min(
            self.config.chunk_overlap_max_ms,
            self.config.chunk_overlap_base_ms + session.last_schedule_lag_ms,
            max(0, chunk_ms - _MIN_CHUNK_DELAY_MS),
        )
        return max(0, chunk_ms - overlap)

    def _arm_timer(
        self,
        session: PlaybackSession,
        delay_ms: int,
        callback: Callable[[PlaybackSession, int], None],
    ) -> None:
        generation = session.next_timer_generation()
        handle = self.timers.schedule(delay_ms, partial(callback, session, generation))
        session.set_pending_timer(handle)

    def _on_retry_timer(self, session: PlaybackSession, generation: int) -> None:
        with session.lock:
            if generation != session.timer_generation or not session.is_playing:
                return
            session.clear_pending_timer()
        self._dispatch(session)

    def _on_chunk_timer(self, session: PlaybackSession, generation: int) -> None:
        with session.lock:
            if generation != session.timer_generation or not session.is_playing:
                return
            session.clear_pending_timer()
            expected_end = session.chunk_start_ms + session.chunk_duration_ms
            session.last_schedule_lag_ms = self._clock() - expected_end
            result = session.advance_chunk()

        if result is AdvanceResult.MORE_CHUNKS:
            self._dispatch(session)
            return

        logger.info(f"Finished {session.track_id} on {session.target.key}")
        if self._remove_session(session):
            self._end_session(session, None)

    # ------------------------------------------------------------------ endings

    def _remove_session(self, session: PlaybackSession) -> bool:
        with self._lock:
            sessions = self._sessions_for(session.target)
            if sessions.get(session.target.key) is session:
                del sessions[session.target.key]
                return True
            return False

    def _end_session(
        self, session: PlaybackSession, reason: Optional[Exception]
    ) -> None:
        with session.lock:
            session.stop()
        if self.on_session_ended is None:
            return
        try:
            self.world_executor.submit(self._notify_ended, session, reason)
        except RuntimeError as e:
            logger.debug(f"World executor unavailable, skipping end hook: {e}")

    def _notify_ended(
        self, session: PlaybackSession, reason: Optional[Exception]
    ) -> None:
        try:
            self.on_session_ended(session, reason)
        except Exception:
            logger.exception(f"Session-ended hook failed for {session.track_id}")
