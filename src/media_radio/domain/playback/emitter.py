"""Sound emitter: the fire-and-forget "play this sound event" primitive."""

from typing import Protocol

from loguru import logger

from .session import BlockPosition, ListenerRef


class SoundEmitter(Protocol):
    def trigger_at(
        self,
        event_index: int,
        category: str,
        volume_db: float,
        pitch: float,
        position: BlockPosition,
    ) -> None: ...

    def trigger_for_listener(
        self,
        event_index: int,
        category: str,
        listener: ListenerRef,
        volume_db: float,
        pitch: float,
    ) -> None: ...


class LoggingSoundEmitter:
    """Emitter for headless runs: records each trigger in the debug log."""

    def __init__(self) -> None:
        self.trigger_count = 0

    def trigger_at(
        self,
        event_index: int,
        category: str,
        volume_db: float,
        pitch: float,
        position: BlockPosition,
    ) -> None:
        self.trigger_count += 1
        logger.debug(
            f"Sound event #{event_index} at {position.key} "
            f"({category}, {volume_db:+.1f} dB, pitch {pitch})"
        )

    def trigger_for_listener(
        self,
        event_index: int,
        category: str,
        listener: ListenerRef,
        volume_db: float,
        pitch: float,
    ) -> None:
        self.trigger_count += 1
        logger.debug(
            f"Sound event #{event_index} for {listener.name or listener.listener_id} "
            f"({category}, {volume_db:+.1f} dB, pitch {pitch})"
        )
