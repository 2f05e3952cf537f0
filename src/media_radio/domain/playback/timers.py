"""Timer service and the serialized world executor used by the scheduler."""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Protocol

from loguru import logger


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerService(Protocol):
    """Fires a callback once after delay_ms, on some background thread."""

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...

    def shutdown(self) -> None: ...


class ThreadingTimerService:
    """TimerService backed by daemon threading.Timer instances."""

    def __init__(self) -> None:
        self._timers: set[threading.Timer] = set()
        self._lock = threading.Lock()
        self._closed = False

    def schedule(
        self, delay_ms: int, callback: Callable[[], None]
    ) -> "_ThreadingTimerHandle":
        timer: threading.Timer

        def fire() -> None:
            self._forget(timer)
            try:
                callback()
            except Exception:
                logger.exception("Timer callback failed")

        timer = threading.Timer(max(0, delay_ms) / 1000.0, fire)
        timer.daemon = True
        with self._lock:
            if self._closed:
                raise RuntimeError("Timer service is shut down")
            self._timers.add(timer)
        timer.start()
        return _ThreadingTimerHandle(self, timer)

    def _forget(self, timer: threading.Timer) -> None:
        with self._lock:
            self._timers.discard(timer)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._timers)

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()


class _ThreadingTimerHandle:
    """Cancels the underlying timer and drops it from the service's pending set."""

    def __init__(self, service: ThreadingTimerService, timer: threading.Timer) -> None:
        self._service = service
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()
        self._service._forget(self._timer)


def create_world_executor() -> ThreadPoolExecutor:
    """Single-threaded executor on which every sound trigger runs, in order."""
    return ThreadPoolExecutor(max_workers=1, thread_name_prefix="world")
