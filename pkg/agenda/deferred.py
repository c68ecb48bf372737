# Agenda engine — trailing-edge timing helpers
#
#   1. Debouncer    : one pending call per key; a newer call supersedes it
#   2. DeferredValue: authoritative value + lagging copy that drives recompute
#
# Nothing here retries or reports failures: the latest write wins.

import logging
import threading
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer:
    """
    Per-key trailing debounce on threading.Timer.

    call(key, fn) schedules fn after delay_secs. Another call for the same
    key inside the window replaces the pending fn and restarts the window,
    so only the most recent one ever runs.
    """

    def __init__(self, delay_secs: float = 0.25):
        self.delay_secs = delay_secs
        self._pending: Dict[str, Tuple[threading.Timer, Callable[[], None]]] = {}
        self._lock = threading.Lock()

    def call(self, key: str, fn: Callable[[], None]) -> None:
        with self._lock:
            previous = self._pending.pop(key, None)
            if previous is not None:
                previous[0].cancel()
                logger.debug(f"Superseded pending call for {key}")
            timer = threading.Timer(self.delay_secs, self._fire, args=(key,))
            timer.daemon = True
            self._pending[key] = (timer, fn)
            timer.start()

    def _fire(self, key: str) -> None:
        # Runs on the timer's own thread; a superseded timer may still get here
        with self._lock:
            entry = self._pending.get(key)
            if entry is None or entry[0] is not threading.current_thread():
                return
            del self._pending[key]
        self._run(key, entry[1])

    def _run(self, key: str, fn: Callable[[], None]) -> None:
        try:
            fn()
        except Exception as e:
            logger.error(f"Debounced call for {key} failed: {e}")

    def pending_keys(self) -> list:
        with self._lock:
            return list(self._pending)

    def flush(self) -> None:
        """Run every pending call now. Call on shutdown."""
        with self._lock:
            entries = list(self._pending.items())
            self._pending.clear()
        for key, (timer, fn) in entries:
            timer.cancel()
            self._run(key, fn)

    def cancel_all(self) -> None:
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for timer, _ in entries:
            timer.cancel()


class DeferredValue(Generic[T]):
    """
    Two views of one input.

    value   : authoritative, updated synchronously on every set()
    deferred: what expensive recomputation reads; catches up with value
              on a trailing timer, or immediately on sync()
    """

    _KEY = "deferred"

    def __init__(
        self,
        initial: T,
        delay_secs: float = 0.12,
        on_sync: Optional[Callable[[T], None]] = None,
    ):
        self._value = initial
        self._deferred = initial
        self._on_sync = on_sync
        self._debouncer = Debouncer(delay_secs)

    @property
    def value(self) -> T:
        return self._value

    @property
    def deferred(self) -> T:
        return self._deferred

    @property
    def is_stale(self) -> bool:
        return self._deferred != self._value

    def set(self, value: T) -> None:
        self._value = value
        self._debouncer.call(self._KEY, self._catch_up)

    def sync(self) -> None:
        """Resynchronize now (drops the pending timer)."""
        self._debouncer.cancel_all()
        self._catch_up()

    def _catch_up(self) -> None:
        if self._deferred == self._value:
            return
        self._deferred = self._value
        if self._on_sync is not None:
            self._on_sync(self._deferred)
