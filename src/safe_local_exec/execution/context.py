"""Cancellation contexts and first-of-N event selection."""

from __future__ import annotations

import queue
import threading
from typing import Callable, Final, Mapping

from safe_local_exec.util.logging import get_logger

CANCELLED: Final[str] = "context cancelled"
DEADLINE_EXCEEDED: Final[str] = "context deadline exceeded"

Callback = Callable[[], None]

_LOGGER = get_logger(__name__)


class CompletionEvent:
    """One-shot event that also runs callbacks when it is set.

    Callbacks registered after the event is set run immediately on the
    registering thread. Callbacks registered before run on the thread that
    sets the event.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callback] = []

    def is_set(self) -> bool:
        return self._event.is_set()

    def set(self) -> bool:
        """Set the event and run pending callbacks.

        Returns:
            True if this call set the event, False if it was already set.
        """

        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
        return True

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def add_callback(self, callback: Callback) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callback) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass


def race(events: Mapping[str, CompletionEvent]) -> str:
    """Block until one of the events is set and return its name.

    When several events are already set, the first in mapping order wins, so
    callers express priority through insertion order.

    Args:
        events: Named events to wait on, in priority order.

    Returns:
        Name of the winning event.
    """

    if not events:
        raise ValueError("race() needs at least one event.")
    for name, event in events.items():
        if event.is_set():
            return name

    fired: queue.SimpleQueue[str] = queue.SimpleQueue()
    callbacks: dict[str, Callback] = {}
    for name, event in events.items():
        callback = _notifier(fired, name)
        callbacks[name] = callback
        event.add_callback(callback)
    try:
        fired.get()
        # Re-scan so that simultaneous completions still respect priority.
        for name, event in events.items():
            if event.is_set():
                return name
        raise RuntimeError("race() woke without a completed event.")
    finally:
        for name, event in events.items():
            event.remove_callback(callbacks[name])


def _notifier(target: queue.SimpleQueue[str], name: str) -> Callback:
    def notify() -> None:
        target.put(name)

    return notify


class ExecutionContext:
    """Cancellable execution scope with an optional deadline.

    A context becomes done when it is cancelled, when its timeout elapses, or
    when its parent becomes done. ``err`` records why. Exiting the context
    manager releases the timer and detaches from the parent without marking
    the context done.
    """

    def __init__(
        self,
        parent: ExecutionContext | None = None,
        timeout_s: float | None = None,
    ) -> None:
        """Initialize the context.

        Args:
            parent: Optional parent whose completion propagates to this context.
            timeout_s: Optional deadline in seconds. None or 0 arms no timer.
        """

        self.done = CompletionEvent()
        self._err: str | None = None
        self._err_lock = threading.Lock()
        self._parent = parent
        self._timer: threading.Timer | None = None
        self.timeout_s = timeout_s if timeout_s and timeout_s > 0 else None

        if parent is not None:
            parent.done.add_callback(self._on_parent_done)
        if self.timeout_s is not None and not self.done.is_set():
            self._timer = threading.Timer(self.timeout_s, self._expire)
            self._timer.daemon = True
            self._timer.start()

    @property
    def err(self) -> str | None:
        """Return why the context is done, or None while it is still live."""

        with self._err_lock:
            return self._err

    @property
    def deadline_exceeded(self) -> bool:
        return self.err == DEADLINE_EXCEEDED

    def cancel(self, reason: str = CANCELLED) -> None:
        """Mark the context done. Later calls are no-ops."""

        with self._err_lock:
            if self._err is not None:
                return
            self._err = reason
        _LOGGER.debug("Execution context done: %s", reason)
        self._stop_timer()
        self.done.set()

    def close(self) -> None:
        """Release the timer and parent link."""

        self._stop_timer()
        if self._parent is not None:
            self._parent.done.remove_callback(self._on_parent_done)

    def _expire(self) -> None:
        self.cancel(DEADLINE_EXCEEDED)

    def _on_parent_done(self) -> None:
        assert self._parent is not None
        self.cancel(self._parent.err or CANCELLED)

    def _stop_timer(self) -> None:
        timer = self._timer
        if timer is not None:
            timer.cancel()

    def __enter__(self) -> ExecutionContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
