"""Cancellation context shared by a fetch and the subprocesses it spawns."""

import logging
import threading
from typing import Callable, Dict

from gitscaffold.runtime.errors import CloneCancelledError

logger = logging.getLogger("gitscaffold.runtime.cancel")

CancelCallback = Callable[[], None]


class CancelContext:
    """Thread-safe cancellation flag with registered callbacks.

    A running command registers a callback that terminates its process.
    ``cancel()`` may be called from any thread (for example a signal
    handler); callbacks run once, on the cancelling thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: Dict[int, CancelCallback] = {}
        self._next_id = 0

    @property
    def cancelled(self) -> bool:
        """Whether ``cancel()`` has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Cancel the context and fire all registered callbacks."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except OSError as e:
                # Process already gone
                logger.debug("Cancel callback failed: %s", e)

    def register(self, callback: CancelCallback) -> CancelCallback:
        """Register a callback to run on cancellation.

        If the context is already cancelled the callback runs immediately.

        Args:
            callback: Function invoked without arguments.

        Returns:
            CancelCallback: Function that unregisters the callback.
        """
        with self._lock:
            if not self._event.is_set():
                callback_id = self._next_id
                self._next_id += 1
                self._callbacks[callback_id] = callback

                def unregister() -> None:
                    with self._lock:
                        self._callbacks.pop(callback_id, None)

                return unregister

        callback()
        return lambda: None

    def raise_if_cancelled(self) -> None:
        """Raise ``CloneCancelledError`` if the context was cancelled."""
        if self._event.is_set():
            raise CloneCancelledError("operation cancelled")
