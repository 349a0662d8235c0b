"""
Cooperative cancellation for in-flight generation.

A CancelToken is shared between the consumer and the backend. Backends
register cleanup callbacks (closing the HTTP response) so that cancelling
unblocks a read loop waiting on the network instead of waiting for the
next fragment.
"""

import threading
from typing import Callable

from vekkam.exceptions import GenerationCancelled
from vekkam.logging_config import debug_log


class CancelToken:
    """
    Thread-safe cancellation flag with cleanup callbacks.

    Example:
        token = CancelToken()
        threading.Timer(5.0, token.cancel).start()
        orchestrator.stream(request, sink=print, cancel_token=token)
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self):
        """Set the flag and run every registered callback once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()

        debug_log(f"[CANCEL] Cancellation requested, running {len(callbacks)} callbacks")
        for callback in callbacks:
            self._run_callback(callback)

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback to run on cancellation.

        Runs immediately if the token is already cancelled.

        Returns:
            A function that unregisters the callback
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove(callback)

        self._run_callback(callback)
        return lambda: None

    def raise_if_cancelled(self, partial_text: str = ""):
        """Raise GenerationCancelled if cancellation was requested."""
        if self._event.is_set():
            raise GenerationCancelled(partial_text=partial_text)

    def _remove(self, callback: Callable[[], None]):
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    @staticmethod
    def _run_callback(callback: Callable[[], None]):
        # Cleanup of an already-broken connection may itself fail
        try:
            callback()
        except Exception as e:
            debug_log(f"[CANCEL] Cleanup callback failed: {e}")
