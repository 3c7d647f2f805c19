"""Cancellation context passed as the first argument of every helper."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from jsonhttp.errors import TransportError


class RequestContext:
    """Deadline plus a cancel flag.

    ``timeout`` is measured from construction. The remaining time bounds the
    socket timeout of the call made with this context. ``cancel()`` may be
    called from any thread; it runs every callback registered with
    :meth:`register`, which is how an in-flight call learns it must stop.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled.is_set():
                return
            self._cancelled.set()
            callbacks, self._callbacks = self._callbacks, []
        for fn in callbacks:
            fn()

    def register(self, fn: Callable[[], None]) -> Callable[[], None]:
        """Run ``fn`` on cancellation; returns a function that unregisters it.

        If the context is already cancelled ``fn`` runs immediately.
        """
        with self._lock:
            if not self._cancelled.is_set():
                self._callbacks.append(fn)

                def unregister() -> None:
                    with self._lock:
                        if fn in self._callbacks:
                            self._callbacks.remove(fn)

                return unregister
        fn()
        return lambda: None

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        if self.cancelled:
            raise TransportError("http request failed: context canceled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise TransportError("http request failed: context deadline exceeded")
