"""Outbound notifications from the docset lifecycle core.

The core never talks to a UI directly. Interested parties connect
callbacks to the signals on an EventBus:

- catalog_changed(): the docset list or an installed path changed
- download_state_changed(): a download started or finished
- download_progress(bytes_received, bytes_total)
- status(message): informational status line
- error(message): user-visible error (also reported via status)
- index_published(generation, item_count)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class Signal:
    """A named list of callbacks invoked synchronously on emit."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._callbacks: list[Callable[..., Any]] = []
        self._lock = threading.Lock()

    def connect(self, callback: Callable[..., Any]) -> None:
        with self._lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def disconnect(self, callback: Callable[..., Any]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def emit(self, *args: Any) -> None:
        """Invoke every connected callback with args.

        A failing callback is logged and does not prevent the remaining
        callbacks from running.
        """
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(*args)
            except Exception:
                logger.exception("Callback for signal '%s' failed", self.name)

    def __len__(self) -> int:
        return len(self._callbacks)


class EventBus:
    """The set of signals emitted by DocsetLifecycleController."""

    def __init__(self) -> None:
        self.catalog_changed = Signal("catalog_changed")
        self.download_state_changed = Signal("download_state_changed")
        self.download_progress = Signal("download_progress")
        self.status = Signal("status")
        self.error = Signal("error")
        self.index_published = Signal("index_published")


__all__ = ["EventBus", "Signal"]
