"""Debounced change queue used by the watcher."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, List, Optional, Set

from .config import DELAY_SECS, LOGGER


class ChangeQueue:
    """Collects event paths and flushes them once a burst has gone quiet.

    Every ``add`` restarts the timer, so a burst of saves produces one flush
    ``delay`` seconds after its last event.
    """

    def __init__(self, process_cb: Callable[[List[Path]], None], delay: Optional[float] = None):
        self._lock = threading.Lock()
        self._paths: Set[Path] = set()
        self._pending: Set[Path] = set()
        self._timer: threading.Timer | None = None
        self._process_cb = process_cb
        self._delay = DELAY_SECS if delay is None else delay
        self._closed = False
        # One flush at a time; batches never interleave in the callback
        self._processing_lock = threading.Lock()

    def add(self, p: Path) -> None:
        with self._lock:
            if self._closed:
                return
            self._paths.add(p)
            if self._timer is not None:
                self._timer.cancel()
            self._schedule()

    def _schedule(self) -> None:
        self._timer = threading.Timer(self._delay, self._flush)
        self._timer.daemon = True
        self._timer.start()

    def close(self) -> None:
        """Cancel any scheduled flush and drop further additions."""
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._paths.clear()
            self._pending.clear()

    def _flush(self) -> None:
        with self._lock:
            paths = list(self._paths)
            self._paths.clear()
            self._timer = None

        if not paths:
            return

        # Busy: park the batch and let a follow-up flush pick it up
        if not self._processing_lock.acquire(blocking=False):
            with self._lock:
                self._pending.update(paths)
                if self._timer is None and not self._closed:
                    self._schedule()
            return
        try:
            todo: List[Path] = paths
            while True:
                try:
                    self._process_cb(todo)
                except Exception as exc:
                    LOGGER.error(
                        "Processing batch failed in ChangeQueue._flush",
                        extra={"error": str(exc), "batch_size": len(todo)},
                        exc_info=True,
                    )
                with self._lock:
                    if not self._pending:
                        break
                    todo = list(self._pending)
                    self._pending.clear()
        finally:
            self._processing_lock.release()


__all__ = ["ChangeQueue"]
