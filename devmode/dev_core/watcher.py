"""Recursive watching of component source trees.

The watcher owns the watchdog observer and the debounce queue. It turns each
debounce flush into an ``AffectedPaths`` message (the registered roots with
at least one change) and puts it on a channel consumed by the main loop.
"""

from __future__ import annotations

import os
import queue as queue_mod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Set, Type

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from .config import LOGGER, SOURCE_DIR, USE_POLLING
from .handler import SourceChangeHandler
from .queue import ChangeQueue


@dataclass(frozen=True)
class AffectedPaths:
    """Registered source roots touched during one debounce cycle."""

    paths: FrozenSet[str]


@dataclass(frozen=True)
class WatchError:
    message: str


def _norm(path: str) -> Path:
    return Path(os.path.realpath(os.path.abspath(path)))


def affected_roots(event_paths: Iterable[Path], roots: Iterable[str]) -> Set[str]:
    """Return every root that has at least one event path beneath it."""
    normalized: Dict[str, Path] = {root: _norm(root) for root in roots}
    hits: Set[str] = set()
    for event_path in event_paths:
        p = _norm(str(event_path))
        for root, root_path in normalized.items():
            if root not in hits and p.is_relative_to(root_path):
                hits.add(root)
    return hits


def create_observer(use_polling: bool, observer_cls: Type[BaseObserver] = Observer) -> BaseObserver:
    """Create a watchdog observer based on configuration."""
    if use_polling:
        try:
            from watchdog.observers.polling import PollingObserver

            LOGGER.info("Using polling observer for filesystem events")
            return PollingObserver()
        except ImportError:
            LOGGER.warning("Polling observer unavailable, falling back to default Observer")
    return observer_cls()


class ChangeWatcher:
    def __init__(
        self,
        roots: Iterable[str],
        channel: "queue_mod.Queue",
        delay: Optional[float] = None,
        use_polling: Optional[bool] = None,
        observer_factory: Optional[Callable[[], BaseObserver]] = None,
    ):
        self.roots: List[str] = sorted(roots)
        self.channel = channel
        self.delay = delay
        self.use_polling = USE_POLLING if use_polling is None else use_polling
        self._observer_factory = observer_factory
        self._observer: Optional[BaseObserver] = None
        self._queue: Optional[ChangeQueue] = None
        self.watched: List[str] = []

    def _on_flush(self, event_paths: List[Path]) -> None:
        hits = affected_roots(event_paths, self.roots)
        if hits:
            self.channel.put(AffectedPaths(frozenset(hits)))

    def _on_error(self, message: str) -> None:
        self.channel.put(WatchError(message))

    def start(self) -> None:
        if self._observer is not None:
            return
        self._queue = ChangeQueue(self._on_flush, delay=self.delay)
        src_dirs = [os.path.join(root, SOURCE_DIR) for root in self.roots]
        handler = SourceChangeHandler(self._queue, src_dirs, on_error=self._on_error)

        if self._observer_factory is not None:
            observer = self._observer_factory()
        else:
            observer = create_observer(self.use_polling)

        self.watched = []
        for src in src_dirs:
            if not os.path.isdir(src):
                LOGGER.error(f"Cannot watch {src}: directory does not exist")
                continue
            try:
                observer.schedule(handler, src, recursive=True)
            except OSError as exc:
                LOGGER.error(f"Cannot watch {src}: {exc}")
                continue
            self.watched.append(src)
            LOGGER.info(f"Watching {src}")

        if not self.watched:
            LOGGER.warning("No source directories could be watched; no rebuilds will be triggered")
        try:
            observer.start()
        except OSError as exc:
            # e.g. the inotify watch limit; the session keeps running without rebuilds
            LOGGER.error(f"Cannot start file watcher: {exc}")
            self._on_error(f"File watcher failed to start: {exc}")
            self.watched = []
            return
        self._observer = observer

    def stop(self) -> None:
        if self._queue is not None:
            self._queue.close()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
