"""Watchdog event handler responsible for enqueueing source changes."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler

from .config import LOGGER


def _norm(path: str) -> Path:
    return Path(os.path.realpath(os.path.abspath(path)))


class SourceChangeHandler(FileSystemEventHandler):
    """Feeds every filesystem change under the watched ``src`` trees into a queue.

    Removal of a watched ``src`` directory itself is not a change to rebuild
    but a broken watch; it is reported through ``on_error`` instead.
    """

    def __init__(
        self,
        queue,
        watched_dirs: Iterable[str],
        on_error: Optional[Callable[[str], None]] = None,
    ):
        super().__init__()
        self.queue = queue
        self.watched_dirs = {_norm(d) for d in watched_dirs}
        self.on_error = on_error

    def _enqueue(self, src_path) -> None:
        if not src_path:
            return
        if isinstance(src_path, bytes):
            src_path = os.fsdecode(src_path)
        self.queue.add(_norm(src_path))

    def _report_lost_root(self, event: FileSystemEvent) -> bool:
        if not event.is_directory:
            return False
        p = _norm(os.fsdecode(event.src_path))
        if p not in self.watched_dirs:
            return False
        msg = f"Watch target removed: {p}"
        LOGGER.error(msg)
        if self.on_error is not None:
            self.on_error(msg)
        return True

    def on_created(self, event):
        self._enqueue(event.src_path)

    def on_modified(self, event):
        self._enqueue(event.src_path)

    def on_deleted(self, event):
        if self._report_lost_root(event):
            return
        self._enqueue(event.src_path)

    def on_moved(self, event):
        if self._report_lost_root(event):
            return
        self._enqueue(event.src_path)
        self._enqueue(getattr(event, "dest_path", None))
