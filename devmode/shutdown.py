"""Cooperative shutdown on SIGINT/SIGTERM.

Signal handlers never run cleanup themselves. They only record the request;
the watch loop notices it on its next wake-up and undeploys on the main
thread. A blocking provider build can hold the loop for minutes, so a
helper thread started by ``install()`` runs ``on_shutdown`` (terminating the
tracked build subprocesses) as soon as the request is seen.
"""

from __future__ import annotations

import queue
import signal
import threading
from typing import Any, Callable, Dict, Iterable, Optional

from devmode.dev_core.config import LOGGER

# Posted on the watch channel to wake the loop immediately
SHUTDOWN = object()

_DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# How often the helper thread checks whether it was uninstalled
_REAPER_POLL_SECS = 0.2


class ShutdownHandler:
    def __init__(
        self,
        channel: "queue.Queue",
        signals: Iterable[int] = _DEFAULT_SIGNALS,
        on_shutdown: Optional[Callable[[], Any]] = None,
    ):
        self.channel = channel
        self.signals = tuple(signals)
        self.on_shutdown = on_shutdown
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._previous: Dict[int, Any] = {}
        self._reaper: Optional[threading.Thread] = None
        self._closed = threading.Event()
        self.signum: Optional[int] = None

    @property
    def requested(self) -> bool:
        return self._event.is_set()

    def request(self) -> None:
        """Ask the watch loop to stop. Only the first request counts.

        Not for use inside a signal handler: it takes locks the interrupted
        thread may already hold.
        """
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
        self.channel.put(SHUTDOWN)

    def _handle(self, signum, frame) -> None:
        # Lock-free: runs on the main thread, possibly inside channel.get()
        if self.signum is None:
            self.signum = signum
        self._event.set()

    def _reap(self) -> None:
        while not self._closed.is_set():
            if self._event.wait(_REAPER_POLL_SECS):
                break
        else:
            return
        if self.on_shutdown is None:
            return
        try:
            self.on_shutdown()
        except Exception:
            LOGGER.exception("Shutdown callback failed")

    def install(self) -> None:
        """Register the handlers and start the helper thread. Main thread only."""
        for sig in self.signals:
            self._previous[sig] = signal.signal(sig, self._handle)
        if self.on_shutdown is not None and self._reaper is None:
            self._closed.clear()
            self._reaper = threading.Thread(target=self._reap, daemon=True, name="shutdown-reaper")
            self._reaper.start()

    def uninstall(self) -> None:
        for sig, previous in self._previous.items():
            signal.signal(sig, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()
        if self._reaper is not None:
            self._closed.set()
            self._reaper.join(timeout=10)
            self._reaper = None
        if self.signum is not None:
            LOGGER.info(f"Received {signal.Signals(self.signum).name}")

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)
