"""Core building blocks for the change-driven rebuild loop.

Modules:
    config: shared configuration constants and logger
    queue: debounced change queue implementation
    handler: watchdog event handler logic
    watcher: observer ownership and batch delivery
    dispatcher: per-component rebuild and restart
"""

from . import config, queue, handler, watcher, dispatcher

__all__ = [
    "config",
    "queue",
    "handler",
    "watcher",
    "dispatcher",
]
