"""Dev command: build, deploy and hot-reload a local application."""
from __future__ import annotations

import argparse
from pathlib import Path

from devmode.dev_core.config import LOGGER
from devmode.dev_core.watcher import ChangeWatcher
from devmode.manifest import load_manifest
from devmode.orchestrator import DevSession
from devmode.wash import WashTools, ensure_wash_available


def cmd_dev(args: argparse.Namespace) -> int:
    """Run the application described by ``args.config`` in dev mode."""
    ensure_wash_available()

    config = Path(args.config)
    manifest = load_manifest(config)
    LOGGER.info(f"Starting dev mode for {config}")

    debounce = getattr(args, "debounce", None)
    polling = True if getattr(args, "polling", False) else None
    session = DevSession(
        manifest,
        WashTools(),
        watcher_factory=lambda roots, channel: ChangeWatcher(
            roots, channel, delay=debounce, use_polling=polling
        ),
    )
    return session.run()
