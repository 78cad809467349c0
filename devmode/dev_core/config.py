"""Shared configuration and logging helpers for the dev loop."""

from __future__ import annotations

import os

from devmode.logger import get_logger, safe_bool, safe_float


def build_logger():
    """Create the dev-mode logger, JSON-formatted when DEVMODE_LOG_JSON is set."""
    json_format = safe_bool(os.environ.get("DEVMODE_LOG_JSON"), False)
    try:
        return get_logger("devmode", json_format=json_format)
    except Exception:  # pragma: no cover - fallback for logger setup issues
        import logging

        return logging.getLogger("devmode")


LOGGER = build_logger()

# Image references with this prefix are built locally rather than pulled
LOCAL_SCHEME = "file://"

# Debounce interval for file system events
DELAY_SECS = safe_float(
    os.environ.get("DEVMODE_DEBOUNCE_SECS"), 0.5, logger=LOGGER, context="DEVMODE_DEBOUNCE_SECS"
)
USE_POLLING = safe_bool(
    os.environ.get("DEVMODE_USE_POLLING"), False, logger=LOGGER, context="DEVMODE_USE_POLLING"
)

WASH_BIN = os.environ.get("WASH_BIN", "wash")
MAKE_BIN = os.environ.get("MAKE_BIN", "make")

# Subdirectory of every component root that is watched for changes
SOURCE_DIR = "src"
