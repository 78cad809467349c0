"""Shared helpers for CLI commands."""
from __future__ import annotations

import json
import sys
from typing import Any


def output_json(data: Any, stream=None) -> None:
    """Write JSON to stdout — single place for all commands."""
    stream = stream or sys.stdout
    json.dump(data, stream, indent=2, default=str)
    stream.write("\n")


def print_error_block(exc: BaseException) -> None:
    """Report a fatal error: logged at critical level, then printed as JSON."""
    from devmode.dev_core.config import LOGGER

    LOGGER.critical(f"{type(exc).__name__}: {exc}")
    output_json({"ok": False, "error": str(exc), "type": type(exc).__name__})
