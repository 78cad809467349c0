"""CLI entry point — argparse dispatcher for all subcommands."""
from __future__ import annotations

import argparse
import sys
import traceback


# ---------------------------------------------------------------------------
# Command registry: command name → (module_path, function_name)
# Lazy-imported at dispatch time to keep startup fast.
# ---------------------------------------------------------------------------
COMMANDS = {
    "dev": ("cli.commands.dev", "cmd_dev"),
}


# ---------------------------------------------------------------------------
# Parser builder
# ---------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    from cli._version import __version__

    parser = argparse.ArgumentParser(
        prog="lattice-dev",
        description="Local development mode for lattice applications",
    )
    parser.add_argument("--debug", action="store_true", help="Show stack traces on error")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    # dev
    p = sub.add_parser("dev", help="Run the project in development mode with hot reload")
    p.add_argument("config", help="Path to the project's wadm.yaml")
    p.add_argument(
        "--debounce",
        type=float,
        default=None,
        help="Seconds to wait for a burst of file changes to settle (default 0.5)",
    )
    p.add_argument("--polling", action="store_true", help="Use a polling filesystem observer")

    return parser


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    debug = "--debug" in argv
    argv = [arg for arg in argv if arg != "--debug"]
    args = parser.parse_args(argv)
    args.debug = bool(debug or getattr(args, "debug", False))

    entry = COMMANDS.get(args.command)
    if not entry:
        parser.print_help()
        sys.exit(1)

    mod_path, fn_name = entry
    from cli.core import print_error_block

    try:
        import importlib
        mod = importlib.import_module(mod_path)
        fn = getattr(mod, fn_name)
        code = fn(args)
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as exc:
        print_error_block(exc)
        if args.debug:
            traceback.print_exc(file=sys.stderr)
        sys.exit(1)
    sys.exit(code or 0)


if __name__ == "__main__":
    main()
