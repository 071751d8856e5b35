"""
Main CLI for scriptr.

Fast launcher for Rust single-file packages (``cargo -Zscript``).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from scriptr.build.caching import CacheStore
from scriptr.build.config import (
    LaunchConfig,
    config_path,
    load_settings,
    resolve_cache_root,
)
from scriptr.build.orchestrator import Launcher
from scriptr.core.errors import ScriptrError
from scriptr.core.utils import NAME, canonicalize, log


# =============================================================================
# Version
# =============================================================================

__version__ = "0.1.0"

# Options that consume the following token as their value
_VALUE_OPTIONS = {"--config"}


# =============================================================================
# Argument Parsing
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the launcher options."""
    parser = argparse.ArgumentParser(
        prog=NAME,
        description="Fast launcher for Rust single-file packages (cargo -Zscript)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Everything after the script path is passed to the script unchanged.

Examples:
  scriptr hello.rs                 # Build if changed, then run
  scriptr -d hello.rs a b          # Debug build, run with arguments a b
  scriptr -f hello.rs              # Rebuild even if cached
  scriptr -C hello.rs              # Drop the cache entry, don't run
  scriptr hello.rs -- --flag       # Forward --flag to the script
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Build in debug mode (default is release)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Force rebuild (ignore cache)",
    )
    parser.add_argument(
        "-c", "--clean",
        action="store_true",
        help="Clean cache before building",
    )
    parser.add_argument(
        "-C", "--clean-only",
        action="store_true",
        help="Clean cache and exit (don't run)",
    )
    parser.add_argument(
        "-H", "--hash-only",
        action="store_true",
        help="Always compare content hashes, never trust mtime",
    )
    parser.add_argument(
        "--clean-all",
        action="store_true",
        help="Remove every cache entry and exit",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List cache entries and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Settings file (default: $SCRIPTR_CONFIG or ~/.config/scriptr/config.yaml)",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    parser.add_argument(
        "script",
        nargs="?",
        type=Path,
        help="Path to the Rust script (.rs)",
    )
    return parser


def split_argv(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split argv into launcher arguments and script arguments.

    Option parsing stops at the script path (the first positional token, or
    the token after a bare ``--``). One ``--`` directly after the script is
    dropped; everything else is forwarded verbatim.
    """
    i = 0
    while i < len(argv):
        token = argv[i]
        if token == "--":
            if i + 1 < len(argv):
                return argv[:i + 2], _strip_separator(argv[i + 2:])
            return argv[:i], []
        if token in _VALUE_OPTIONS:
            i += 2
            continue
        if token.startswith("-") and token != "-":
            i += 1
            continue
        return argv[:i + 1], _strip_separator(argv[i + 1:])
    return list(argv), []


def _strip_separator(rest: list[str]) -> list[str]:
    if rest and rest[0] == "--":
        return rest[1:]
    return rest


# =============================================================================
# Commands
# =============================================================================


def cmd_list(store: CacheStore) -> int:
    """Print every cache entry."""
    count = 0
    for record in store.records():
        log.table_row(record.build_mode.value, record.script_path, col1_width=8)
        log.debug(f"  -> {record.binary_path}")
        count += 1
    log.info(f"{count} cache entr{'y' if count == 1 else 'ies'} in {store.root}")
    return 0


def cmd_clean_all(store: CacheStore) -> int:
    """Remove every cache entry."""
    removed = store.clean_all()
    log.success(f"Removed {removed} cache entr{'y' if removed == 1 else 'ies'} from {store.root}")
    return 0


def _configure_logging(verbose: bool, no_color: bool) -> None:
    log.set_verbose(verbose)
    if no_color:
        log.set_color(False)
    if verbose:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(f"[{NAME}] %(name)s: %(message)s"))
        root = logging.getLogger(NAME)
        if not root.handlers:
            root.addHandler(handler)
        root.setLevel(logging.DEBUG)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    if argv is None:
        argv = sys.argv[1:]

    own_argv, script_args = split_argv(list(argv))
    parser = create_parser()
    args = parser.parse_args(own_argv)

    _configure_logging(args.verbose, args.no_color)

    try:
        settings = load_settings(config_path(args.config))
        # Resolved once; everything below receives it explicitly
        cache_root = resolve_cache_root(settings)
        store = CacheStore(cache_root)

        if args.list:
            return cmd_list(store)
        if args.clean_all:
            return cmd_clean_all(store)
        if args.script is None:
            parser.error("the following arguments are required: script")

        config = LaunchConfig(
            script=canonicalize(args.script),
            cache_root=cache_root,
            args=script_args,
            settings=settings,
            debug=args.debug,
            verbose=args.verbose,
            force=args.force,
            clean=args.clean,
            clean_only=args.clean_only,
            hash_only=args.hash_only or settings.hash_only,
        )
        return Launcher(config, store).launch()

    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 130
    except ScriptrError as e:
        log.error(str(e))
        if args.verbose:
            import traceback
            traceback.print_exc()
        return e.exit_code


if __name__ == "__main__":
    sys.exit(main())
