"""
scriptr - Fast launcher for Rust single-file packages.

Runs a ``cargo -Zscript`` file like an interpreted program: the build is
cached per script and redone only when the script's content changes.

Usage:
    scriptr [options] <script.rs> [--] [args...]

Options:
    -d, --debug       Build in debug mode (default is release)
    -v, --verbose     Verbose output
    -f, --force       Force rebuild (ignore cache)
    -c, --clean       Clean cache before building
    -C, --clean-only  Clean cache and exit (don't run)
    -H, --hash-only   Always compare content hashes, never trust mtime
"""

from .cli import __version__, main

__all__ = ["__version__", "main"]
