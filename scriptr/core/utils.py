"""
Shared utilities for the scriptr launcher.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional, TextIO

from scriptr.core.errors import ConfigError, ReadFailure

# =============================================================================
# Constants
# =============================================================================

NAME = "scriptr"

# Environment overrides
CACHE_DIR_ENV = "SCRIPTR_CACHE_DIR"
CONFIG_ENV = "SCRIPTR_CONFIG"
HASH_ONLY_ENV = "SCRIPTR_HASH_ONLY"

TRUTHY = {"1", "true", "yes", "on"}


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Colored stderr logger with --no-color and --verbose support.

    Everything goes to stderr: stdout belongs to the script being launched.
    """

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(
        self,
        use_color: Optional[bool] = None,
        verbose: bool = False,
        stream: Optional[TextIO] = None,
    ):
        self._stream = stream
        if use_color is None:
            self._use_color = self.stream.isatty()
        else:
            self._use_color = use_color
        self.verbose = verbose

    @property
    def stream(self) -> TextIO:
        # Resolved late so pytest's capsys replacement is honoured
        return self._stream if self._stream is not None else sys.stderr

    def set_color(self, use_color: bool) -> None:
        """Set whether to use color output."""
        self._use_color = use_color

    def set_verbose(self, verbose: bool) -> None:
        """Enable or disable the debug channel."""
        self.verbose = verbose

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def _emit(self, message: str) -> None:
        print(f"{self._color(f'[{NAME}]', 'cyan')} {message}", file=self.stream)

    def info(self, message: str) -> None:
        """Print an info message."""
        self._emit(message)

    def success(self, message: str) -> None:
        """Print a success message."""
        self._emit(f"{self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        self._emit(f"{self._color('[WARN]', 'yellow')} {message}")

    def error(self, message: str) -> None:
        """Print an error message."""
        self._emit(f"{self._color('[ERROR]', 'red')} {message}")

    def debug(self, message: str) -> None:
        """Print a message only when verbose output is on."""
        if self.verbose:
            self._emit(self._color(message, "dim"))

    def table_row(self, col1: str, col2: str, col1_width: int = 30) -> None:
        """Print a table row with two columns."""
        self._emit(f"{col1:<{col1_width}} {col2}")


# Global logger instance
log = Logger()


# =============================================================================
# Path Utilities
# =============================================================================


def _home() -> Path:
    try:
        return Path.home()
    except RuntimeError as e:
        raise ConfigError(f"cannot determine home directory: {e}") from e


def platform_cache_home() -> Path:
    """Return the user-scoped cache directory for this platform."""
    if sys.platform == "darwin":
        return _home() / "Library" / "Caches"
    if os.name == "nt":
        local = os.environ.get("LOCALAPPDATA")
        if local:
            return Path(local)
        return _home() / "AppData" / "Local"
    xdg = os.environ.get("XDG_CACHE_HOME", "")
    return Path(xdg) if xdg else _home() / ".cache"


def platform_config_home() -> Path:
    """Return the user-scoped configuration directory for this platform."""
    if os.name == "nt":
        roaming = os.environ.get("APPDATA")
        if roaming:
            return Path(roaming)
        return _home() / "AppData" / "Roaming"
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    return Path(xdg) if xdg else _home() / ".config"


def env_flag(name: str) -> bool:
    """True when the environment variable holds a truthy value."""
    return os.environ.get(name, "").strip().lower() in TRUTHY


def canonicalize(script: Path) -> Path:
    """Resolve a script path to its canonical absolute form (symlinks followed).

    Raises ReadFailure when the script does not exist.
    """
    try:
        path = Path(script).expanduser().resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise ReadFailure(f"cannot resolve path {str(script)!r}: {e}") from e
    if not path.is_file():
        raise ReadFailure(f"not a file: {path}")
    return path
