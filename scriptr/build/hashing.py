"""
Content fingerprints for scripts.

BLAKE3 is used both for the script content hash and for the opaque
record key derived from the script's canonical path.
"""

from __future__ import annotations

import os
from pathlib import Path

from blake3 import blake3

from scriptr.core.errors import ReadFailure

CHUNK_SIZE = 64 * 1024


def file_hash(path: Path) -> str:
    """Hash a file's full byte content with streaming reads.

    Returns:
        BLAKE3 hex digest.

    Raises:
        ReadFailure: If the file cannot be read.
    """
    hasher = blake3()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hasher.update(chunk)
    except OSError as e:
        raise ReadFailure(f"cannot read {path}: {e}") from e
    return hasher.hexdigest()


def path_key(path: Path) -> str:
    """Filesystem-safe cache key for a canonical script path."""
    return blake3(os.fsencode(path)).hexdigest()


def file_mtime(path: Path) -> int:
    """Modification time in integer nanoseconds.

    Raises:
        ReadFailure: If the file cannot be stat'ed.
    """
    try:
        return os.stat(path).st_mtime_ns
    except OSError as e:
        raise ReadFailure(f"cannot stat {path}: {e}") from e
