"""
Two-level staleness detection.

Untouched scripts cost one stat comparison, touched-but-unchanged scripts
cost one content hash, changed scripts cost a rebuild.
"""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from scriptr.build.caching import CacheRecord
from scriptr.build.config import BuildMode
from scriptr.build.hashing import file_hash


class StaleReason(str, enum.Enum):
    NO_RECORD = "no-record"
    MODE_MISMATCH = "mode-mismatch"
    ARTIFACT_MISSING = "artifact-missing"
    CONTENT_CHANGED = "content-changed"
    FORCED = "forced"


@dataclass(frozen=True)
class Fresh:
    """The cached binary is current.

    ``refreshed`` is set when the mtime moved but the content did not; the
    caller persists it so the next run takes the fast path again.
    """

    binary_path: Path
    refreshed: Optional[CacheRecord] = None


@dataclass(frozen=True)
class Stale:
    """A rebuild is required.

    ``content_hash`` carries the hash if it was computed while deciding.
    """

    reason: StaleReason
    content_hash: Optional[str] = None


Decision = Union[Fresh, Stale]


def check_staleness(
    record: Optional[CacheRecord],
    script: Path,
    mtime: int,
    mode: BuildMode,
    hash_only: bool = False,
    hasher: Optional[Callable[[Path], str]] = None,
) -> Decision:
    """Decide whether ``record`` still describes a runnable, current binary.

    Rules, in order:
      1. no record, or recorded mode differs -> Stale
      2. recorded binary missing on disk -> Stale
      3. mtime unchanged (skipped with hash_only) -> Fresh, content not read
      4. content hash unchanged -> Fresh, record refreshed with the new mtime
      5. otherwise -> Stale
    """
    if record is None:
        return Stale(StaleReason.NO_RECORD)
    if record.build_mode != mode:
        return Stale(StaleReason.MODE_MISMATCH)

    binary = Path(record.binary_path)
    if not os.path.isfile(binary):
        return Stale(StaleReason.ARTIFACT_MISSING)

    if not hash_only and mtime == record.recorded_mtime:
        return Fresh(binary)

    current = (hasher or file_hash)(script)
    if current == record.content_hash:
        refreshed = None
        if mtime != record.recorded_mtime:
            refreshed = record.with_mtime(mtime)
        return Fresh(binary, refreshed)

    return Stale(StaleReason.CONTENT_CHANGED, content_hash=current)
