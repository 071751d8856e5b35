"""
Cache records for scriptr.

One JSON record per script, keyed by a BLAKE3 hash of the script's
canonical path. Records are written atomically (temp file + fsync +
os.replace) so a concurrent reader sees either the old record or the new
one, never a torn write.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Iterator, Optional

from scriptr.build.config import BuildMode
from scriptr.build.hashing import path_key
from scriptr.build.locking import ScriptLock, acquire
from scriptr.core.errors import CacheWriteFailed

_log = logging.getLogger(__name__)

RECORD_VERSION = 1
RECORD_SUFFIX = ".json"
TMP_SUFFIX = ".tmp"


# =============================================================================
# Record
# =============================================================================


@dataclass(frozen=True)
class CacheRecord:
    """Last-known-good build fingerprint for one script."""

    script_path: str
    recorded_mtime: int  # nanoseconds since the epoch
    content_hash: str  # BLAKE3 hex
    binary_path: str
    build_mode: BuildMode

    def with_mtime(self, mtime: int) -> "CacheRecord":
        """Copy of this record with a refreshed modification time."""
        return replace(self, recorded_mtime=mtime)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "version": RECORD_VERSION,
            "script_path": self.script_path,
            "recorded_mtime": self.recorded_mtime,
            "content_hash": self.content_hash,
            "binary_path": self.binary_path,
            "build_mode": self.build_mode.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheRecord":
        """Create from dict. Raises ValueError/KeyError/TypeError on bad input."""
        if data.get("version") != RECORD_VERSION:
            raise ValueError(f"unsupported record version {data.get('version')!r}")
        mtime = data["recorded_mtime"]
        if not isinstance(mtime, int) or isinstance(mtime, bool):
            raise TypeError("recorded_mtime must be an integer")
        fields = ("script_path", "content_hash", "binary_path")
        if not all(isinstance(data[name], str) for name in fields):
            raise TypeError("record paths and hash must be strings")
        return cls(
            script_path=data["script_path"],
            recorded_mtime=mtime,
            content_hash=data["content_hash"],
            binary_path=data["binary_path"],
            build_mode=BuildMode(data["build_mode"]),
        )


# =============================================================================
# Store
# =============================================================================


class CacheStore:
    """Reads and writes cache records under a single root directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def key(self, script: Path) -> str:
        return path_key(script)

    def record_path(self, script: Path) -> Path:
        return self.root / f"{self.key(script)}{RECORD_SUFFIX}"

    def lock(self, script: Path) -> ScriptLock:
        """Lock guarding this script's record and build."""
        return acquire(self.root, self.key(script))

    def _load(self, path: Path) -> Optional[CacheRecord]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return CacheRecord.from_dict(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            _log.debug("ignoring unreadable record %s: %s", path, e)
            return None

    def read(self, script: Path) -> Optional[CacheRecord]:
        """Return the record for a script, or None for a cold start.

        A missing, unparseable or foreign record (one whose stored path
        differs, i.e. a key collision) all read as None.
        """
        path = self.record_path(script)
        record = self._load(path)
        if record is not None and record.script_path != str(script):
            _log.debug(
                "record %s belongs to %s, not %s; treating as cold start",
                path, record.script_path, script,
            )
            return None
        return record

    def write(self, record: CacheRecord) -> Path:
        """Atomically replace the record for ``record.script_path``.

        Raises:
            CacheWriteFailed: The record could not be written; any previous
                record is left as it was.
        """
        path = self.record_path(Path(record.script_path))
        payload = json.dumps(record.to_dict(), indent=2) + "\n"
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self._replace(path, payload)
        except OSError as e:
            raise CacheWriteFailed(f"cannot write cache record {path}: {e}") from e
        return path

    def _replace(self, path: Path, payload: str) -> None:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=str(self.root),
            prefix=f"{path.stem}.",
            suffix=TMP_SUFFIX,
            delete=False,
        ) as tf:
            tmp_path = Path(tf.name)
            try:
                tf.write(payload)
                tf.flush()
                os.fsync(tf.fileno())
            except BaseException:
                tf.close()
                tmp_path.unlink(missing_ok=True)
                raise
        try:
            os.replace(tmp_path, path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def remove(self, script: Path) -> bool:
        """Delete one script's record. Returns True if a record existed.

        Raises:
            CacheWriteFailed: The record exists but could not be deleted.
        """
        path = self.record_path(script)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheWriteFailed(f"cannot remove cache record {path}: {e}") from e

    def records(self) -> Iterator[CacheRecord]:
        """Iterate every readable record in the store."""
        if not self.root.is_dir():
            return
        for path in sorted(self.root.glob(f"*{RECORD_SUFFIX}")):
            record = self._load(path)
            if record is not None:
                yield record

    def clean_all(self) -> int:
        """Delete every record, each under its own lock, plus stray temp files.

        Lock files are left in place: unlinking one could let a waiter and a
        newcomer lock different inodes for the same script.

        Returns:
            Number of records removed.
        """
        if not self.root.is_dir():
            return 0

        removed = 0
        try:
            for path in sorted(self.root.glob(f"*{RECORD_SUFFIX}")):
                with acquire(self.root, path.stem):
                    try:
                        path.unlink()
                        removed += 1
                    except FileNotFoundError:
                        pass
            for tmp in self.root.glob(f"*{TMP_SUFFIX}"):
                with acquire(self.root, tmp.name.split(".", 1)[0]):
                    tmp.unlink(missing_ok=True)
        except OSError as e:
            raise CacheWriteFailed(f"cannot clean cache {self.root}: {e}") from e
        return removed
