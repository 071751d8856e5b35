"""
Tests for the two-level staleness check.

The hasher is a counting spy so each test can assert exactly how often
script content was read.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from scriptr.build.caching import CacheRecord
from scriptr.build.config import BuildMode
from scriptr.build.staleness import Fresh, Stale, StaleReason, check_staleness

MTIME = 1_700_000_000_000_000_000
HASH = "ab" * 32


class SpyHasher:
    def __init__(self, result: str = HASH) -> None:
        self.result = result
        self.calls: list[Path] = []

    def __call__(self, path: Path) -> str:
        self.calls.append(path)
        return self.result


@pytest.fixture
def binary(tmp_path: Path) -> Path:
    path = tmp_path / "target" / "release" / "hello"
    path.parent.mkdir(parents=True)
    path.write_text("#!/bin/sh\n")
    return path


@pytest.fixture
def record(script: Path, binary: Path) -> CacheRecord:
    return CacheRecord(
        script_path=str(script),
        recorded_mtime=MTIME,
        content_hash=HASH,
        binary_path=str(binary),
        build_mode=BuildMode.RELEASE,
    )


@pytest.mark.evergreen
class TestStaleCauses:
    """Rules 1, 2 and 5: reasons a record cannot be trusted."""

    def test_no_record(self, script: Path) -> None:
        spy = SpyHasher()
        decision = check_staleness(None, script, MTIME, BuildMode.RELEASE, hasher=spy)

        assert decision == Stale(StaleReason.NO_RECORD)
        assert spy.calls == []

    @pytest.mark.parametrize(
        "recorded, requested",
        [(BuildMode.RELEASE, BuildMode.DEBUG), (BuildMode.DEBUG, BuildMode.RELEASE)],
    )
    def test_mode_mismatch(self, script: Path, record: CacheRecord, recorded, requested) -> None:
        record = replace(record, build_mode=recorded)
        spy = SpyHasher()

        decision = check_staleness(record, script, MTIME, requested, hasher=spy)

        assert decision == Stale(StaleReason.MODE_MISMATCH)
        assert spy.calls == []

    def test_artifact_missing(self, script: Path, record: CacheRecord, binary: Path) -> None:
        binary.unlink()

        decision = check_staleness(record, script, MTIME, BuildMode.RELEASE, hasher=SpyHasher())

        assert decision == Stale(StaleReason.ARTIFACT_MISSING)

    def test_content_changed_carries_hash(self, script: Path, record: CacheRecord) -> None:
        spy = SpyHasher(result="cd" * 32)

        decision = check_staleness(record, script, MTIME + 1, BuildMode.RELEASE, hasher=spy)

        assert decision == Stale(StaleReason.CONTENT_CHANGED, content_hash="cd" * 32)
        assert len(spy.calls) == 1


@pytest.mark.evergreen
class TestFreshPaths:
    """Rules 3 and 4: the mtime fast path and the hash fallback."""

    def test_mtime_fast_path_never_hashes(self, script: Path, record: CacheRecord, binary: Path) -> None:
        spy = SpyHasher()

        decision = check_staleness(record, script, MTIME, BuildMode.RELEASE, hasher=spy)

        assert decision == Fresh(binary)
        assert spy.calls == []

    def test_touched_unchanged_hashes_once_and_refreshes(
        self, script: Path, record: CacheRecord, binary: Path
    ) -> None:
        spy = SpyHasher()

        decision = check_staleness(record, script, MTIME + 5, BuildMode.RELEASE, hasher=spy)

        assert isinstance(decision, Fresh)
        assert decision.binary_path == binary
        assert decision.refreshed == record.with_mtime(MTIME + 5)
        assert spy.calls == [script]

    def test_hash_only_skips_mtime_shortcut(self, script: Path, record: CacheRecord) -> None:
        spy = SpyHasher()

        decision = check_staleness(
            record, script, MTIME, BuildMode.RELEASE, hash_only=True, hasher=spy
        )

        assert isinstance(decision, Fresh)
        assert decision.refreshed is None
        assert len(spy.calls) == 1

    def test_hash_only_detects_change_with_same_mtime(self, script: Path, record: CacheRecord) -> None:
        spy = SpyHasher(result="ee" * 32)

        decision = check_staleness(
            record, script, MTIME, BuildMode.RELEASE, hash_only=True, hasher=spy
        )

        assert isinstance(decision, Stale)
        assert decision.reason is StaleReason.CONTENT_CHANGED

    def test_default_hasher_reads_script(self, script: Path, record: CacheRecord) -> None:
        """Without a spy the real BLAKE3 hash is compared."""
        decision = check_staleness(record, script, MTIME + 1, BuildMode.RELEASE)

        assert isinstance(decision, Stale)
        assert decision.content_hash is not None
        assert len(decision.content_hash) == 64
