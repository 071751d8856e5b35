"""
Launcher for scriptr.

Drives one invocation: lock the script, decide freshness, rebuild when
needed, record the result, release the lock, then exec the binary.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from scriptr.build.caching import CacheRecord, CacheStore
from scriptr.build.config import LaunchConfig
from scriptr.build.hashing import file_hash, file_mtime
from scriptr.build.phases import cargo_build, exec_binary
from scriptr.build.staleness import Decision, Fresh, Stale, StaleReason, check_staleness
from scriptr.core.timing import TimingContext, timing_summary
from scriptr.core.utils import log


@dataclass(frozen=True)
class LaunchResult:
    """Outcome of the locked part of an invocation.

    ``binary`` is None when the invocation ends without running anything
    (clean-only).
    """

    binary: Optional[Path]
    built: bool = False
    reason: Optional[StaleReason] = None


class Launcher:
    """Runs the read-decide-build-write sequence for one script."""

    def __init__(self, config: LaunchConfig, store: Optional[CacheStore] = None):
        self.config = config
        self.store = store if store is not None else CacheStore(config.cache_root)
        self.timings: dict[str, float] = {}

    def _clean(self) -> None:
        script = self.config.script
        if self.store.remove(script):
            log.debug(f"Removed cache: {self.store.record_path(script)}")
        else:
            log.debug("No cache to clean")

    def _decide(self, record: Optional[CacheRecord], mtime: int) -> Decision:
        if self.config.force:
            log.debug("Force rebuild requested")
            return Stale(StaleReason.FORCED)

        if record is not None:
            log.debug(f"Cached mtime: {record.recorded_mtime}, current mtime: {mtime}")
        decision = check_staleness(
            record,
            self.config.script,
            mtime,
            self.config.build_mode,
            hash_only=self.config.hash_only,
        )
        if isinstance(decision, Fresh):
            hashed = decision.refreshed is not None or self.config.hash_only
            how = "hash unchanged" if hashed else "mtime unchanged"
            log.debug(f"{how}, using cached binary: {decision.binary_path}")
        else:
            log.debug(f"Cache is stale ({decision.reason.value})")
        return decision

    def _build(self, mtime: int, content_hash: Optional[str]) -> CacheRecord:
        script = self.config.script
        # Fingerprint before building: an edit made mid-build stays detectable
        if content_hash is None:
            content_hash = file_hash(script)

        log.debug("Building script...")
        with TimingContext(self.timings, "build"):
            binary = cargo_build(
                script,
                self.config.build_mode,
                self.config.settings,
                verbose=self.config.verbose,
            )

        return CacheRecord(
            script_path=str(script),
            recorded_mtime=mtime,
            content_hash=content_hash,
            binary_path=str(binary),
            build_mode=self.config.build_mode,
        )

    def run(self) -> LaunchResult:
        """Run the locked sequence and return the binary to launch.

        Raises:
            ReadFailure, LockFailed, BuildFailed, ArtifactNotFound
        """
        script = self.config.script
        log.debug(f"Script: {script}")
        log.debug(f"Cache path: {self.store.record_path(script)}")

        with TimingContext(self.timings, "lock"):
            lock = self.store.lock(script)
            lock.acquire()
        try:
            if self.config.clean or self.config.clean_only:
                self._clean()
                if self.config.clean_only:
                    log.debug("Clean complete, exiting")
                    return LaunchResult(binary=None)

            with TimingContext(self.timings, "decide"):
                mtime = file_mtime(script)
                record = self.store.read(script)
                if record is None:
                    log.debug("No cache found")
                decision = self._decide(record, mtime)

            if isinstance(decision, Fresh):
                if decision.refreshed is not None:
                    with TimingContext(self.timings, "record"):
                        self.store.write(decision.refreshed)
                return LaunchResult(binary=decision.binary_path)

            new_record = self._build(mtime, decision.content_hash)
            log.debug("Writing cache metadata")
            with TimingContext(self.timings, "record"):
                self.store.write(new_record)
            return LaunchResult(
                binary=Path(new_record.binary_path),
                built=True,
                reason=decision.reason,
            )
        finally:
            lock.release()

    def launch(self) -> int:
        """Run, then replace this process with the binary.

        Returns an exit code only where the process cannot be replaced, or
        when nothing is launched (clean-only).
        """
        result = self.run()
        if self.config.verbose:
            log.debug(timing_summary(self.timings))
        if result.binary is None:
            return 0
        log.debug(f"Executing: {result.binary}")
        return exec_binary(result.binary, self.config.args)
