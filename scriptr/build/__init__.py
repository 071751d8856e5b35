"""
scriptr.build - Fingerprint cache and build orchestration.

Provides the cache store, per-script locking, the two-level staleness
check, Cargo invocation, and the launcher tying them together.
"""

from scriptr.build.config import (
    BuildMode,
    Settings,
    LaunchConfig,
    config_path,
    load_settings,
    resolve_cache_root,
)
from scriptr.build.caching import CacheRecord, CacheStore
from scriptr.build.locking import ScriptLock, acquire
from scriptr.build.staleness import Fresh, Stale, StaleReason, check_staleness
from scriptr.build.phases import build_command, cargo_build, exec_binary
from scriptr.build.orchestrator import Launcher, LaunchResult

__all__ = [
    # Config
    "BuildMode",
    "Settings",
    "LaunchConfig",
    "config_path",
    "load_settings",
    "resolve_cache_root",
    # Cache store
    "CacheRecord",
    "CacheStore",
    "ScriptLock",
    "acquire",
    # Staleness
    "Fresh",
    "Stale",
    "StaleReason",
    "check_staleness",
    # Phases
    "build_command",
    "cargo_build",
    "exec_binary",
    # Launcher
    "Launcher",
    "LaunchResult",
]
