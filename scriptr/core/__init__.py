"""
scriptr.core - Foundation layer for the scriptr launcher.

Exports logging, error types, path helpers and timing utilities.
"""

from scriptr.core.utils import (
    # Logging
    log,
    Logger,
    # Constants
    NAME,
    CACHE_DIR_ENV,
    CONFIG_ENV,
    HASH_ONLY_ENV,
    # Path utilities
    platform_cache_home,
    platform_config_home,
    canonicalize,
    env_flag,
)
from scriptr.core.errors import (
    ScriptrError,
    ReadFailure,
    LockFailed,
    BuildFailed,
    ArtifactNotFound,
    LaunchFailed,
    ConfigError,
    CacheWriteFailed,
)
from scriptr.core.timing import TimingContext, format_duration, timing_summary

__all__ = [
    # Logging
    "log",
    "Logger",
    # Constants
    "NAME",
    "CACHE_DIR_ENV",
    "CONFIG_ENV",
    "HASH_ONLY_ENV",
    # Path utilities
    "platform_cache_home",
    "platform_config_home",
    "canonicalize",
    "env_flag",
    # Errors
    "ScriptrError",
    "ReadFailure",
    "LockFailed",
    "BuildFailed",
    "ArtifactNotFound",
    "LaunchFailed",
    "ConfigError",
    "CacheWriteFailed",
    # Timing
    "TimingContext",
    "format_duration",
    "timing_summary",
]
