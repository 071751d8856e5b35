"""Error taxonomy for scriptr. Each error maps to a distinct process exit code."""

from __future__ import annotations


class ScriptrError(Exception):
    """Base class for errors reported by the launcher."""

    exit_code = 1


class ReadFailure(ScriptrError):
    """The script could not be resolved or read."""

    exit_code = 3


class LockFailed(ScriptrError):
    """The per-script lock could not be obtained."""

    exit_code = 4


class BuildFailed(ScriptrError):
    """The build tool exited nonzero or could not be started."""

    exit_code = 5


class ArtifactNotFound(ScriptrError):
    """The build succeeded but reported no executable artifact.

    This is a violation of the build tool's output contract, not a
    transient condition.
    """

    exit_code = 6


class LaunchFailed(ScriptrError):
    """The resolved binary could not be executed."""

    exit_code = 7


class ConfigError(ScriptrError):
    """Settings or cache root could not be resolved."""

    exit_code = 8


class CacheWriteFailed(ScriptrError):
    """A cache record could not be written or removed."""

    exit_code = 9
