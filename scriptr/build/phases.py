"""
Build phases for scriptr.

Individual operations the launcher strings together: invoking Cargo's
single-file build, reading its JSON message stream, and handing the
process over to the built binary.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import IO, Any, Optional

from scriptr.build.config import BuildMode, Settings
from scriptr.core.errors import ArtifactNotFound, BuildFailed, LaunchFailed
from scriptr.core.utils import log


# =============================================================================
# Build Command
# =============================================================================


def build_command(
    script: Path,
    mode: BuildMode,
    settings: Settings,
    verbose: bool = False,
) -> list[str]:
    """Assemble the ``cargo -Zscript build`` invocation for a script."""
    cmd = list(settings.cargo)
    if settings.toolchain:
        cmd.append(f"+{settings.toolchain}")
    cmd += [
        "-Zscript",
        "build",
        "--manifest-path",
        str(script),
        "--message-format=json",
    ]
    if not verbose:
        cmd.append("--quiet")
    if mode is BuildMode.RELEASE:
        cmd.append("--release")
    cmd += settings.extra_build_args
    return cmd


# =============================================================================
# Message Stream
# =============================================================================


class MessageScanner:
    """Consumes Cargo JSON messages and tracks the produced executable.

    Executables from ``bin`` targets take precedence over other executable
    artifacts; within a kind the last one reported wins.
    """

    def __init__(self, err: Optional[IO[str]] = None) -> None:
        self._err = err
        self.bin_executable: Optional[str] = None
        self.other_executable: Optional[str] = None
        self.finished_ok: Optional[bool] = None

    @property
    def err(self) -> IO[str]:
        return self._err if self._err is not None else sys.stderr

    @property
    def executable(self) -> Optional[Path]:
        found = self.bin_executable or self.other_executable
        return Path(found) if found else None

    def feed(self, line: str) -> None:
        text = line.rstrip("\n")
        if not text:
            return
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            # Not part of the JSON stream; pass it through
            self._forward(text)
            return
        if isinstance(message, dict):
            self._handle(message)

    def _handle(self, message: dict[str, Any]) -> None:
        reason = message.get("reason")
        if reason == "compiler-artifact":
            executable = message.get("executable")
            if isinstance(executable, str) and executable:
                kinds = (message.get("target") or {}).get("kind") or []
                if "bin" in kinds:
                    self.bin_executable = executable
                else:
                    self.other_executable = executable
        elif reason == "compiler-message":
            rendered = (message.get("message") or {}).get("rendered")
            if rendered:
                self._forward(rendered.rstrip("\n"))
        elif reason == "build-finished":
            self.finished_ok = bool(message.get("success"))

    def _forward(self, text: str) -> None:
        print(text, file=self.err, flush=True)


# =============================================================================
# Build Operations
# =============================================================================


def cargo_build(
    script: Path,
    mode: BuildMode,
    settings: Settings,
    verbose: bool = False,
) -> Path:
    """Build a single-file package and return the produced executable.

    The tool's stderr is inherited so progress and errors appear live;
    rendered diagnostics from the JSON stream are echoed to stderr.

    Raises:
        BuildFailed: The tool could not be started or exited nonzero.
        ArtifactNotFound: The build succeeded without reporting an executable.
    """
    cmd = build_command(script, mode, settings, verbose)
    log.debug(f"Running: {' '.join(cmd)}")

    try:
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise BuildFailed(f"failed to spawn {cmd[0]}: {e}") from e

    scanner = MessageScanner()
    try:
        assert proc.stdout is not None
        for line in proc.stdout:
            scanner.feed(line)
        returncode = proc.wait()
    except BaseException:
        proc.kill()
        proc.wait()
        raise

    if returncode != 0:
        raise BuildFailed(f"{cmd[0]} build failed with exit status {returncode}")
    if scanner.finished_ok is False:
        raise BuildFailed(f"{cmd[0]} exited 0 but reported an unsuccessful build")

    executable = scanner.executable
    if executable is None:
        raise ArtifactNotFound(
            f"{cmd[0]} reported success but no executable artifact for {script}"
        )
    return executable.resolve()


# =============================================================================
# Process Replacement
# =============================================================================

# Windows has no exec that keeps the process (and its console) identity
EXEC_REPLACES_PROCESS = os.name == "posix"


def exec_binary(binary: Path, args: list[str]) -> int:
    """Replace the current process with ``binary``.

    On POSIX this never returns. Where exec semantics are unavailable
    (Windows) the binary runs as a child and its exit code is returned.
    The environment is inherited unchanged either way.

    Raises:
        LaunchFailed: The binary could not be executed.
    """
    argv = [str(binary), *args]
    sys.stdout.flush()
    sys.stderr.flush()

    if EXEC_REPLACES_PROCESS:
        try:
            os.execv(argv[0], argv)
        except OSError as e:
            raise LaunchFailed(f"cannot execute {binary}: {e}") from e
        raise LaunchFailed(f"exec of {binary} returned")

    try:
        return subprocess.run(argv).returncode
    except OSError as e:
        raise LaunchFailed(f"cannot execute {binary}: {e}") from e
