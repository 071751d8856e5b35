"""
Shared pytest fixtures for scriptr tests.

Provides an isolated cache root, a sample script, and a fake ``cargo``
(a Python script speaking Cargo's JSON message format) so launcher tests
run without a Rust toolchain.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
"""

from __future__ import annotations

import logging
import os
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pytest

from scriptr.build.config import LaunchConfig, Settings
from scriptr.core.utils import NAME, log


# =============================================================================
# Fake Build Tool
# =============================================================================

FAKE_CARGO_SOURCE = textwrap.dedent(
    '''
    import json, os, stat, sys, time

    argv = sys.argv[1:]
    script = argv[argv.index("--manifest-path") + 1]
    mode = "release" if "--release" in argv else "debug"

    with open(os.environ["FAKE_CARGO_LOG"], "a") as f:
        f.write(" ".join(argv) + "\\n")

    time.sleep(float(os.environ.get("FAKE_CARGO_DELAY", "0")))

    def emit(message):
        print(json.dumps(message), flush=True)

    exit_code = int(os.environ.get("FAKE_CARGO_EXIT", "0"))
    if exit_code:
        emit({"reason": "compiler-message",
              "message": {"rendered": "error: expected one of `;` or `}`\\n"}})
        emit({"reason": "build-finished", "success": False})
        sys.exit(exit_code)

    if os.environ.get("FAKE_CARGO_NO_ARTIFACT"):
        emit({"reason": "build-finished", "success": True})
        sys.exit(0)

    name = os.path.splitext(os.path.basename(script))[0]
    out_dir = os.path.join(os.environ["FAKE_CARGO_TARGET"], mode)
    os.makedirs(out_dir, exist_ok=True)
    binary = os.path.join(out_dir, name)
    with open(binary, "w") as f:
        f.write(
            "#!/bin/sh\\n"
            "echo built from " + script + "\\n"
            'for a in "$@"; do echo "arg:$a"; done\\n'
            'echo "marker:$SCRIPTR_TEST_MARKER"\\n'
            'exit "${FAKE_BINARY_EXIT:-0}"\\n'
        )
    os.chmod(binary, os.stat(binary).st_mode | stat.S_IEXEC)

    print("not json, e.g. a warning from a build script", flush=True)
    emit({"reason": "compiler-artifact", "target": {"kind": ["lib"]},
          "executable": None})
    emit({"reason": "compiler-artifact", "target": {"kind": ["bin"]},
          "executable": binary})
    emit({"reason": "build-finished", "success": True})
    '''
)


@dataclass
class FakeCargo:
    """Handle on the fake build tool installed for a test."""

    path: Path
    log_path: Path
    target: Path

    @property
    def settings(self) -> Settings:
        return Settings(cargo=[sys.executable, str(self.path)], toolchain=None)

    def calls(self) -> list[str]:
        if not self.log_path.exists():
            return []
        return self.log_path.read_text().splitlines()

    def binary(self, name: str, mode: str = "release") -> Path:
        return self.target / mode / name


@pytest.fixture
def fake_cargo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeCargo:
    """Install the fake cargo and point its environment at tmp_path."""
    tool_dir = tmp_path / "tool"
    tool_dir.mkdir()
    path = tool_dir / "fake_cargo.py"
    path.write_text(FAKE_CARGO_SOURCE)

    fake = FakeCargo(
        path=path,
        log_path=tool_dir / "calls.log",
        target=tmp_path / "target",
    )
    monkeypatch.setenv("FAKE_CARGO_LOG", str(fake.log_path))
    monkeypatch.setenv("FAKE_CARGO_TARGET", str(fake.target))
    monkeypatch.delenv("FAKE_CARGO_EXIT", raising=False)
    monkeypatch.delenv("FAKE_CARGO_NO_ARTIFACT", raising=False)
    monkeypatch.delenv("FAKE_CARGO_DELAY", raising=False)
    return fake


# =============================================================================
# Scripts and Config
# =============================================================================

HELLO_RS = """\
#!/usr/bin/env scriptr
---
[dependencies]
---

fn main() {
    println!("hello");
}
"""


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def script(tmp_path: Path) -> Path:
    """A canonical path to a small single-file package."""
    path = tmp_path / "scripts" / "hello.rs"
    path.parent.mkdir()
    path.write_text(HELLO_RS)
    return path.resolve()


@pytest.fixture
def make_config(
    script: Path, cache_root: Path, fake_cargo: FakeCargo
) -> Callable[..., LaunchConfig]:
    """Factory for LaunchConfig wired to the fake cargo."""

    def _make(**overrides) -> LaunchConfig:
        values = dict(script=script, cache_root=cache_root, settings=fake_cargo.settings)
        values.update(overrides)
        return LaunchConfig(**values)

    return _make


@pytest.fixture
def set_mtime() -> Callable[[Path, int], None]:
    """Setter for a file's atime and mtime, to the exact nanosecond."""

    def _set(path: Path, mtime_ns: int) -> None:
        os.utime(path, ns=(mtime_ns, mtime_ns))

    return _set


@pytest.fixture(autouse=True)
def _reset_logger():
    """Keep the global logger's flags from leaking between tests."""
    log.set_verbose(False)
    log.set_color(False)
    yield
    log.set_verbose(False)
    library_log = logging.getLogger(NAME)
    for handler in list(library_log.handlers):
        library_log.removeHandler(handler)
    library_log.setLevel(logging.NOTSET)


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )
