"""Wall-clock timing utilities for launcher phases."""

import time
from typing import Optional


class TimingContext:
    """Context manager that records wall-clock duration into a dict.

    Usage:
        timings = {}
        with TimingContext(timings, "decide"):
            check()
        # timings["decide"] == 0.0012

    Durations are accumulated, so re-entering a key adds to it.
    """

    def __init__(self, timings: dict[str, float], key: str) -> None:
        self.timings = timings
        self.key = key
        self._start: Optional[float] = None

    def __enter__(self) -> "TimingContext":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._start is not None:
            elapsed = time.perf_counter() - self._start
            self.timings[self.key] = self.timings.get(self.key, 0.0) + elapsed
        return None  # Don't suppress exceptions


def format_duration(seconds: float) -> str:
    """Format seconds as human-readable duration.

    Examples:
        0.0042 -> "4.2ms"
        0.5 -> "0.50s"
        65.3 -> "1m 5.3s"
    """
    if seconds < 1:
        if seconds < 0.1:
            return f"{seconds * 1000:.1f}ms"
        return f"{seconds:.2f}s"
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes = int(seconds // 60)
    remaining = seconds % 60
    return f"{minutes}m {remaining:.1f}s"


def timing_summary(timings: dict[str, float]) -> str:
    """Format a timings dict as a summary string.

    Example output:
        lock: 0.1ms | decide: 0.3ms | total: 0.4ms
    """
    if not timings:
        return "(no timing data)"

    parts = [f"{k}: {format_duration(v)}" for k, v in timings.items()]
    total = sum(timings.values())
    parts.append(f"total: {format_duration(total)}")
    return " | ".join(parts)
