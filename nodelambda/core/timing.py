"""Wall-clock timing for build phases."""

import time
from typing import Optional


class TimingContext:
    """Context manager that records a phase's duration in milliseconds.

    Usage:
        timings = {}
        with TimingContext(timings, "trace"):
            compile_entrypoint(...)
        # timings["trace"] == 412
    """

    def __init__(self, timings: dict[str, int], key: str) -> None:
        self.timings = timings
        self.key = key
        self._start: Optional[float] = None

    def __enter__(self) -> "TimingContext":
        self._start = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._start is not None:
            self.timings[self.key] = self.elapsed_ms
        return None

    @property
    def elapsed_ms(self) -> int:
        if self._start is None:
            return 0
        return int((time.monotonic() - self._start) * 1000)


def format_ms(ms: int) -> str:
    """Format milliseconds for log lines.

    Examples:
        412 -> "412ms"
        5300 -> "5.3s"
        300000 -> "5m"
    """
    if ms < 1000:
        return f"{ms}ms"
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    remaining = seconds - minutes * 60
    if remaining < 0.05:
        return f"{minutes}m"
    return f"{minutes}m {remaining:.1f}s"


def timing_summary(timings: dict[str, int]) -> str:
    """Format phase timings as a one-line summary.

    Example output:
        install: 2.1s | build: 12.4s | trace: 412ms | total: 14.9s
    """
    if not timings:
        return "(no timing data)"

    parts = [f"{k}: {format_ms(v)}" for k, v in timings.items()]
    parts.append(f"total: {format_ms(sum(timings.values()))}")
    return " | ".join(parts)
