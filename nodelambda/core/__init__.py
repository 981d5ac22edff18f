"""
nodelambda.core - Foundation layer for the builder.

Exports logging, path and process utilities, and phase timing.
"""

from nodelambda.core.utils import (
    # Logging
    log,
    Logger,
    DEBUG_ENV_VAR,
    # Path utilities
    to_posix,
    relative_key,
    # Runtime utilities
    run_cmd,
)
from nodelambda.core.timing import TimingContext, format_ms, timing_summary

__all__ = [
    "log",
    "Logger",
    "DEBUG_ENV_VAR",
    "to_posix",
    "relative_key",
    "run_cmd",
    "TimingContext",
    "format_ms",
    "timing_summary",
]
