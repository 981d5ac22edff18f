"""
Shared utilities for the nodelambda builder.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

DEBUG_ENV_VAR = "NODELAMBDA_DEBUG"


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Simple colored logger with --no-color and debug toggles."""

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "magenta": "\033[95m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(self, use_color: Optional[bool] = None, debug: Optional[bool] = None):
        if use_color is None:
            self._use_color = sys.stdout.isatty()
        else:
            self._use_color = use_color
        self._debug = debug

    def set_color(self, use_color: bool) -> None:
        """Set whether to use color output."""
        self._use_color = use_color

    def set_debug(self, enabled: Optional[bool]) -> None:
        """Force debug output on or off; None defers to the environment."""
        self._debug = enabled

    @property
    def debug_setting(self) -> Optional[bool]:
        """The forced debug state, or None when the environment decides."""
        return self._debug

    @property
    def debug_enabled(self) -> bool:
        if self._debug is not None:
            return self._debug
        return os.environ.get(DEBUG_ENV_VAR, "") not in ("", "0", "false")

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def header(self, message: str) -> None:
        """Print a section header."""
        print(f"\n{self._color('===', 'cyan')} {self._color(message, 'bold')} {self._color('===', 'cyan')}")

    def info(self, message: str) -> None:
        """Print an info message."""
        print(f"  {message}")

    def success(self, message: str) -> None:
        """Print a success message."""
        print(f"  {self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        print(f"  {self._color('[WARN]', 'yellow')} {message}")

    def error(self, message: str) -> None:
        """Print an error message."""
        print(f"  {self._color('[ERROR]', 'red')} {message}", file=sys.stderr)

    def dim(self, message: str) -> None:
        """Print a dim/secondary message."""
        print(f"  {self._color(message, 'dim')}")

    def debug(self, message: str) -> None:
        """Print a diagnostic message when debug output is enabled."""
        if self.debug_enabled:
            print(f"  {self._color('[DEBUG]', 'magenta')} {self._color(message, 'dim')}")


# Global logger instance
log = Logger()


# =============================================================================
# Path Utilities
# =============================================================================


def to_posix(path: Path | str) -> str:
    """Render a relative path with forward slashes, as used for file map keys."""
    return Path(path).as_posix()


def relative_key(path: Path, base: Path) -> str:
    """Return the file map key of ``path`` relative to ``base``."""
    return to_posix(os.path.relpath(path, base))


# =============================================================================
# Runtime Utilities
# =============================================================================


def run_cmd(
    cmd: list[str],
    cwd: Optional[Path] = None,
    env: Optional[dict[str, str]] = None,
    capture: bool = False,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run a command with proper error handling."""
    log.debug(f"Running: {' '.join(cmd)}" + (f" in {cwd}" if cwd else ""))
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            env=env,
            capture_output=capture,
            text=True,
            check=check,
        )
        return result
    except subprocess.CalledProcessError as e:
        log.error(f"Command failed: {' '.join(cmd)} (exit {e.returncode})")
        if capture:
            if e.stdout:
                log.error(f"stdout: {e.stdout}")
            if e.stderr:
                log.error(f"stderr: {e.stderr}")
        raise
