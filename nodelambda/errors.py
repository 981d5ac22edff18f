"""
Error taxonomy for the builder.

Every fatal error is a ``BuildError`` and reaches the invoker unmodified.
Messages name the offending script, path or port on their own.
"""

from __future__ import annotations

from nodelambda.core.timing import format_ms


class BuildError(RuntimeError):
    """Base class for fatal build failures."""


class ConfigurationError(BuildError):
    """Missing required script or malformed manifest/config."""


class OutputValidationError(BuildError):
    """The build's output directory is missing, not a directory, or empty."""

    def __init__(self, message: str, dist_dir_name: str):
        super().__init__(message)
        self.dist_dir_name = dist_dir_name


class DistDirNotFoundError(OutputValidationError):
    pass


class DistDirNotADirectoryError(OutputValidationError):
    pass


class EmptyDistDirError(OutputValidationError):
    pass


class DevServerTimeoutError(BuildError):
    """The dev server never bound its port before the readiness deadline."""

    def __init__(self, message: str, port: int):
        super().__init__(message)
        self.port = port


class TracingFatalError(BuildError):
    """An I/O failure other than not-found while reading traced sources."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class PortTimeoutError(TimeoutError):
    """Raised by the readiness poller when a port never becomes reachable."""

    def __init__(self, port: int, timeout: float):
        super().__init__(f"Detecting port {port} timed out after {format_ms(int(timeout * 1000))}")
        self.port = port
        self.timeout = timeout
