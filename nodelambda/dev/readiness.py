"""
TCP readiness polling for dev servers.
"""

from __future__ import annotations

import socket
import time

from nodelambda.errors import PortTimeoutError

# Seconds between probes
POLL_INTERVAL = 0.1


def is_port_reachable(port: int, host: str = "localhost", timeout: float = 1.0) -> bool:
    """Return True if a TCP connection to host:port succeeds."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def await_port(port: int, timeout: float, host: str = "localhost") -> None:
    """Block until ``port`` accepts connections.

    Raises ``PortTimeoutError`` once more than ``timeout`` seconds have passed
    since the first probe.
    """
    start = time.monotonic()
    while not is_port_reachable(port, host=host, timeout=min(1.0, max(timeout, POLL_INTERVAL))):
        if time.monotonic() - start > timeout:
            raise PortTimeoutError(port, timeout)
        time.sleep(POLL_INTERVAL)
