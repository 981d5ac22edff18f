"""
nodelambda.dev - Live development server handling.
"""

from nodelambda.dev.readiness import POLL_INTERVAL, await_port, is_port_reachable
from nodelambda.dev.supervisor import (
    DevServerSupervisor,
    find_free_port,
    install_signal_handlers,
)

__all__ = [
    "POLL_INTERVAL",
    "await_port",
    "is_port_reachable",
    "DevServerSupervisor",
    "find_free_port",
    "install_signal_handlers",
]
