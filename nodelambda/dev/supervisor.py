"""
Dev server supervision.

Runs at most one long-lived dev server per entrypoint, tracks every child it
spawned, and forwards termination signals to them.
"""

from __future__ import annotations

import os
import signal
import socket
import subprocess
import sys
import threading
from pathlib import Path
from typing import Optional

from nodelambda.config import DEV_SERVER_PORT_BIND_TIMEOUT
from nodelambda.core.utils import log
from nodelambda.dev.readiness import await_port
from nodelambda.errors import DevServerTimeoutError, PortTimeoutError

FAILED_TO_DETECT_URL = "https://err.sh/zeit/now/now-static-build-failed-to-detect-a-server"


def find_free_port() -> int:
    """Find an available port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        return s.getsockname()[1]


class DevServerSupervisor:
    """Owns the dev port registry and the set of running dev children.

    ``ports`` maps an entrypoint to the port its dev server was told to bind.
    An entry is recorded before the child is spawned and removed when that
    child exits, so a later call can start a fresh server.
    """

    def __init__(self, port_timeout: float = DEV_SERVER_PORT_BIND_TIMEOUT):
        self.port_timeout = port_timeout
        self.ports: dict[str, int] = {}
        self.children: set[subprocess.Popen] = set()
        self._lock = threading.Lock()

    def ensure_dev_server(
        self,
        entrypoint: str,
        command: list[str],
        cwd: Path,
        env: Optional[dict[str, str]] = None,
    ) -> int:
        """Return the port of the dev server for ``entrypoint``, starting it if needed."""
        with self._lock:
            port = self.ports.get(entrypoint)
            if port is not None:
                log.debug(f"Dev server already running for {entrypoint!r} on port {port}")
                return port
            port = find_free_port()
            self.ports[entrypoint] = port

        child_env = dict(os.environ if env is None else env)
        child_env["PORT"] = str(port)

        log.debug(f"Starting dev server for {entrypoint!r}: {' '.join(command)} (PORT={port})")
        try:
            child = subprocess.Popen(command, cwd=cwd, env=child_env)
        except OSError:
            with self._lock:
                if self.ports.get(entrypoint) == port:
                    del self.ports[entrypoint]
            raise

        with self._lock:
            self.children.add(child)
        reaper = threading.Thread(
            target=self._reap,
            args=(entrypoint, port, child),
            name=f"dev-server-reaper-{child.pid}",
            daemon=True,
        )
        reaper.start()

        # The server is proxied to once it listens on $PORT
        try:
            await_port(port, self.port_timeout)
        except PortTimeoutError as e:
            raise DevServerTimeoutError(
                f"Failed to detect a server running on port {port}.\n"
                f"Details: {FAILED_TO_DETECT_URL}",
                port,
            ) from e

        log.debug(f"Detected dev server for {entrypoint!r} on port {port}")
        return port

    def _reap(self, entrypoint: str, port: int, child: subprocess.Popen) -> None:
        returncode = child.wait()
        log.debug(f"Dev server for {entrypoint!r} (pid={child.pid}) exited with {returncode}")
        with self._lock:
            if self.ports.get(entrypoint) == port:
                del self.ports[entrypoint]
            self.children.discard(child)

    def forward_signal(self, signum: int) -> None:
        """Send ``signum`` to every tracked dev server.

        Runs inside signal handlers, so it must not take ``_lock``.
        """
        children = list(self.children)
        for child in children:
            log.debug(
                f"Got {signal.Signals(signum).name}, killing dev server child process (pid={child.pid})"
            )
            try:
                os.kill(child.pid, signum)
            except ProcessLookupError:
                pass


# =============================================================================
# Process-level signal handling
# =============================================================================

_handlers_installed = False


def install_signal_handlers(supervisor: DevServerSupervisor) -> None:
    """Forward SIGINT/SIGTERM to the supervisor's children, then exit.

    Installed once per process; later calls are ignored.
    """
    global _handlers_installed
    if _handlers_installed:
        return

    def _handle(signum, frame):
        # One-shot: a second signal gets the default behaviour
        signal.signal(signal.SIGINT, signal.SIG_DFL)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)
        supervisor.forward_signal(signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)
    _handlers_installed = True
