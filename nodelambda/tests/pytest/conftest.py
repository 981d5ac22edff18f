"""
Shared pytest fixtures for nodelambda tests.

Provides helpers for laying out throwaway Node.js projects and for stubbing
the package-manager subprocesses so builds run without node or npm.

Markers:
  @pytest.mark.slow - Tests that spawn real child processes or wait on sockets
"""

from __future__ import annotations

import json
import socket
from pathlib import Path
from typing import Any, Generator, Optional

import pytest

from nodelambda.core.utils import log


# =============================================================================
# Project Factory
# =============================================================================


def write_files(root: Path, files: dict[str, str | bytes]) -> None:
    """Write ``files`` (relative path -> content) under ``root``."""
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)


def write_package_json(root: Path, scripts: Optional[dict[str, str]] = None, **extra: Any) -> Path:
    """Write a package.json with the given scripts and extra top-level keys."""
    data: dict[str, Any] = {"name": "app", "version": "1.0.0"}
    if scripts is not None:
        data["scripts"] = scripts
    data.update(extra)
    path = root / "package.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path


# Server bundle produced by a typical build: entry -> lib/a.js -> lib/b.js
RENDER_FILES: dict[str, str] = {
    "build/node/index.js": "const a = require('./lib/a.js');\nmodule.exports = (req, res) => res.end(a());\n",
    "build/node/lib/a.js": "const b = require('./b');\nmodule.exports = () => 'a' + b;\n",
    "build/node/lib/b.js": "module.exports = 'b';\n",
}

STATIC_FILES: dict[str, str] = {
    "build/web/index.html": "<html><body>app</body></html>",
    "build/web/static/main.js": "console.log('client');",
}


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """An app with package.json but nothing built yet."""
    root = tmp_path / "app"
    root.mkdir()
    write_package_json(root, scripts={"build": "react-scripts build", "start": "node server.js"})
    return root


@pytest.fixture
def fake_build(monkeypatch: pytest.MonkeyPatch) -> Generator[dict[str, Any], None, None]:
    """Stub install and script execution in the orchestrator.

    The stubbed build script writes ``RENDER_FILES`` and ``STATIC_FILES`` into
    the entrypoint directory. Yields a record of the calls made; set
    ``record["outputs"]`` to change what the build writes.
    """
    from nodelambda.build import orchestrator

    record: dict[str, Any] = {
        "installs": [],
        "scripts": [],
        "outputs": {**RENDER_FILES, **STATIC_FILES},
    }

    def fake_install(dest, args=None, spawn_opts=None, meta=None, installed=None):
        record["installs"].append(Path(dest))
        return True

    def fake_run_script(dest, script_name, spawn_opts=None):
        record["scripts"].append(script_name)
        scripts = json.loads((Path(dest) / "package.json").read_text()).get("scripts", {})
        if script_name not in scripts:
            return False
        write_files(Path(dest), record["outputs"])
        return True

    monkeypatch.setattr(orchestrator, "run_npm_install", fake_install)
    monkeypatch.setattr(orchestrator, "run_package_json_script", fake_run_script)
    yield record


@pytest.fixture(autouse=True)
def quiet_log() -> Generator[None, None, None]:
    """Keep the global logger in a known state for each test."""
    log.set_color(False)
    log.set_debug(None)
    yield
    log.set_debug(None)


# =============================================================================
# Sockets
# =============================================================================


@pytest.fixture
def listening_port() -> Generator[int, None, None]:
    """A localhost port with a socket listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen()
        yield s.getsockname()[1]


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: tests that spawn real processes or wait on sockets",
    )
