"""
Build phases for nodelambda.

Package installation and package.json script execution.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

from nodelambda.build.runtime import SpawnOptions
from nodelambda.config import read_package_json
from nodelambda.core.utils import log, run_cmd
from nodelambda.fs import BuildMeta

# Files whose content decides whether node_modules is current
INSTALL_INPUTS = ("package.json", "package-lock.json", "yarn.lock")


# =============================================================================
# Package Manager Detection
# =============================================================================


def uses_yarn(dest: Path) -> bool:
    """A yarn.lock selects yarn; anything else uses npm."""
    return (dest / "yarn.lock").exists()


def get_install_key(dest: Path) -> str:
    """Hash the manifest and lockfiles of ``dest``."""
    hasher = hashlib.sha256()
    for name in INSTALL_INPUTS:
        path = dest / name
        hasher.update(name.encode())
        if path.exists():
            hasher.update(path.read_bytes())
    return hasher.hexdigest()[:16]


# =============================================================================
# Install
# =============================================================================


def run_npm_install(
    dest: Path,
    args: Optional[list[str]] = None,
    spawn_opts: Optional[SpawnOptions] = None,
    meta: Optional[BuildMeta] = None,
    installed: Optional[dict[str, str]] = None,
) -> bool:
    """Install dependencies in ``dest``. Returns False when skipped.

    ``installed`` maps directories to the install key of their last install in
    this process; in dev mode an unchanged key with an existing node_modules
    skips the install.
    """
    meta = meta or BuildMeta()
    spawn_opts = spawn_opts or SpawnOptions()
    args = list(args or [])

    key = get_install_key(dest)
    dir_key = str(dest.resolve())
    if (
        meta.is_dev
        and installed is not None
        and installed.get(dir_key) == key
        and (dest / "node_modules").is_dir()
    ):
        log.debug(f"Skipping dependency install in {dest} (unchanged since last install)")
        return False

    if uses_yarn(dest):
        cmd = ["yarn", "install", "--ignore-engines", *args]
    else:
        cmd = ["npm", "install", "--no-audit", "--no-fund", *args]

    log.debug(f"Installing dependencies in {dest}: {' '.join(cmd)}")
    run_cmd(cmd, cwd=dest, env=spawn_opts.env)

    if installed is not None:
        installed[dir_key] = key
    return True


# =============================================================================
# Scripts
# =============================================================================


def run_package_json_script(
    dest: Path,
    script_name: str,
    spawn_opts: Optional[SpawnOptions] = None,
) -> bool:
    """Run ``script_name`` from dest/package.json.

    Returns False when the manifest does not declare the script. A script that
    runs and fails raises ``subprocess.CalledProcessError``.
    """
    pkg_path = dest / "package.json"
    if not pkg_path.exists():
        return False

    scripts = read_package_json(pkg_path).get("scripts") or {}
    if script_name not in scripts:
        return False

    spawn_opts = spawn_opts or SpawnOptions()
    if uses_yarn(dest):
        cmd = ["yarn", "run", script_name]
    else:
        cmd = ["npm", "run", script_name]

    log.info(f'Running "{script_name}" script')
    run_cmd(cmd, cwd=dest, env=spawn_opts.env)
    return True


def get_start_command(dest: Path) -> list[str]:
    """Command that launches the project's dev server via its start script."""
    if uses_yarn(dest):
        return ["yarn", "start"]
    return ["npm", "run", "start"]
