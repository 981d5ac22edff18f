"""
Filesystem collaborators: glob input files and materialize file maps.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from nodelambda.core.utils import log, to_posix
from nodelambda.errors import ConfigurationError
from nodelambda.files import FileFsRef, Files


@dataclass
class BuildMeta:
    """Per-invocation host metadata."""

    is_dev: bool = False
    files_changed: Optional[list[str]] = None
    files_removed: Optional[list[str]] = None


def _normalize_mount(mount: Optional[str]) -> str:
    if not mount:
        return ""
    mount = to_posix(mount)
    if mount in (".", "./"):
        return ""
    return mount.removeprefix("./").rstrip("/")


def invalid_pattern_reason(pattern: object) -> Optional[str]:
    """Why ``pattern`` cannot be globbed under a base directory, or None."""
    if not isinstance(pattern, str):
        return "must be a string"
    if not pattern.strip():
        return "must not be empty"
    if pattern.startswith("/") or Path(pattern).is_absolute():
        return "must be relative to the project directory"
    return None


def glob(pattern: str, base: Path | str, mount: Optional[str] = None) -> Files:
    """Resolve a glob under ``base`` into ``FileFsRef`` handles.

    Keys are relative to ``base``, prefixed with ``mount`` when given.
    A trailing ``**`` matches every file below that directory.
    """
    problem = invalid_pattern_reason(pattern)
    if problem:
        raise ConfigurationError(f"Invalid file pattern {pattern!r}: {problem}")
    base = Path(base)
    if pattern.endswith("**"):
        pattern = f"{pattern}/*"

    prefix = _normalize_mount(mount)
    files: Files = {}
    for path in sorted(base.glob(pattern)):
        if not path.is_file():
            continue
        key = to_posix(path.relative_to(base))
        if prefix:
            key = f"{prefix}/{key}"
        files[key] = FileFsRef.from_fs_path(path)
    return files


def download(files: Files, dest: Path | str, meta: Optional[BuildMeta] = None) -> Files:
    """Write ``files`` into ``dest`` and return handles to the written copies.

    In dev mode the host may report which files changed; then only those are
    written and removed files are deleted.
    """
    dest = Path(dest)
    meta = meta or BuildMeta()

    keys = list(files)
    if meta.is_dev and meta.files_changed is not None:
        changed = set(meta.files_changed)
        keys = [k for k in keys if k in changed]
        for removed in meta.files_removed or []:
            target = dest / removed
            if target.is_file():
                target.unlink()
                log.debug(f"Removed {removed}")

    written: Files = {}
    for key in keys:
        target = dest / key
        files[key].write_to(target)
        written[key] = FileFsRef.from_fs_path(target)

    log.debug(f"Downloaded {len(written)} file(s) to {dest}")
    return written
