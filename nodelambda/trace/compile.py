"""
Dependency tracing for the render entrypoint.

Computes the minimal file closure of an entrypoint. All reads made by the
module-graph walker go through a ``ContentProvider`` holding two caches:

- source cache: relative path -> raw bytes, or None once a path is known to
  be absent (absent paths are never probed again);
- filesystem cache: relative path -> File (content plus mode).

Both caches live for one trace and are discarded afterwards.
"""

from __future__ import annotations

import errno
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from nodelambda.config import BuilderConfig
from nodelambda.core.utils import log, relative_key
from nodelambda.errors import TracingFatalError
from nodelambda.files import File, FileBlob, Files
from nodelambda.fs import glob
from nodelambda.trace.walker import TraceWarning, node_file_trace

# errnos that mean "there is no file here"
NOT_FOUND_ERRNOS = frozenset({errno.ENOENT, errno.EISDIR, errno.ENOTDIR})


class ContentProvider:
    """Caching ``read_file`` hook handed to the walker."""

    def __init__(self, work_path: Path):
        self.work_path = work_path
        self.source_cache: dict[str, Optional[bytes]] = {}
        self.fs_cache: dict[str, File] = {}
        self.disk_reads = 0

    def register(self, rel_path: str, entry: File) -> None:
        """Seed both caches with a file that is already known."""
        self.fs_cache[rel_path] = entry
        self.source_cache[rel_path] = entry.to_bytes()

    def _load(self, fs_path: Path) -> FileBlob:
        self.disk_reads += 1
        # Symlinks are packaged as the regular file they point to
        mode = fs_path.stat().st_mode
        return FileBlob(data=fs_path.read_bytes(), mode=mode)

    def read_file(self, fs_path: str) -> Optional[bytes]:
        """Return the bytes at ``fs_path``, or None if there is no such file."""
        rel_path = relative_key(Path(fs_path), self.work_path)
        if rel_path in self.source_cache:
            return self.source_cache[rel_path]

        try:
            entry = self._load(Path(fs_path))
        except OSError as e:
            if e.errno in NOT_FOUND_ERRNOS:
                self.source_cache[rel_path] = None
                return None
            raise TracingFatalError(f"Failed to read {rel_path} while tracing: {e}", rel_path) from e

        self.fs_cache[rel_path] = entry
        self.source_cache[rel_path] = entry.data
        return entry.data

    def entry_for(self, rel_path: str) -> File:
        """The cached File for ``rel_path``, read fresh from disk if unseen."""
        entry = self.fs_cache.get(rel_path)
        if entry is not None:
            return entry
        try:
            return self._load(self.work_path / rel_path)
        except OSError as e:
            raise TracingFatalError(f"Failed to read traced file {rel_path}: {e}", rel_path) from e


@dataclass
class TraceOutput:
    prepared_files: Files = field(default_factory=dict)
    watch: list[str] = field(default_factory=list)
    warnings: list[TraceWarning] = field(default_factory=list)


def compile_entrypoint(
    work_path: Path,
    entrypoint_path: Path,
    config: Optional[BuilderConfig] = None,
    provider: Optional[ContentProvider] = None,
) -> TraceOutput:
    """Trace ``entrypoint_path`` and return its closure keyed by relative path.

    Files matched by ``config.include_files`` are traced as extra roots, so
    they are kept even when nothing references them. ``config.exclude_files``
    patterns are neither read nor included. Unresolved references are logged
    at debug level and never fail the build.
    """
    config = config or BuilderConfig()
    provider = provider or ContentProvider(work_path)
    input_files: list[Path] = [entrypoint_path]

    for pattern in config.include_files:
        for rel_path, entry in glob(pattern, work_path).items():
            provider.register(rel_path, entry)
            resolved = Path(os.path.abspath(work_path / rel_path))
            if resolved not in input_files:
                input_files.append(resolved)

    log.debug(
        "Tracing input files: "
        + ", ".join(relative_key(p, work_path) for p in input_files)
    )

    result = node_file_trace(
        input_files,
        base=work_path,
        ignore=config.exclude_files,
        read_file=provider.read_file,
    )

    prepared_files: Files = {}
    for rel_path in result.file_list:
        prepared_files[rel_path] = provider.entry_for(rel_path)

    for warning in result.warnings:
        log.debug(re.sub(r"^Error: ", "Warning: ", str(warning)))

    return TraceOutput(
        prepared_files=prepared_files,
        watch=list(result.file_list),
        warnings=list(result.warnings),
    )
