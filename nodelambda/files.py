"""
File handles for build inputs and outputs.

A ``File`` is byte content plus a file mode. ``FileBlob`` owns its bytes
(generated or already-read content); ``FileFsRef`` points at a path on disk
and reads it on demand. Callers only use ``mode``, ``to_bytes()`` and
``write_to()`` and never care which variant they hold.
"""

from __future__ import annotations

import os
import stat
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

DEFAULT_MODE = 0o100644


class File(ABC):
    """Byte content plus a file mode."""

    mode: int

    @abstractmethod
    def to_bytes(self) -> bytes:
        """Materialize the content. May be called any number of times."""

    def write_to(self, dest: Path) -> None:
        """Write the content to ``dest``, creating parent directories."""
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.to_bytes())
        os.chmod(dest, stat.S_IMODE(self.mode))


@dataclass(frozen=True)
class FileBlob(File):
    """In-memory file content."""

    data: bytes
    mode: int = DEFAULT_MODE

    def to_bytes(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class FileFsRef(File):
    """Lazy reference to a file on disk."""

    fs_path: Path
    mode: int = DEFAULT_MODE

    @classmethod
    def from_fs_path(cls, fs_path: Path | str) -> "FileFsRef":
        """Create a reference carrying the file's current on-disk mode."""
        fs_path = Path(fs_path)
        return cls(fs_path=fs_path, mode=fs_path.stat().st_mode)

    def to_bytes(self) -> bytes:
        return self.fs_path.read_bytes()

    def write_to(self, dest: Path) -> None:
        if dest.exists() and dest.resolve() == self.fs_path.resolve():
            return
        super().write_to(dest)


# Relative POSIX path -> File
Files = Dict[str, File]
