"""
Lambda packaging.

Bundles a file map into a deterministic zip archive together with the
handler name and runtime identifier.
"""

from __future__ import annotations

import hashlib
import io
import stat
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from nodelambda.core.utils import log
from nodelambda.files import Files

# Fixed timestamp so identical inputs produce identical archives
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass
class Lambda:
    """A deployable unit: zipped code, entry handler and runtime."""

    zip_bytes: bytes
    handler: str
    runtime: str
    environment: dict[str, str] = field(default_factory=dict)

    @property
    def sha256(self) -> str:
        return hashlib.sha256(self.zip_bytes).hexdigest()

    @property
    def size(self) -> int:
        return len(self.zip_bytes)

    def names(self) -> list[str]:
        """File names inside the archive."""
        with zipfile.ZipFile(io.BytesIO(self.zip_bytes)) as zf:
            return zf.namelist()

    def read(self, name: str) -> bytes:
        with zipfile.ZipFile(io.BytesIO(self.zip_bytes)) as zf:
            return zf.read(name)

    def write_to(self, dest: Path) -> None:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.zip_bytes)


def create_zip(files: Files) -> bytes:
    """Zip ``files`` in sorted key order with fixed timestamps and their modes."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        for name in sorted(files):
            entry = files[name]
            info = zipfile.ZipInfo(name)
            info.date_time = ZIP_EPOCH
            info.compress_type = zipfile.ZIP_DEFLATED
            # Entries are always regular files; only permission bits are kept
            mode = stat.S_IFREG | stat.S_IMODE(entry.mode)
            info.external_attr = mode << 16
            zf.writestr(info, entry.to_bytes())
    return buffer.getvalue()


def create_lambda(
    files: Files,
    handler: str,
    runtime: str,
    environment: Optional[dict[str, str]] = None,
) -> Lambda:
    """Package ``files`` into a ``Lambda``."""
    zip_bytes = create_zip(files)
    lam = Lambda(
        zip_bytes=zip_bytes,
        handler=handler,
        runtime=runtime,
        environment=dict(environment or {}),
    )
    log.debug(f"Created lambda ({len(files)} files, {lam.size:,} bytes, runtime {runtime})")
    return lam
