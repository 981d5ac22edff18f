"""
Bundle assembly: traced closure + launcher companions -> Lambda.
"""

from __future__ import annotations

from pathlib import Path

from nodelambda.config import (
    BRIDGE_FILENAME,
    HELPERS_FILENAME,
    LAUNCHER_FILENAME,
    SOURCEMAP_SUPPORT_FILENAME,
)
from nodelambda.core.utils import log
from nodelambda.files import FileBlob, FileFsRef, Files
from nodelambda.launcher import make_launcher
from nodelambda.packaging import Lambda, create_lambda

ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"

LAUNCHER_HANDLER = f"{LAUNCHER_FILENAME}.launcher"
RESERVED_NAMES = frozenset({
    f"{LAUNCHER_FILENAME}.js",
    f"{BRIDGE_FILENAME}.js",
    f"{HELPERS_FILENAME}.js",
})


def launcher_files(entrypoint_path: str = "./build/node/index.js") -> Files:
    """Generated companion files under their reserved names."""
    return {
        f"{LAUNCHER_FILENAME}.js": FileBlob(
            data=make_launcher(
                entrypoint_path=entrypoint_path,
                bridge_path=f"./{BRIDGE_FILENAME}",
                helpers_path=f"./{HELPERS_FILENAME}",
                sourcemap_support_path=f"./{SOURCEMAP_SUPPORT_FILENAME}",
                should_add_helpers=True,
            ).encode("utf-8"),
        ),
        f"{BRIDGE_FILENAME}.js": FileFsRef.from_fs_path(ASSETS_DIR / "bridge.js"),
        f"{HELPERS_FILENAME}.js": FileFsRef.from_fs_path(ASSETS_DIR / "helpers.js"),
    }


def merge_files(traced_files: Files, companions: Files) -> Files:
    """Traced files plus companions; a traced file never replaces a reserved name."""
    merged: Files = {}
    for name, entry in traced_files.items():
        if name in RESERVED_NAMES:
            log.warning(f"Ignoring traced file {name!r}: the name is reserved for the launcher")
            continue
        merged[name] = entry
    merged.update(companions)
    return merged


def assemble(traced_files: Files, companions: Files, runtime: str) -> Lambda:
    """Package the merged file map with the launcher handler."""
    return create_lambda(
        files=merge_files(traced_files, companions),
        handler=LAUNCHER_HANDLER,
        runtime=runtime,
    )
