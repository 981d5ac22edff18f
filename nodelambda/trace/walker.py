"""
Static module-graph walker for Node.js sources.

Finds the files reachable from a set of entry files through ``require()``,
``import``/``export ... from`` and literal ``import()`` calls. Every file
access goes through a ``read_file`` callback, so callers control caching and
can answer "not found" without touching the disk.

This is a scanner, not a parser: computed specifiers are skipped and
references inside comments or strings are followed like real ones.
"""

from __future__ import annotations

import fnmatch
import json
import os
import re
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Union

ReadFile = Callable[[str], Optional[bytes]]

# Extensions tried, in order, when a specifier omits one
RESOLVE_EXTENSIONS = (".js", ".json", ".mjs", ".cjs", ".node")

# Extensions whose contents are scanned for further references
SCANNED_EXTENSIONS = frozenset({"", ".js", ".mjs", ".cjs"})

NODE_BUILTINS = frozenset({
    "assert", "async_hooks", "buffer", "child_process", "cluster", "console",
    "constants", "crypto", "dgram", "diagnostics_channel", "dns", "domain",
    "events", "fs", "http", "http2", "https", "inspector", "module", "net",
    "os", "path", "perf_hooks", "process", "punycode", "querystring",
    "readline", "repl", "stream", "string_decoder", "sys", "timers", "tls",
    "trace_events", "tty", "url", "util", "v8", "vm", "wasi",
    "worker_threads", "zlib",
})

_REFERENCE_PATTERNS = (
    re.compile(r"""\brequire(?:\.resolve)?\s*\(\s*(['"`])([^'"`\n]+)\1\s*[,)]"""),
    re.compile(r"""\b(?:import|export)\s[^'";]*?\bfrom\s*(['"])([^'"\n]+)\1"""),
    re.compile(r"""\bimport\s*(['"])([^'"\n]+)\1"""),
    re.compile(r"""\bimport\s*\(\s*(['"`])([^'"`\n]+)\1\s*\)"""),
)


@dataclass
class TraceWarning:
    """A non-fatal tracing problem, e.g. an unresolvable optional dependency."""

    message: str
    specifier: str = ""
    parent: str = ""

    def __str__(self) -> str:
        return self.message


@dataclass
class TraceResult:
    file_list: list[str] = field(default_factory=list)
    warnings: list[TraceWarning] = field(default_factory=list)


def read_from_disk(fs_path: str) -> Optional[bytes]:
    """Default ``read_file``: file bytes, or None when there is no such file."""
    try:
        return Path(fs_path).read_bytes()
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
        return None


def find_references(source: str) -> Iterator[str]:
    """Yield literal module specifiers referenced by ``source``, in order."""
    seen: set[str] = set()
    matches = []
    for pattern in _REFERENCE_PATTERNS:
        matches.extend(pattern.finditer(source))
    for m in sorted(matches, key=lambda m: m.start()):
        specifier = m.group(2).strip()
        if "${" in specifier or specifier in seen:
            continue
        seen.add(specifier)
        yield specifier


def is_builtin(specifier: str) -> bool:
    if specifier.startswith("node:"):
        return True
    return specifier.split("/", 1)[0] in NODE_BUILTINS


def split_package_specifier(specifier: str) -> tuple[str, str]:
    """Split ``@scope/name/sub/path`` into (``@scope/name``, ``sub/path``)."""
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) >= 2:
        return "/".join(parts[:2]), "/".join(parts[2:])
    return parts[0], "/".join(parts[1:])


def matches_any(rel_path: str, patterns: Iterable[str]) -> bool:
    """Glob match where a pattern also covers everything below a matched directory."""
    for pattern in patterns:
        if fnmatch.fnmatchcase(rel_path, pattern):
            return True
        prefix = pattern.rstrip("/")
        if prefix.endswith("/**"):
            prefix = prefix[:-3]
        if rel_path.startswith(prefix + "/") and "*" not in prefix:
            return True
    return False


class _Walker:
    def __init__(self, base: Path, ignore: list[str], read_file: ReadFile):
        self.base = base
        self.ignore = ignore
        self._read_file = read_file
        self.found: set[Path] = set()
        self.warnings: list[TraceWarning] = []
        self._queue: deque[Path] = deque()

    # -------------------------------------------------------------------------
    # File access
    # -------------------------------------------------------------------------

    def rel(self, path: Path) -> str:
        return Path(os.path.relpath(path, self.base)).as_posix()

    def is_inside_base(self, path: Path) -> bool:
        return not self.rel(path).startswith("../")

    def read(self, path: Path) -> Optional[bytes]:
        """Read through the callback; ignored or out-of-base paths are "not found"."""
        if not self.is_inside_base(path) or matches_any(self.rel(path), self.ignore):
            return None
        return self._read_file(str(path))

    def emit(self, path: Path) -> None:
        if path in self.found:
            return
        self.found.add(path)
        self._queue.append(path)

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def resolve_file(self, target: Path) -> Optional[Path]:
        if not target.name:
            return None
        if self.read(target) is not None:
            return target
        for ext in RESOLVE_EXTENSIONS:
            candidate = target.with_name(target.name + ext)
            if self.read(candidate) is not None:
                return candidate
        return None

    def resolve_directory(self, target: Path) -> Optional[Path]:
        pkg_json = target / "package.json"
        raw = self.read(pkg_json)
        if raw is not None:
            main = None
            try:
                main = json.loads(raw).get("main")
            except (ValueError, AttributeError):
                self.warnings.append(TraceWarning(f"Error: Invalid JSON in {self.rel(pkg_json)}"))
            if isinstance(main, str) and main:
                main_path = Path(os.path.normpath(target / main))
                resolved = self.resolve_file(main_path) or self.resolve_file(main_path / "index")
                if resolved is not None:
                    self.emit(pkg_json)
                    return resolved
            resolved = self.resolve_file(target / "index")
            if resolved is not None:
                self.emit(pkg_json)
            return resolved
        return self.resolve_file(target / "index")

    def resolve_package(self, specifier: str, parent_dir: Path) -> Optional[Path]:
        name, subpath = split_package_specifier(specifier)
        current = parent_dir
        while True:
            if current.name != "node_modules":
                pkg_dir = current / "node_modules" / name
                if subpath:
                    target = pkg_dir / subpath
                    resolved = self.resolve_file(target) or self.resolve_directory(target)
                    if resolved is not None and self.read(pkg_dir / "package.json") is not None:
                        self.emit(pkg_dir / "package.json")
                else:
                    resolved = self.resolve_directory(pkg_dir)
                if resolved is not None:
                    return resolved
            if current == self.base or current.parent == current:
                return None
            current = current.parent

    def resolve(self, specifier: str, parent: Path) -> Optional[Path]:
        if specifier.startswith(("./", "../", "/")) or specifier in (".", ".."):
            target = Path(os.path.normpath(parent.parent / specifier))
            return self.resolve_file(target) or self.resolve_directory(target)
        return self.resolve_package(specifier, parent.parent)

    # -------------------------------------------------------------------------
    # Walk
    # -------------------------------------------------------------------------

    def walk(self, entries: Iterable[Path]) -> None:
        for entry in entries:
            if self.read(entry) is None:
                self.warnings.append(
                    TraceWarning(f"Error: Cannot find entry file {self.rel(entry)}", parent=self.rel(entry))
                )
                continue
            self.emit(entry)

        while self._queue:
            path = self._queue.popleft()
            if path.suffix not in SCANNED_EXTENSIONS or path.name == "package.json":
                continue
            raw = self.read(path)
            if raw is None:
                continue
            source = raw.decode("utf-8", errors="replace")
            for specifier in find_references(source):
                if is_builtin(specifier):
                    continue
                resolved = self.resolve(specifier, path)
                if resolved is None:
                    self.warnings.append(
                        TraceWarning(
                            f"Error: Cannot find module '{specifier}' loaded from {self.rel(path)}",
                            specifier=specifier,
                            parent=self.rel(path),
                        )
                    )
                    continue
                self.emit(resolved)


def node_file_trace(
    entry_paths: Iterable[Union[str, Path]],
    base: Union[str, Path],
    ignore: Optional[Iterable[str]] = None,
    read_file: Optional[ReadFile] = None,
) -> TraceResult:
    """Trace the files needed to run ``entry_paths``.

    Returns the reachable files as POSIX paths relative to ``base`` (sorted)
    and the warnings collected for references that could not be resolved.
    Paths matching an ``ignore`` pattern are never read and never returned.
    """
    base = Path(os.path.abspath(base))
    walker = _Walker(base, list(ignore or []), read_file or read_from_disk)
    walker.walk(Path(os.path.abspath(p)) for p in entry_paths)
    return TraceResult(
        file_list=sorted(walker.rel(p) for p in walker.found),
        warnings=walker.warnings,
    )
