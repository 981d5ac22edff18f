"""
Node.js runtime resolution and spawn options.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from nodelambda.config import BuilderConfig, read_package_json
from nodelambda.core.utils import log
from nodelambda.errors import ConfigurationError
from nodelambda.fs import BuildMeta


@dataclass(frozen=True)
class NodeVersion:
    major: int
    range: str
    runtime: str


# Newest first; the first entry is the default
SUPPORTED_NODE_VERSIONS: tuple[NodeVersion, ...] = (
    NodeVersion(22, "22.x", "nodejs22.x"),
    NodeVersion(20, "20.x", "nodejs20.x"),
    NodeVersion(18, "18.x", "nodejs18.x"),
)

_COMPARATOR = re.compile(r"(>=|<=|>|<|\^|~|=)?\s*v?(\d+|x|\*)(?:\.(\d+|x|\*))?(?:\.(\d+|x|\*))?")


def _clause_allows(clause: str, major: int) -> bool:
    """Check whether every comparator of a space-separated clause allows ``major``.

    Only majors are compared: runtimes are selected per major line.
    """
    matches = list(_COMPARATOR.finditer(clause))
    if not matches:
        return False
    for m in matches:
        op, ver, minor = m.group(1) or "", m.group(2), m.group(3)
        if ver in ("x", "*"):
            continue
        want = int(ver)
        if op == ">=":
            ok = major >= want
        elif op == ">":
            ok = major >= want if minor is not None else major > want
        elif op == "<=":
            ok = major <= want
        elif op == "<":
            ok = major < want if minor in (None, "0", "x", "*") else major <= want
        else:
            ok = major == want
        if not ok:
            return False
    return True


def range_allows(version_range: str, major: int) -> bool:
    """Major-level check of an npm-style semver range (``||`` of clauses)."""
    version_range = version_range.strip()
    if version_range in ("", "*", "x"):
        return True
    return any(_clause_allows(clause.strip(), major) for clause in version_range.split("||"))


def get_node_version(
    entrypoint_dir: Path,
    version_hint: Optional[Union[str, int]] = None,
    config: Optional[BuilderConfig] = None,
) -> NodeVersion:
    """Pick the newest supported Node.js line allowed by ``engines.node``.

    ``version_hint`` overrides the manifest when given.
    """
    version_range: Optional[str] = str(version_hint) if version_hint is not None else None
    if version_range is None:
        pkg_path = entrypoint_dir / "package.json"
        if pkg_path.exists():
            engines = read_package_json(pkg_path).get("engines") or {}
            version_range = engines.get("node")

    if not version_range:
        default = SUPPORTED_NODE_VERSIONS[0]
        log.debug(f"No Node.js version specified, using {default.range}")
        return default

    for candidate in SUPPORTED_NODE_VERSIONS:
        if range_allows(version_range, candidate.major):
            log.debug(f"Selected Node.js {candidate.range} for engines range {version_range!r}")
            return candidate

    supported = ", ".join(v.range for v in SUPPORTED_NODE_VERSIONS)
    raise ConfigurationError(
        f'Found invalid Node.js Version: "{version_range}". '
        f"Please set \"engines\": {{ \"node\": \"{SUPPORTED_NODE_VERSIONS[0].range}\" }} "
        f"in your package.json file to use one of: {supported}"
    )


@dataclass
class SpawnOptions:
    """Environment for install and build subprocesses."""

    env: dict[str, str] = field(default_factory=lambda: dict(os.environ))


def get_spawn_options(meta: BuildMeta, node_version: NodeVersion) -> SpawnOptions:
    """Spawn environment for ``node_version``.

    Outside dev mode the selected Node.js line's bin directory goes first on
    ``PATH``; in dev mode the system ``node`` is used.
    """
    opts = SpawnOptions()
    if not meta.is_dev:
        node_bin = f"/node{node_version.major}/bin"
        opts.env["PATH"] = os.pathsep.join(filter(None, [node_bin, opts.env.get("PATH", "")]))
    return opts
