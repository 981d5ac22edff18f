"""
Configuration for nodelambda.

Constants, the builder config model, and per-invocation options.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nodelambda.errors import ConfigurationError
from nodelambda.files import Files
from nodelambda.fs import BuildMeta, invalid_pattern_reason

__all__ = [
    "PLATFORM_PREFIX",
    "DEV_SERVER_PORT_BIND_TIMEOUT",
    "LAUNCHER_FILENAME",
    "BRIDGE_FILENAME",
    "HELPERS_FILENAME",
    "SOURCEMAP_SUPPORT_FILENAME",
    "RENDER_OUTPUT_KEY",
    "BuilderConfig",
    "BuildMeta",
    "BuildOptions",
    "load_config",
    "read_package_json",
]

# =============================================================================
# Constants
# =============================================================================

# Scripts named "<prefix>-<phase>" are platform-specific overrides
PLATFORM_PREFIX = "now"

# Seconds to wait for a dev server to bind its port
DEV_SERVER_PORT_BIND_TIMEOUT = 5 * 60

# Reserved lambda file names (without extension)
LAUNCHER_FILENAME = "___now_launcher"
BRIDGE_FILENAME = "___now_bridge"
HELPERS_FILENAME = "___now_helpers"
SOURCEMAP_SUPPORT_FILENAME = "__sourcemap_support"

# Output key under which the packaged lambda is returned
RENDER_OUTPUT_KEY = "render.js"

# Project layout produced by the build script, relative to the entrypoint dir
BUILD_DIR = "build"
STATIC_DIR = "web"
RENDER_ENTRYPOINT = "node/index.js"


# =============================================================================
# Builder Config
# =============================================================================


class BuilderConfig(BaseModel):
    """User-supplied builder configuration (``config`` block of the deployment)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    zero_config: bool = Field(False, alias="zeroConfig")
    include_files: list[str] = Field(default_factory=list, alias="includeFiles")
    exclude_files: list[str] = Field(default_factory=list, alias="excludeFiles")
    debug: bool = False

    @field_validator("include_files", "exclude_files", mode="before")
    @classmethod
    def _coerce_patterns(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            for pattern in value:
                problem = invalid_pattern_reason(pattern)
                if problem:
                    raise ValueError(f"Invalid file pattern {pattern!r}: {problem}")
        return value


def load_config(path: Path) -> BuilderConfig:
    """Load a builder config from a YAML or JSON file.

    A deployment file with a top-level ``config`` key is accepted too.
    """
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file {path} is not valid YAML/JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    if isinstance(data.get("config"), dict):
        data = data["config"]
    try:
        return BuilderConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config in {path}: {e}") from e


def read_package_json(path: Path) -> dict[str, Any]:
    """Read and parse a package.json manifest."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"package.json not found at {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object")
    return data


# =============================================================================
# Build Options
# =============================================================================


@dataclass
class BuildOptions:
    """Inputs of a single build invocation."""

    files: Files
    entrypoint: str
    work_path: Path
    config: BuilderConfig = field(default_factory=BuilderConfig)
    meta: BuildMeta = field(default_factory=BuildMeta)
    node_version_hint: Optional[Union[str, int]] = None

    @property
    def mountpoint(self) -> str:
        """Directory of the entrypoint relative to the work path ("." for root)."""
        parent = Path(self.entrypoint).parent.as_posix()
        return parent or "."

    @property
    def entrypoint_dir(self) -> Path:
        return self.work_path / self.mountpoint

    @property
    def build_path(self) -> Path:
        return self.entrypoint_dir / BUILD_DIR

    @property
    def dist_path(self) -> Path:
        return self.build_path / STATIC_DIR

    @property
    def render_path(self) -> Path:
        return self.build_path / RENDER_ENTRYPOINT
