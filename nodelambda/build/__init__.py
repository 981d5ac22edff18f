"""
nodelambda.build - Build orchestration.

Script resolution, install and build phases, output validation, bundle
assembly, and the orchestrator that runs them in order.
"""

from nodelambda.config import (
    PLATFORM_PREFIX,
    DEV_SERVER_PORT_BIND_TIMEOUT,
    RENDER_OUTPUT_KEY,
    BuilderConfig,
    BuildMeta,
    BuildOptions,
    load_config,
)
from nodelambda.build.scripts import resolve_script, get_command
from nodelambda.build.validation import validate_dist_dir
from nodelambda.build.assemble import assemble, launcher_files, RESERVED_NAMES
from nodelambda.build.orchestrator import Builder, BuildResult

__all__ = [
    # Constants
    "PLATFORM_PREFIX",
    "DEV_SERVER_PORT_BIND_TIMEOUT",
    "RENDER_OUTPUT_KEY",
    "RESERVED_NAMES",
    # Config
    "BuilderConfig",
    "BuildMeta",
    "BuildOptions",
    "load_config",
    # Phases
    "resolve_script",
    "get_command",
    "validate_dist_dir",
    "assemble",
    "launcher_files",
    # Orchestrator
    "Builder",
    "BuildResult",
]
