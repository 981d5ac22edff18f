"""
Output directory validation.

Checks run in order and stop at the first failure: exists, is a directory,
is non-empty.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from nodelambda.config import BuilderConfig
from nodelambda.errors import (
    DistDirNotADirectoryError,
    DistDirNotFoundError,
    EmptyDistDirError,
)

DOCS_URL = "https://zeit.co/docs/v2/deployments/official-builders/static-build-now-static-build"
ZERO_CONFIG_HELP = (
    "https://zeit.co/docs/v2/platform/frequently-asked-questions#missing-public-directory"
)


def _help_text(is_dev: bool, config: BuilderConfig) -> str:
    if config.zero_config:
        return f"\nMore details: {ZERO_CONFIG_HELP}"
    anchor = "#local-development" if is_dev else "#configuring-the-build-output-directory"
    return f"\nMake sure you configure the correct distDir: {DOCS_URL}{anchor}"


def validate_dist_dir(
    dist_dir: Path,
    is_dev: Optional[bool] = False,
    config: Optional[BuilderConfig] = None,
) -> None:
    """Raise an ``OutputValidationError`` unless ``dist_dir`` holds build output."""
    config = config or BuilderConfig()
    name = dist_dir.name
    info = _help_text(bool(is_dev), config)

    if not dist_dir.exists():
        raise DistDirNotFoundError(f'No output directory named "{name}" found.{info}', name)

    if not dist_dir.is_dir():
        raise DistDirNotADirectoryError(
            f'Build failed because distDir is not a directory: "{name}".{info}', name
        )

    if not any(dist_dir.iterdir()):
        raise EmptyDistDirError(f'Build failed because distDir is empty: "{name}".{info}', name)
