"""
Build command resolution.

Decides which package.json script runs for a lifecycle phase.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from nodelambda.config import PLATFORM_PREFIX, BuilderConfig


def resolve_script(scripts: Optional[Mapping[str, Any]], phase: str, zero_config: bool) -> str:
    """Return the script name to run for ``phase``.

    Priority:
      1. ``<prefix>-dev`` for the dev phase outside zero-config mode, whatever
         the manifest declares.
      2. ``<prefix>-<phase>`` when the manifest declares it.
      3. ``<phase>`` when the manifest declares it.
      4. The name expected in the current mode, so a missing-script error can
         name it: ``<phase>`` in zero-config mode, else ``<prefix>-<phase>``.

    The returned name is the one that gets executed; when neither script
    exists the caller runs it, finds it missing, and reports that same name.
    """
    prefixed = f"{PLATFORM_PREFIX}-{phase}"

    if not zero_config and phase == "dev":
        return prefixed

    scripts = scripts or {}

    if scripts.get(prefixed):
        return prefixed

    if scripts.get(phase):
        return phase

    return phase if zero_config else prefixed


def get_command(pkg: Optional[Mapping[str, Any]], phase: str, config: BuilderConfig) -> str:
    """``resolve_script`` over a parsed package.json."""
    scripts = (pkg or {}).get("scripts") or {}
    return resolve_script(scripts, phase, config.zero_config)
