"""
Main CLI for nodelambda.

Builds a Node.js project into static output plus a lambda bundle, or runs it
against a live dev server.
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Optional

from nodelambda import __version__
from nodelambda.build.orchestrator import Builder, BuildResult
from nodelambda.config import BuilderConfig, BuildMeta, BuildOptions, load_config
from nodelambda.core.utils import log
from nodelambda.dev.supervisor import install_signal_handlers
from nodelambda.files import Files
from nodelambda.fs import glob
from nodelambda.packaging import Lambda


# =============================================================================
# Argument Parsing
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="nodelambda",
        description="Package a Node.js app's build output as a minimal lambda",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  build          Build an entrypoint into static files and a lambda
  prepare-cache  List dependency files worth caching between builds

Examples:
  nodelambda build package.json                 # Build the project in cwd
  nodelambda build app/package.json --out dist  # Nested entrypoint
  nodelambda build package.json --dev           # Proxy to the dev server
  nodelambda prepare-cache                      # Show cacheable files
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug output")

    subparsers = parser.add_subparsers(dest="command", title="commands", metavar="<command>")

    # --- build ---
    build_parser = subparsers.add_parser(
        "build",
        help="Build an entrypoint",
        description="Run the build script, trace the render entrypoint and package it.",
    )
    build_parser.add_argument(
        "entrypoint",
        nargs="?",
        default="package.json",
        help="package.json of the app, relative to --work-path (default: package.json)",
    )
    build_parser.add_argument(
        "--work-path",
        default=".",
        help="Directory the build runs in (default: current directory)",
    )
    build_parser.add_argument(
        "--source",
        help="Copy the files of this directory into --work-path before building",
    )
    build_parser.add_argument(
        "--config",
        help="Builder config file, YAML or JSON (zeroConfig, includeFiles, excludeFiles)",
    )
    build_parser.add_argument(
        "--zero-config",
        action="store_true",
        help="Infer script names by convention",
    )
    build_parser.add_argument(
        "--node-version",
        help="Node.js version range, overrides engines.node",
    )
    build_parser.add_argument(
        "--dev",
        action="store_true",
        help="Start the project's dev server and print a proxy route",
    )
    build_parser.add_argument(
        "--out",
        default=".nodelambda/output",
        help="Where static files, the lambda and result.json go (default: .nodelambda/output)",
    )

    # --- prepare-cache ---
    cache_parser = subparsers.add_parser(
        "prepare-cache",
        help="List dependency files worth caching",
    )
    cache_parser.add_argument(
        "--work-path",
        default=".",
        help="Project directory (default: current directory)",
    )

    return parser


# =============================================================================
# Commands
# =============================================================================


def _build_config(args: argparse.Namespace) -> BuilderConfig:
    if args.config:
        config = load_config(Path(args.config))
    else:
        config = BuilderConfig()
    if args.zero_config:
        config.zero_config = True
    if args.verbose:
        config.debug = True
    return config


def write_output(result: BuildResult, out_dir: Path) -> None:
    """Write static files, the lambda archive and result.json into ``out_dir``."""
    for name, entry in result.output.items():
        if isinstance(entry, Lambda):
            entry.write_to(out_dir / f"{name}.zip")
        else:
            entry.write_to(out_dir / name)

    (out_dir / "result.json").write_text(json.dumps(result.manifest(), indent=2) + "\n")


def cmd_build(args: argparse.Namespace) -> int:
    """Execute the build command."""
    work_path = Path(args.work_path).resolve()
    config = _build_config(args)

    files: Files = {}
    if args.source:
        files = glob("**", Path(args.source).resolve())

    options = BuildOptions(
        files=files,
        entrypoint=args.entrypoint,
        work_path=work_path,
        config=config,
        meta=BuildMeta(is_dev=args.dev),
        node_version_hint=args.node_version,
    )

    builder = Builder()
    if args.dev:
        install_signal_handlers(builder.supervisor)

    result = builder.build(options)

    out_dir = Path(args.out).resolve()
    write_output(result, out_dir)
    log.success(f"Output written to {out_dir}")

    for route in result.routes:
        log.dim(json.dumps(route.to_dict()))

    if args.dev:
        log.info("")
        log.info("Dev server running (Ctrl+C to stop)")
        # Signal handlers forward SIGINT/SIGTERM to the dev server and exit
        while True:
            time.sleep(1)

    return 0


def cmd_prepare_cache(args: argparse.Namespace) -> int:
    """Execute the prepare-cache command."""
    work_path = Path(args.work_path).resolve()
    files = Builder().prepare_cache(work_path)

    log.header("Cacheable files")
    for name in sorted(files):
        if not name.startswith("node_modules/"):
            log.info(name)
    modules = sum(1 for name in files if name.startswith("node_modules/"))
    log.info(f"node_modules: {modules} file(s)")
    log.success(f"{len(files)} file(s) total")
    return 0


# =============================================================================
# Main Entry Point
# =============================================================================


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        log.set_color(False)
    if args.verbose:
        log.set_debug(True)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "build":
            return cmd_build(args)
        elif args.command == "prepare-cache":
            return cmd_prepare_cache(args)
        else:
            log.error(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        log.warning("Build interrupted")
        return 130
    except Exception as e:
        log.error(str(e))
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
