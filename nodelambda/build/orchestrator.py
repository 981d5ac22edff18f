"""
Build orchestrator for nodelambda.

Runs one build invocation: download, install, then either start the dev
server (dev mode) or run the build script and collect static output, and
finally trace the render entrypoint and package it as a lambda.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from nodelambda.build.assemble import assemble, launcher_files
from nodelambda.build.phases import (
    get_start_command,
    run_npm_install,
    run_package_json_script,
)
from nodelambda.build.runtime import get_node_version, get_spawn_options
from nodelambda.build.scripts import get_command
from nodelambda.build.validation import validate_dist_dir
from nodelambda.config import RENDER_OUTPUT_KEY, BuildOptions, read_package_json
from nodelambda.core.timing import TimingContext, format_ms, timing_summary
from nodelambda.core.utils import log, relative_key
from nodelambda.dev.supervisor import DevServerSupervisor
from nodelambda.errors import ConfigurationError
from nodelambda.files import File, Files
from nodelambda.fs import download, glob
from nodelambda.packaging import Lambda
from nodelambda.routes import Route, dev_routes, mount_prefix, static_routes
from nodelambda.trace.compile import compile_entrypoint

LOCAL_DEVELOPMENT_DOCS = (
    "https://zeit.co/docs/v2/deployments/official-builders/"
    "static-build-now-static-build/#local-development"
)


class BuildResult(BaseModel):
    """What a build hands back to the host."""

    routes: List[Route] = Field(default_factory=list)
    watch: List[str] = Field(default_factory=list)
    output: Dict[str, Any] = Field(default_factory=dict)
    dist_path: Path

    @property
    def lambda_(self) -> Lambda:
        return self.output[RENDER_OUTPUT_KEY]  # type: ignore[return-value]

    def manifest(self) -> Dict[str, Any]:
        """JSON-serialisable summary: routes, watch list and output kinds."""
        return {
            "routes": [r.to_dict() for r in self.routes],
            "watch": list(self.watch),
            "output": {
                name: ("lambda" if isinstance(entry, Lambda) else "file")
                for name, entry in sorted(self.output.items())
            },
            "distPath": str(self.dist_path),
        }


class Builder:
    """Runs builds and owns the state shared between them.

    The dev server supervisor and the install record outlive a single build:
    repeated dev builds of the same entrypoint reuse its running server and
    skip reinstalling unchanged dependencies.
    """

    def __init__(self, supervisor: Optional[DevServerSupervisor] = None):
        self.supervisor = supervisor or DevServerSupervisor()
        self.installed: dict[str, str] = {}
        self.timings: dict[str, int] = {}

    def build(self, options: BuildOptions) -> BuildResult:
        """Run one build invocation.

        ``config.debug`` enables debug output for this build only.
        """
        previous_debug = log.debug_setting
        if options.config.debug:
            log.set_debug(True)
        try:
            return self._run(options)
        finally:
            log.set_debug(previous_debug)

    def _run(self, options: BuildOptions) -> BuildResult:
        self.timings = {}
        work_path = options.work_path
        meta = options.meta
        config = options.config

        log.header(f"Building {options.entrypoint}")

        log.debug("Downloading user files...")
        with TimingContext(self.timings, "download"):
            download(options.files, work_path, meta)

        pkg = read_package_json(work_path / options.entrypoint)
        scripts = pkg.get("scripts") or {}

        node_version = get_node_version(options.entrypoint_dir, options.node_version_hint, config)
        spawn_opts = get_spawn_options(meta, node_version)

        log.info("Installing dependencies...")
        with TimingContext(self.timings, "install"):
            run_npm_install(
                options.entrypoint_dir,
                ["--prefer-offline"],
                spawn_opts,
                meta,
                installed=self.installed,
            )

        routes: list[Route] = []
        output: Files = {}

        if meta.is_dev and scripts.get("start"):
            with TimingContext(self.timings, "dev-server"):
                dev_port = self.supervisor.ensure_dev_server(
                    options.entrypoint,
                    get_start_command(options.entrypoint_dir),
                    options.entrypoint_dir,
                    spawn_opts.env,
                )
            # The dev server owns static files; everything is proxied to it
            routes.extend(dev_routes(options.mountpoint, dev_port))
        else:
            if meta.is_dev:
                log.debug('WARN: "start" script is missing from package.json')
                log.debug(f"See the local development docs: {LOCAL_DEVELOPMENT_DOCS}")

            build_script = get_command(pkg, "build", config)
            log.debug(f'Running "{build_script}" script in "{options.entrypoint}"')

            with TimingContext(self.timings, "build"):
                found = run_package_json_script(options.entrypoint_dir, build_script, spawn_opts)
            if not found:
                raise ConfigurationError(
                    f'Missing required "{build_script}" script in "{options.entrypoint}"'
                )

            validate_dist_dir(options.dist_path, meta.is_dev, config)

            routes.extend(static_routes(f"/{RENDER_OUTPUT_KEY}"))
            output = glob("**", options.dist_path, options.mountpoint)

        # `now dev` runs the system node
        runtime = "nodejs" if meta.is_dev else node_version.runtime

        log.debug("Tracing input files...")
        with TimingContext(self.timings, "trace") as timer:
            traced = compile_entrypoint(work_path, options.render_path, config)
        log.debug(f"Trace complete [{format_ms(timer.elapsed_ms)}]")

        entrypoint_rel = relative_key(options.render_path, work_path)
        lam = assemble(traced.prepared_files, launcher_files(f"./{entrypoint_rel}"), runtime)

        result_output: Dict[str, Union[File, Lambda]] = dict(output)
        result_output[RENDER_OUTPUT_KEY] = lam

        mount_glob = mount_prefix(options.mountpoint).lstrip("/")
        watch = traced.watch + [f"{mount_glob}/**/*" if mount_glob else "**/*"]

        log.debug(timing_summary(self.timings))
        log.success(
            f"Built {options.entrypoint}: {len(output)} static file(s), "
            f"lambda with {len(traced.prepared_files)} traced file(s)"
        )

        return BuildResult(
            routes=routes,
            watch=watch,
            output=result_output,
            dist_path=options.dist_path,
        )

    def prepare_cache(self, work_path: Path) -> Files:
        """Files worth keeping between builds of the same project."""
        files: Files = {}
        files.update(glob("node_modules/**", work_path))
        files.update(glob("package-lock.json", work_path))
        files.update(glob("yarn.lock", work_path))
        return files
