"""
Tests for the nodelambda CLI.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import write_files
from nodelambda import cli


class TestParser:
    def test_build_defaults(self) -> None:
        args = cli.create_parser().parse_args(["build"])

        assert args.command == "build"
        assert args.entrypoint == "package.json"
        assert args.work_path == "."
        assert args.dev is False

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main([]) == 0
        assert "prepare-cache" in capsys.readouterr().out


class TestBuildCommand:
    def test_build_writes_output(self, project_dir: Path, fake_build: dict, tmp_path: Path) -> None:
        out = tmp_path / "out"

        code = cli.main(["build", "--work-path", str(project_dir), "--out", str(out)])

        assert code == 0
        assert (out / "index.html").exists()
        assert (out / "static" / "main.js").exists()
        assert (out / "render.js.zip").stat().st_size > 0
        manifest = json.loads((out / "result.json").read_text())
        assert manifest["output"]["render.js"] == "lambda"
        assert manifest["routes"][-1] == {"src": "/(.*)", "dest": "/render.js"}

    def test_config_file(self, project_dir: Path, fake_build: dict, tmp_path: Path) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("excludeFiles:\n  - build/node/lib/b.js\n")
        out = tmp_path / "out"

        cli.main(["build", "--work-path", str(project_dir), "--config", str(config), "--out", str(out)])

        manifest = json.loads((out / "result.json").read_text())
        assert "build/node/lib/b.js" not in manifest["watch"]
        assert "build/node/lib/a.js" in manifest["watch"]

    def test_failure_returns_1(
        self, project_dir: Path, fake_build: dict, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        write_files(project_dir, {"package.json": '{"scripts": {}}'})

        code = cli.main(["build", "--work-path", str(project_dir), "--out", str(tmp_path / "out")])

        assert code == 1
        assert 'Missing required "now-build" script' in capsys.readouterr().err

    def test_zero_config_flag(self, project_dir: Path, fake_build: dict, tmp_path: Path) -> None:
        write_files(project_dir, {"package.json": '{"scripts": {}}'})

        cli.main([
            "build", "--zero-config", "--work-path", str(project_dir), "--out", str(tmp_path / "out"),
        ])

        assert fake_build["scripts"] == ["build"]


class TestPrepareCacheCommand:
    def test_lists_lockfiles(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        write_files(tmp_path, {"node_modules/x/index.js": "", "yarn.lock": ""})

        assert cli.main(["prepare-cache", "--work-path", str(tmp_path)]) == 0

        out = capsys.readouterr().out
        assert "yarn.lock" in out
        assert "node_modules: 1 file(s)" in out
