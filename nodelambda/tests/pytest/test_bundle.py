"""
Tests for routes, launcher generation and lambda assembly.
"""

from __future__ import annotations

import io
import stat
import zipfile

import pytest

from nodelambda.build.assemble import (
    LAUNCHER_HANDLER,
    RESERVED_NAMES,
    assemble,
    launcher_files,
    merge_files,
)
from nodelambda.files import FileBlob
from nodelambda.launcher import make_launcher
from nodelambda.packaging import create_lambda, create_zip
from nodelambda.routes import Route, dev_routes, get_dev_route, mount_prefix, static_routes


# =============================================================================
# Routes
# =============================================================================


class TestStaticRoutes:
    """The static route table is emitted in a fixed order."""

    def test_order_and_shape(self) -> None:
        routes = [r.to_dict() for r in static_routes("/render.js")]

        assert routes == [
            {
                "src": "/static/(.*)",
                "headers": {"cache-control": "s-maxage=31536000, immutable"},
                "continue": True,
            },
            {
                "src": "/service-worker.js",
                "headers": {"cache-control": "s-maxage=0"},
                "continue": True,
            },
            {"src": "/sockjs-node/(.*)", "dest": "/sockjs-node/$1"},
            {"handle": "filesystem"},
            {"src": "/(.*)", "dest": "/render.js"},
        ]

    def test_filesystem_phase_precedes_catch_all(self) -> None:
        routes = static_routes()
        handles = [r.handle for r in routes]

        assert handles.index("filesystem") == len(routes) - 2
        assert routes[-1].src == "/(.*)"

    def test_route_parses_continue_alias(self) -> None:
        route = Route.model_validate({"src": "/a", "continue": True})
        assert route.continue_ is True


class TestDevRoutes:
    @pytest.mark.parametrize(
        "mountpoint,expected",
        [(".", ""), ("./", ""), ("app", "/app"), ("./app", "/app"), ("apps/web/", "/apps/web")],
    )
    def test_mount_prefix(self, mountpoint: str, expected: str) -> None:
        assert mount_prefix(mountpoint) == expected

    def test_root_mount(self) -> None:
        assert [r.to_dict() for r in dev_routes(".", 4321)] == [
            {"src": "/(.*)", "dest": "http://localhost:4321/$1"}
        ]

    def test_nested_mount(self) -> None:
        (route,) = dev_routes("app", 5000)
        assert route.src == "/app/(.*)"
        assert route.dest == "http://localhost:5000/$1"

    def test_dev_route_keeps_headers(self) -> None:
        proxied = get_dev_route("", 3000, Route(src="/x", dest="/y", headers={"a": "b"}))
        assert proxied.to_dict() == {
            "src": "/x",
            "dest": "http://localhost:3000/y",
            "headers": {"a": "b"},
        }


# =============================================================================
# Launcher
# =============================================================================


class TestMakeLauncher:
    def test_paths_are_quoted_literals(self) -> None:
        source = make_launcher(
            entrypoint_path="./build/node/index.js",
            bridge_path="./___now_bridge",
            helpers_path="./___now_helpers",
            sourcemap_support_path="./__sourcemap_support",
        )

        assert 'require("./___now_bridge")' in source
        assert 'require("./build/node/index.js")' in source
        assert 'require("./___now_helpers")' in source
        assert "exports.launcher = bridge.launcher;" in source
        assert "__" + "ENTRYPOINT_PATH__" not in source

    def test_without_helpers(self) -> None:
        source = make_launcher("./a.js", "./b", "./h", "./s", should_add_helpers=False)

        assert "createServerWithHelpers" not in source
        assert "require('http').createServer(listener)" in source


# =============================================================================
# Assembly
# =============================================================================


class TestAssemble:
    """assemble merges the closure with the launcher companions."""

    def test_lambda_contents_and_handler(self) -> None:
        traced = {
            "build/node/index.js": FileBlob(data=b"module.exports = () => {};"),
            "build/node/lib/a.js": FileBlob(data=b""),
        }

        lam = assemble(traced, launcher_files(), "nodejs20.x")

        assert lam.handler == LAUNCHER_HANDLER == "___now_launcher.launcher"
        assert lam.runtime == "nodejs20.x"
        assert sorted(lam.names()) == sorted([
            "___now_bridge.js",
            "___now_helpers.js",
            "___now_launcher.js",
            "build/node/index.js",
            "build/node/lib/a.js",
        ])
        assert b"Bridge" in lam.read("___now_bridge.js")
        assert b"createServerWithHelpers" in lam.read("___now_helpers.js")

    def test_reserved_names(self) -> None:
        assert set(launcher_files()) == RESERVED_NAMES

    def test_traced_file_cannot_replace_launcher(self, capsys: pytest.CaptureFixture[str]) -> None:
        traced = {
            "___now_launcher.js": FileBlob(data=b"evil"),
            "index.js": FileBlob(data=b""),
        }

        merged = merge_files(traced, launcher_files("./index.js"))

        assert merged["___now_launcher.js"].to_bytes() != b"evil"
        assert b'require("./index.js")' in merged["___now_launcher.js"].to_bytes()
        assert "reserved" in capsys.readouterr().out


class TestCreateZip:
    """Archives are deterministic and keep file modes."""

    def test_deterministic(self) -> None:
        files_a = {"b.js": FileBlob(data=b"b"), "a.js": FileBlob(data=b"a")}
        files_b = {"a.js": FileBlob(data=b"a"), "b.js": FileBlob(data=b"b")}

        assert create_zip(files_a) == create_zip(files_b)

    def test_modes_preserved(self) -> None:
        lam = create_lambda(
            {"bin/run": FileBlob(data=b"#!/bin/sh", mode=0o100755)},
            handler="x.handler",
            runtime="nodejs20.x",
        )
        with zipfile.ZipFile(io.BytesIO(lam.zip_bytes)) as zf:
            info = zf.getinfo("bin/run")

        mode = info.external_attr >> 16
        assert stat.S_ISREG(mode)
        assert mode & 0o777 == 0o755
        assert info.date_time == (1980, 1, 1, 0, 0, 0)

    def test_non_regular_mode_stored_as_regular_file(self) -> None:
        zip_bytes = create_zip({"link.js": FileBlob(data=b"x", mode=stat.S_IFLNK | 0o777)})

        with zipfile.ZipFile(io.BytesIO(zip_bytes)) as zf:
            mode = zf.getinfo("link.js").external_attr >> 16

        assert stat.S_ISREG(mode)
        assert mode & 0o777 == 0o777
