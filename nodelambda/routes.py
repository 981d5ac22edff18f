"""Routing rules emitted for the host platform."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Route(BaseModel):
    """A request routing rule.

    Either a matching rule (``src`` with optional ``dest``/``headers``/
    ``continue``) or a phase marker (``handle``).
    """

    model_config = ConfigDict(populate_by_name=True)

    src: Optional[str] = Field(None, description="Request path pattern")
    dest: Optional[str] = Field(None, description="Destination path or absolute URL")
    headers: Optional[Dict[str, str]] = Field(None, description="Response headers to set")
    continue_: Optional[bool] = Field(
        None, alias="continue", description="Keep matching after this rule"
    )
    handle: Optional[str] = Field(None, description="Built-in routing phase, e.g. 'filesystem'")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def static_routes(render_dest: str = "/render.js") -> List[Route]:
    """Routes for a static build with a rendered fallback, in match order."""
    return [
        Route(
            src="/static/(.*)",
            headers={"cache-control": "s-maxage=31536000, immutable"},
            continue_=True,
        ),
        Route(
            src="/service-worker.js",
            headers={"cache-control": "s-maxage=0"},
            continue_=True,
        ),
        Route(src="/sockjs-node/(.*)", dest="/sockjs-node/$1"),
        Route(handle="filesystem"),
        Route(src="/(.*)", dest=render_dest),
    ]


def mount_prefix(mountpoint: str) -> str:
    """``"."`` -> ``""``; ``"./app"`` or ``"app"`` -> ``"/app"``."""
    base = mountpoint
    if base.startswith("./"):
        base = base[2:]
    elif base == ".":
        base = ""
    base = base.strip("/")
    return f"/{base}" if base else ""


def get_dev_route(src_base: str, dev_port: int, route: Route) -> Route:
    """Proxy ``route`` to the local dev server on ``dev_port``."""
    proxied = Route(
        src=f"{src_base}{route.src or ''}",
        dest=f"http://localhost:{dev_port}{route.dest or ''}",
    )
    if route.headers:
        proxied.headers = dict(route.headers)
    return proxied


def dev_routes(mountpoint: str, dev_port: int) -> List[Route]:
    """The single catch-all proxy route used while a dev server runs."""
    return [get_dev_route(mount_prefix(mountpoint), dev_port, Route(src="/(.*)", dest="/$1"))]
