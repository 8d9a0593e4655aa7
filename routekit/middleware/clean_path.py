"""Middleware that cleans double slashes and dot segments out of the routing path."""
from __future__ import annotations

from typing import Any

from ..context import route_context
from ..http import Handler, Request


def _clean(path: str) -> str:
    """Return the shortest equivalent of ``path`` by purely lexical processing."""
    if not path:
        return "."
    rooted = path.startswith("/")
    parts: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts and parts[-1] != "..":
                parts.pop()
            elif not rooted:
                parts.append("..")
            continue
        parts.append(segment)
    cleaned = "/".join(parts)
    if rooted:
        cleaned = "/" + cleaned
    return cleaned or "."


def clean_path(next_handler: Handler) -> Handler:
    """Route the request by its cleaned path: ``/users//1`` is routed as ``/users/1``.

    Raises :class:`RuntimeError` when the request carries no routing context.
    """

    def serve(w: Any, r: Request) -> None:
        rctx = route_context(r.context)
        if rctx is None:
            raise RuntimeError("clean_path requires a routing context")
        if not rctx.route_path:
            rctx.route_path = _clean(r.raw_path or r.path)
        next_handler(w, r)

    return serve