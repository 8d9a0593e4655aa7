"""Middlewares dealing with trailing slashes in request paths."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any

from ..context import route_context
from ..http import Handler, Request, redirect


def strip_slashes(next_handler: Handler) -> Handler:
    """Drop a trailing slash from the routing path and continue routing."""

    def serve(w: Any, r: Request) -> None:
        rctx = route_context(r.context)
        path = rctx.route_path if rctx is not None and rctx.route_path else r.path
        if len(path) > 1 and path.endswith("/"):
            if rctx is None:
                r.path = path[:-1]
            else:
                rctx.route_path = path[:-1]
        next_handler(w, r)

    return serve


def redirect_slashes(next_handler: Handler) -> Handler:
    """Redirect paths with a trailing slash to the same path without it."""

    def serve(w: Any, r: Request) -> None:
        rctx = route_context(r.context)
        path = rctx.route_path if rctx is not None and rctx.route_path else r.path
        if len(path) > 1 and path.endswith("/"):
            path = path[:-1]
            if r.raw_query:
                path = f"{path}?{r.raw_query}"
            redirect(w, r, f"//{r.host}{path}", HTTPStatus.MOVED_PERMANENTLY)
            return
        next_handler(w, r)

    return serve