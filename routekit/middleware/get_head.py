"""Middleware routing HEAD requests without a HEAD route to GET handlers."""
from __future__ import annotations

from typing import Any

from ..context import new_route_context, route_context
from ..http import Handler, Request


def get_head(next_handler: Handler) -> Handler:
    """Serve undefined HEAD routes with their GET handlers, keeping the HEAD method.

    Raises :class:`RuntimeError` for a HEAD request without a routing context.
    """

    def serve(w: Any, r: Request) -> None:
        if r.method == "HEAD":
            rctx = route_context(r.context)
            if rctx is None or rctx.routes is None:
                raise RuntimeError("get_head requires a routing context with routes")
            route_path = rctx.route_path or r.raw_path or r.path
            # Look ahead with a throwaway context before routing the request.
            if not rctx.routes.match(new_route_context(), "HEAD", route_path):
                rctx.route_method = "GET"
                rctx.route_path = route_path
        next_handler(w, r)

    return serve