"""Middleware taking a format extension off the request path."""
from __future__ import annotations

from typing import Any

from ..context import route_context
from ..http import Handler, Request
from .base import ContextKey

URL_FORMAT_CTX_KEY = ContextKey("URLFormat")
"""Context key under which the path's extension (without the dot) is stored."""


def url_format(next_handler: Handler) -> Handler:
    """Store the path extension, e.g. ``json`` for ``/articles/1.json``, on the
    context and route the request by the path without it.

    Raises :class:`RuntimeError` when an extension is found but the request
    carries no routing context.
    """

    def serve(w: Any, r: Request) -> None:
        found_format = ""
        path = r.path
        if path.find(".") > 0:
            base = max(path.rfind("/"), 0)
            idx = path[base:].rfind(".")
            if idx > 0:
                idx += base
                found_format = path[idx + 1:]
                rctx = route_context(r.context)
                if rctx is None:
                    raise RuntimeError("url_format requires a routing context")
                rctx.route_path = path[:idx]
        next_handler(w, r.with_context(r.context.with_value(URL_FORMAT_CTX_KEY, found_format)))

    return serve