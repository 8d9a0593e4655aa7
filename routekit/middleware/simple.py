"""Small general-purpose middlewares."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any, Callable

from ..http import Handler, Middleware, Request

EPOCH = "Thu, 01 Jan 1970 00:00:00 UTC"
"""The Unix epoch in RFC 1123 form."""

NO_CACHE_HEADERS = {
    "Expires": EPOCH,
    "Cache-Control": "no-cache, no-store, no-transform, must-revalidate, private, max-age=0",
    "Pragma": "no-cache",
    "X-Accel-Expires": "0",
}

ETAG_HEADERS = (
    "ETag",
    "If-Modified-Since",
    "If-Match",
    "If-None-Match",
    "If-Range",
    "If-Unmodified-Since",
)


def heartbeat(endpoint: str) -> Middleware:
    """Answer GET and HEAD requests for ``endpoint`` with a plain ``.``."""

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            if r.method in ("GET", "HEAD") and r.path.casefold() == endpoint.casefold():
                w.header().set("Content-Type", "text/plain")
                w.write_header(HTTPStatus.OK)
                w.write(b".")
                return
            next_handler(w, r)

        return serve

    return middleware


def maybe(mw: Middleware, maybe_fn: Callable[[Request], bool]) -> Middleware:
    """Apply ``mw`` only to requests for which ``maybe_fn`` is true."""

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            if maybe_fn(r):
                mw(next_handler)(w, r)
            else:
                next_handler(w, r)

        return serve

    return middleware


def no_cache(next_handler: Handler) -> Handler:
    """Drop request validators and set headers that forbid caching the response."""

    def serve(w: Any, r: Request) -> None:
        for name in ETAG_HEADERS:
            if r.headers.get(name):
                r.headers.delete(name)
        header = w.header()
        for name, value in NO_CACHE_HEADERS.items():
            header.set(name, value)
        next_handler(w, r)

    return serve


def page_route(path: str, handler: Handler) -> Middleware:
    """Serve GET requests for ``path`` with ``handler`` at the middleware level."""

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            if r.method == "GET" and r.path.casefold() == path.casefold():
                handler(w, r)
                return
            next_handler(w, r)

        return serve

    return middleware


def path_rewrite(old: str, new: str) -> Middleware:
    """Replace the first ``old`` in the request path with ``new``."""

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            r.path = r.path.replace(old, new, 1)
            next_handler(w, r)

        return serve

    return middleware


def with_value(key: Any, value: Any) -> Middleware:
    """Store ``value`` under ``key`` on the request context."""

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            next_handler(w, r.with_context(r.context.with_value(key, value)))

        return serve

    return middleware