"""Building blocks shared by the middlewares."""
from __future__ import annotations

from typing import Any

from ..http import Handler, Middleware, Request


class ContextKey:
    """A request-context key compared by identity."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __str__(self) -> str:
        return "routekit/middleware context value " + self.name

    __repr__ = __str__


def new(handler: Handler) -> Middleware:
    """Make a middleware that serves ``handler`` instead of the next one."""

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            handler(w, r)

        return serve

    return middleware