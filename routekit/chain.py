"""Composition of middleware stacks around an endpoint handler."""
from __future__ import annotations

from typing import Any, Iterable

from .http import Handler, Middleware, Request


def _compose(middlewares: Iterable[Middleware], endpoint: Handler) -> Handler:
    handler = endpoint
    for middleware in reversed(list(middlewares)):
        handler = middleware(handler)
    return handler


class Middlewares(list):
    """A list of middlewares that can be wrapped around a handler."""

    def handler(self, endpoint: Handler) -> ChainHandler:
        """Build a handler running every middleware, then ``endpoint``."""
        return ChainHandler(endpoint, Middlewares(self))


class ChainHandler:
    """A handler composed of a middleware stack and an endpoint."""

    def __init__(self, endpoint: Handler, middlewares: Middlewares) -> None:
        self.endpoint = endpoint
        self.middlewares = middlewares
        self._chain = _compose(middlewares, endpoint)

    def __call__(self, w: Any, r: Request) -> None:
        self._chain(w, r)


def chain(*args: Middleware) -> Middlewares:
    """Collect middlewares, outermost first, into a :class:`Middlewares`."""
    return Middlewares(args)