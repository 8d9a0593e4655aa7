"""Routing context carried on each request: URL parameters and patterns."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .http import Request, RequestContext, Routes


class _ContextKey:
    def __init__(self, name: str) -> None:
        self.name = name

    def __str__(self) -> str:
        return "routekit context value " + self.name

    __repr__ = __str__


ROUTE_CTX_KEY = _ContextKey("RouteContext")


@dataclass
class RouteParams:
    """URL parameter names and values, in the order they were captured."""

    keys: list[str] = field(default_factory=list)
    values: list[str] = field(default_factory=list)

    def add(self, key: str, value: str) -> None:
        self.keys.append(key)
        self.values.append(value)


@dataclass
class RouteContext:
    """Routing state for a request as it passes through routers."""

    routes: Routes | None = None
    route_path: str = ""
    route_method: str = ""
    url_params: RouteParams = field(default_factory=RouteParams)
    route_params: RouteParams = field(default_factory=RouteParams)
    current_pattern: str = ""
    route_patterns: list[str] = field(default_factory=list)
    method_not_allowed: bool = False

    def reset(self) -> None:
        """Return the context to its initial state."""
        self.routes = None
        self.route_path = ""
        self.route_method = ""
        self.route_patterns.clear()
        self.url_params.keys.clear()
        self.url_params.values.clear()
        self.current_pattern = ""
        self.route_params.keys.clear()
        self.route_params.values.clear()
        self.method_not_allowed = False

    def url_param(self, key: str) -> str:
        """Return the most recently captured value for ``key``, or ``""``."""
        for name, value in zip(reversed(self.url_params.keys), reversed(self.url_params.values)):
            if name == key:
                return value
        return ""

    def route_pattern(self) -> str:
        """Return the full pattern matched so far across all routers."""
        pattern = _replace_wildcards("".join(self.route_patterns))
        return pattern.removesuffix("//").removesuffix("/")


def _replace_wildcards(pattern: str) -> str:
    while "/*/" in pattern:
        pattern = pattern.replace("/*/", "/")
    return pattern


def route_context(ctx: RequestContext | None) -> RouteContext | None:
    """Return the routing context stored on ``ctx``, if any."""
    if ctx is None:
        return None
    value: Any = ctx.value(ROUTE_CTX_KEY)
    return value if isinstance(value, RouteContext) else None


def new_route_context() -> RouteContext:
    return RouteContext()


def url_param(r: Request, key: str) -> str:
    """Return a URL parameter of the request, or ``""``."""
    return url_param_from_ctx(r.context, key)


def url_param_from_ctx(ctx: RequestContext, key: str) -> str:
    rctx = route_context(ctx)
    return rctx.url_param(key) if rctx is not None else ""