"""Routing requests through middlewares chosen by request header values."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from ..http import Handler, Middleware, Request


@dataclass(frozen=True)
class Pattern:
    """A header value pattern holding at most one ``*`` wildcard."""

    prefix: str = ""
    suffix: str = ""
    wildcard: bool = False

    def match(self, value: str) -> bool:
        if not self.wildcard:
            return self.prefix == value
        return (
            len(value) >= len(self.prefix) + len(self.suffix)
            and value.startswith(self.prefix)
            and value.endswith(self.suffix)
        )


def new_pattern(value: str) -> Pattern:
    """Parse ``value``, splitting it at its first ``*``."""
    prefix, star, suffix = value.partition("*")
    if star:
        return Pattern(prefix, suffix, True)
    return Pattern(value)


@dataclass
class HeaderRoute:
    """A middleware and the header patterns that select it."""

    middleware: Middleware | None = None
    match_one: Pattern = field(default_factory=Pattern)
    match_any: list[Pattern] = field(default_factory=list)

    def is_match(self, value: str) -> bool:
        if self.match_any:
            return any(pattern.match(value) for pattern in self.match_any)
        return self.match_one.match(value)


class HeaderRouter(dict):
    """Header name (lower case) to the routes tried for its value, in order."""

    def route(self, header: str, match: str, middleware: Middleware) -> HeaderRouter:
        self.setdefault(header.lower(), []).append(
            HeaderRoute(middleware, match_one=new_pattern(match))
        )
        return self

    def route_any(self, header: str, match: Iterable[str],
                  middleware: Middleware) -> HeaderRouter:
        patterns = [new_pattern(value) for value in match]
        self.setdefault(header.lower(), []).append(
            HeaderRoute(middleware, match_any=patterns)
        )
        return self

    def route_default(self, middleware: Middleware | None) -> HeaderRouter:
        """Use ``middleware`` when no header route matches."""
        self["*"] = [HeaderRoute(middleware)]
        return self

    def handler(self, next_handler: Handler) -> Handler:
        """Run the first matching route's middleware, then ``next_handler``."""

        def serve(w: Any, r: Request) -> None:
            if not self:
                next_handler(w, r)
                return
            for header, matchers in self.items():
                header_value = r.headers.get(header)
                if not header_value:
                    continue
                header_value = header_value.lower()
                for matcher in matchers:
                    if matcher.is_match(header_value):
                        matcher.middleware(next_handler)(w, r)
                        return
            default = self.get("*")
            if not default or default[0].middleware is None:
                next_handler(w, r)
                return
            default[0].middleware(next_handler)(w, r)

        return serve


def route_headers() -> HeaderRouter:
    return HeaderRouter()