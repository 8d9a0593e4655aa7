"""Middlewares for response headers and request Content-Type checks."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any

from ..http import Handler, Middleware, Request


def set_header(key: str, value: str) -> Middleware:
    """Make a middleware that sets a response header before serving."""

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            w.header().set(key, value)
            next_handler(w, r)

        return serve

    return middleware


def allow_content_type(*args: str) -> Middleware:
    """Reply 415 unless the request Content-Type is one of ``args``."""
    allowed = {content_type.lower().strip() for content_type in args}

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            if r.content_length == 0:
                next_handler(w, r)
                return
            content_type = r.headers.get("Content-Type").strip().lower()
            content_type = content_type.split(";", 1)[0]
            if content_type in allowed:
                next_handler(w, r)
                return
            w.write_header(HTTPStatus.UNSUPPORTED_MEDIA_TYPE)

        return serve

    return middleware