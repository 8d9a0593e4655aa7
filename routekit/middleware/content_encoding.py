"""Middleware restricting the Content-Encoding of request bodies."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any

from ..http import Handler, Middleware, Request


def allow_content_encoding(*args: str) -> Middleware:
    """Reply 415 unless every request Content-Encoding is among ``args``."""
    allowed = {encoding.lower().strip() for encoding in args}

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            if r.content_length == 0:
                next_handler(w, r)
                return
            for encoding in r.headers.values("Content-Encoding"):
                if encoding.lower().strip() not in allowed:
                    w.write_header(HTTPStatus.UNSUPPORTED_MEDIA_TYPE)
                    return
            next_handler(w, r)

        return serve

    return middleware