"""Middleware rejecting requests whose body charset is not allowed."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any

from ..http import Handler, Middleware, Request


def split(text: str, sep: str) -> tuple[str, str]:
    """Split ``text`` once at ``sep``, stripping whitespace from both parts."""
    head, found, tail = text.partition(sep)
    return head.strip(), tail.strip() if found else ""


def charset_allowed(content_type: str, *args: str) -> bool:
    """Report whether the charset of ``content_type`` is one of ``args``."""
    _, rest = split(content_type.lower(), ";")
    _, rest = split(rest, "charset=")
    charset, _ = split(rest, ";")
    return charset in args


def content_charset(*args: str) -> Middleware:
    """Reply 415 unless the request charset is one of ``args``.

    An empty string admits requests that name no charset.
    """
    charsets = tuple(charset.lower() for charset in args)

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            if not charset_allowed(r.headers.get("Content-Type"), *charsets):
                w.write_header(HTTPStatus.UNSUPPORTED_MEDIA_TYPE)
                return
            next_handler(w, r)

        return serve

    return middleware