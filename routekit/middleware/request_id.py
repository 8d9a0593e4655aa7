"""Middleware that tags every request with a unique request ID."""
from __future__ import annotations

import base64
import itertools
import secrets
import socket
import threading
from typing import Any

from ..http import Handler, Request, RequestContext
from .base import ContextKey

REQUEST_ID_KEY = ContextKey("RequestID")
"""Context key under which the request ID is stored."""

REQUEST_ID_HEADER = "X-Request-Id"
"""Name of the request header that may carry a request ID."""


def _make_prefix() -> str:
    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = ""
    if not hostname:
        hostname = "localhost"
    b64 = ""
    while len(b64) < 10:
        b64 = base64.b64encode(secrets.token_bytes(12)).decode("ascii")
        b64 = b64.replace("+", "").replace("/", "")
    return f"{hostname}/{b64[:10]}"


_prefix = _make_prefix()
_counter = itertools.count(1)
_counter_lock = threading.Lock()


def next_request_id() -> int:
    """Return the next number in the process-wide request sequence."""
    with _counter_lock:
        return next(_counter)


def request_id(next_handler: Handler) -> Handler:
    """Store the request's ID, taken from the header or generated, on its context."""

    def serve(w: Any, r: Request) -> None:
        rid = r.headers.get(REQUEST_ID_HEADER)
        if not rid:
            rid = f"{_prefix}-{next_request_id():06d}"
        next_handler(w, r.with_context(r.context.with_value(REQUEST_ID_KEY, rid)))

    return serve


def get_req_id(ctx: RequestContext | None) -> str:
    """Return the request ID stored on ``ctx``, or an empty string."""
    if ctx is None:
        return ""
    value = ctx.value(REQUEST_ID_KEY)
    return value if isinstance(value, str) else ""