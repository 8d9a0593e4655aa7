"""Middleware giving each request a deadline."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any

from ..http import DeadlineExceeded, Handler, Middleware, Request


def timeout(seconds: float) -> Middleware:
    """Put a deadline of ``seconds`` on the request context.

    When the deadline has passed by the time the handler returns, the
    response status is 504 Gateway Timeout. Handlers must watch the context
    themselves; the deadline does not interrupt them.
    """

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            ctx = r.context.with_timeout(seconds)
            try:
                next_handler(w, r.with_context(ctx))
            finally:
                timed_out = isinstance(ctx.error(), DeadlineExceeded)
                ctx.cancel()
                if timed_out:
                    w.write_header(HTTPStatus.GATEWAY_TIMEOUT)

        return serve

    return middleware