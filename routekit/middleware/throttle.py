"""Middleware limiting how many requests are processed at once."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from typing import Any, Callable

from ..http import Handler, Middleware, Request, RequestContext, error

ERR_CAPACITY_EXCEEDED = "Server capacity exceeded."
ERR_TIMED_OUT = "Timed out while waiting for a pending request to complete."
ERR_CONTEXT_CANCELED = "Context was canceled."

DEFAULT_BACKLOG_TIMEOUT = 60.0
"""Seconds a backlogged request waits for a free slot by default."""

_POLL_INTERVAL = 0.01


@dataclass
class ThrottleOpts:
    """Throttling options; timeouts and retry delays are in seconds."""

    retry_after_fn: Callable[[bool], float] | None = None
    limit: int = 0
    backlog_limit: int = 0
    backlog_timeout: float = 0.0


class _Outcome(Enum):
    ACQUIRED = "acquired"
    TIMED_OUT = "timed out"
    CANCELED = "canceled"


class _Tokens:
    """A counted pool of slots that can be waited on while watching a context."""

    def __init__(self, count: int) -> None:
        self._cond = threading.Condition()
        self._count = count

    def try_acquire(self) -> bool:
        with self._cond:
            if self._count > 0:
                self._count -= 1
                return True
            return False

    def acquire(self, timeout: float, ctx: RequestContext) -> _Outcome:
        deadline = time.monotonic() + timeout
        with self._cond:
            while True:
                if ctx.done():
                    return _Outcome.CANCELED
                if self._count > 0:
                    self._count -= 1
                    return _Outcome.ACQUIRED
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return _Outcome.TIMED_OUT
                # Context cancellation does not notify us, so wait in slices.
                self._cond.wait(min(remaining, _POLL_INTERVAL))

    def release(self) -> None:
        with self._cond:
            self._count += 1
            self._cond.notify()


class _Throttler:
    def __init__(self, opts: ThrottleOpts) -> None:
        self.tokens = _Tokens(opts.limit)
        self.backlog_tokens = _Tokens(opts.limit + opts.backlog_limit)
        self.backlog_timeout = opts.backlog_timeout
        self.retry_after_fn = opts.retry_after_fn

    def reject(self, w: Any, message: str, ctx_done: bool) -> None:
        if self.retry_after_fn is not None:
            seconds = int(self.retry_after_fn(ctx_done))
            w.header().set("Retry-After", str(seconds))
        error(w, message, HTTPStatus.TOO_MANY_REQUESTS)

    def serve(self, next_handler: Handler, w: Any, r: Request) -> None:
        ctx = r.context
        if ctx.done():
            self.reject(w, ERR_CONTEXT_CANCELED, True)
            return
        if not self.backlog_tokens.try_acquire():
            self.reject(w, ERR_CAPACITY_EXCEEDED, False)
            return
        try:
            outcome = self.tokens.acquire(self.backlog_timeout, ctx)
            if outcome is _Outcome.CANCELED:
                self.reject(w, ERR_CONTEXT_CANCELED, True)
                return
            if outcome is _Outcome.TIMED_OUT:
                self.reject(w, ERR_TIMED_OUT, False)
                return
            try:
                next_handler(w, r)
            finally:
                self.tokens.release()
        finally:
            self.backlog_tokens.release()


def throttle_with_opts(opts: ThrottleOpts) -> Middleware:
    """Limit concurrently processed requests as described by ``opts``.

    Raises :class:`ValueError` for a limit below 1 or a negative backlog limit.
    """
    if opts.limit < 1:
        raise ValueError("middleware: Throttle expects limit > 0")
    if opts.backlog_limit < 0:
        raise ValueError("middleware: Throttle expects backlogLimit to be positive")

    throttler = _Throttler(opts)

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            throttler.serve(next_handler, w, r)

        return serve

    return middleware


def throttle(limit: int) -> Middleware:
    """Allow at most ``limit`` requests in flight; others are rejected with 429."""
    return throttle_with_opts(ThrottleOpts(limit=limit, backlog_timeout=DEFAULT_BACKLOG_TIMEOUT))


def throttle_backlog(limit: int, backlog_limit: int, backlog_timeout: float) -> Middleware:
    """Allow ``limit`` requests in flight and up to ``backlog_limit`` waiting ones."""
    return throttle_with_opts(
        ThrottleOpts(limit=limit, backlog_limit=backlog_limit, backlog_timeout=backlog_timeout)
    )