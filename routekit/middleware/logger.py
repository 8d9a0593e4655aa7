"""Request logging middleware."""
from __future__ import annotations

import io
import sys
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from ..http import Handler, Headers, Middleware, Request
from .base import ContextKey
from .recoverer import print_pretty_stack
from .request_id import get_req_id
from .terminal import Color, color_write
from .wrap_writer import new_wrap_response_writer

LOG_ENTRY_CTX_KEY = ContextKey("LogEntry")
"""Context key under which the request's log entry is stored."""


class LogEntry(ABC):
    """Records the final log line when a request completes."""

    @abstractmethod
    def write(self, status: int, nbytes: int, header: Headers,
              elapsed: float, extra: Any) -> None:
        """Log the completed request; ``elapsed`` is in seconds."""

    @abstractmethod
    def panic(self, value: Any, stack: str) -> None:
        """Log a failure raised while serving the request."""


class LogFormatter(ABC):
    """Starts a new :class:`LogEntry` for each request."""

    @abstractmethod
    def new_log_entry(self, r: Request) -> LogEntry:
        """Create the log entry for ``r``."""


def _print_stdout(message: str) -> None:
    stamp = time.strftime("%Y/%m/%d %H:%M:%S")
    sys.stdout.write(f"{stamp} {message}\n")


def _fraction(value: int, unit: int) -> str:
    whole, frac = divmod(value, unit)
    digits = str(frac).rjust(len(str(unit)) - 1, "0").rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def _format_duration(seconds: float) -> str:
    ns = round(seconds * 1e9)
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return sign + _fraction(ns, 1_000) + "µs"
    if ns < 1_000_000_000:
        return sign + _fraction(ns, 1_000_000) + "ms"
    hours, rest = divmod(ns, 3600 * 10**9)
    minutes, rest = divmod(rest, 60 * 10**9)
    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + _fraction(rest, 10**9) + "s"


@dataclass
class DefaultLogFormatter(LogFormatter):
    """Formats one line per request and hands it to ``logger``."""

    logger: Callable[[str], None] = field(default=_print_stdout)
    no_color: bool = False

    def new_log_entry(self, r: Request) -> LogEntry:
        use_color = not self.no_color
        buf = io.StringIO()
        req_id = get_req_id(r.context)
        if req_id:
            color_write(buf, use_color, Color.N_YELLOW, f"[{req_id}] ")
        color_write(buf, use_color, Color.N_CYAN, '"')
        color_write(buf, use_color, Color.B_MAGENTA, f"{r.method} ")
        scheme = "https" if r.tls else "http"
        color_write(buf, use_color, Color.N_CYAN,
                    f'{scheme}://{r.host}{r.request_uri} {r.proto}" ')
        buf.write(f"from {r.remote_addr} - ")
        return _DefaultLogEntry(self.logger, buf, use_color)


class _DefaultLogEntry(LogEntry):
    def __init__(self, logger: Callable[[str], None], buf: io.StringIO,
                 use_color: bool) -> None:
        self._logger = logger
        self._buf = buf
        self._use_color = use_color

    def write(self, status: int, nbytes: int, header: Headers,
              elapsed: float, extra: Any) -> None:
        if status < 200:
            status_color = Color.B_BLUE
        elif status < 300:
            status_color = Color.B_GREEN
        elif status < 400:
            status_color = Color.B_CYAN
        elif status < 500:
            status_color = Color.B_YELLOW
        else:
            status_color = Color.B_RED
        color_write(self._buf, self._use_color, status_color, f"{status:03d}")
        color_write(self._buf, self._use_color, Color.B_BLUE, f" {nbytes}B")

        self._buf.write(" in ")
        if elapsed < 0.5:
            elapsed_color = Color.N_GREEN
        elif elapsed < 5:
            elapsed_color = Color.N_YELLOW
        else:
            elapsed_color = Color.N_RED
        color_write(self._buf, self._use_color, elapsed_color, _format_duration(elapsed))

        self._logger(self._buf.getvalue())

    def panic(self, value: Any, stack: str) -> None:
        print_pretty_stack(value)


def get_log_entry(r: Request) -> LogEntry | None:
    """Return the log entry stored on the request, if any."""
    return r.context.value(LOG_ENTRY_CTX_KEY)


def with_log_entry(r: Request, entry: LogEntry) -> Request:
    """Return a copy of ``r`` carrying ``entry``."""
    return r.with_context(r.context.with_value(LOG_ENTRY_CTX_KEY, entry))


def request_logger(formatter: LogFormatter) -> Middleware:
    """Make a logging middleware that uses ``formatter``."""

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            entry = formatter.new_log_entry(r)
            ww = new_wrap_response_writer(w, r.proto_major)
            started = time.perf_counter()
            try:
                next_handler(ww, with_log_entry(r, entry))
            finally:
                entry.write(ww.status, ww.bytes_written, ww.header(),
                            time.perf_counter() - started, None)

        return serve

    return middleware


default_logger: Middleware = request_logger(
    DefaultLogFormatter(no_color=sys.platform == "win32")
)
"""The middleware used by :func:`logger`; may be replaced."""


def logger(next_handler: Handler) -> Handler:
    """Log the start and end of each request with the default logger."""
    return default_logger(next_handler)