"""Middleware that turns handler exceptions into 500 responses."""
from __future__ import annotations

import io
import os
import re
import sys
import traceback
from http import HTTPStatus
from typing import Any, TextIO

from ..http import AbortHandler, Handler, Request
from .terminal import Color, color_write

recoverer_error_writer: TextIO | None = None
"""Where pretty stacks are written; standard error when ``None``."""

_FRAME = re.compile(r'^\s*File "(?P<path>[^"]+)", line (?P<line>\d+), in (?P<func>.+?)\s*$')
_TRACEBACK_HEADER = "Traceback (most recent call last):"


def _debug_stack(rvr: Any) -> str:
    if isinstance(rvr, BaseException) and rvr.__traceback__ is not None:
        return "".join(traceback.format_exception(type(rvr), rvr, rvr.__traceback__))
    return "".join(traceback.format_stack())


class PrettyStack:
    """Formats a traceback compactly, innermost frame first."""

    def parse(self, debug_stack: str, rvr: Any) -> str:
        """Render ``debug_stack`` for the failure ``rvr``.

        Raises :class:`ValueError` when the stack holds no frames.
        """
        buf = io.StringIO()
        color_write(buf, False, Color.B_RED, "\n")
        color_write(buf, True, Color.B_CYAN, " panic: ")
        color_write(buf, True, Color.B_BLUE, str(rvr))
        color_write(buf, False, Color.B_WHITE, "\n \n")

        start = debug_stack.rfind(_TRACEBACK_HEADER)
        if start >= 0:
            debug_stack = debug_stack[start:]
        frames = [m for line in debug_stack.splitlines() if (m := _FRAME.match(line))]
        if not frames:
            raise ValueError("no stack frames found")

        for index, frame in enumerate(reversed(frames)):
            buf.write(self._decorate_func_call(frame["path"], frame["func"], 2 * index))
            buf.write(self._decorate_source(frame["path"], frame["line"], 2 * index + 1))
        return buf.getvalue()

    @staticmethod
    def _decorate_func_call(path: str, func: str, num: int) -> str:
        buf = io.StringIO()
        pkg = os.path.splitext(os.path.basename(path))[0]
        method = "." + func
        if num == 0:
            color_write(buf, True, Color.B_RED, " -> ")
            pkg_color, method_color = Color.B_MAGENTA, Color.B_RED
        else:
            color_write(buf, True, Color.B_WHITE, "    ")
            pkg_color, method_color = Color.N_YELLOW, Color.B_GREEN
        color_write(buf, True, pkg_color, pkg)
        color_write(buf, True, method_color, method + "\n")
        return buf.getvalue()

    @staticmethod
    def _decorate_source(path: str, lineno: str, num: int) -> str:
        buf = io.StringIO()
        cut = max(path.rfind("/"), path.rfind(os.sep))
        directory, filename = path[: cut + 1], path[cut + 1:]
        if num == 1:
            color_write(buf, True, Color.B_RED, " ->   ")
            file_color, line_color = Color.B_RED, Color.B_MAGENTA
        else:
            color_write(buf, False, Color.B_WHITE, "      ")
            file_color, line_color = Color.B_CYAN, Color.B_GREEN
        color_write(buf, True, Color.B_WHITE, directory)
        color_write(buf, True, file_color, filename)
        color_write(buf, True, line_color, ":" + lineno)
        if num == 1:
            color_write(buf, False, Color.B_WHITE, "\n")
        color_write(buf, False, Color.B_WHITE, "\n")
        return buf.getvalue()


def print_pretty_stack(rvr: Any) -> None:
    """Write a readable stack for ``rvr``, falling back to the raw traceback."""
    stack = _debug_stack(rvr)
    try:
        out = PrettyStack().parse(stack, rvr)
    except ValueError:
        sys.stderr.write(stack)
        return
    (recoverer_error_writer or sys.stderr).write(out)


def recoverer(next_handler: Handler) -> Handler:
    """Catch handler exceptions, log them and reply 500 Internal Server Error.

    :class:`AbortHandler` is re-raised untouched.
    """

    def serve(w: Any, r: Request) -> None:
        try:
            next_handler(w, r)
        except AbortHandler:
            raise
        except Exception as exc:
            # Imported here: the logger module itself depends on this one.
            from .logger import get_log_entry

            entry = get_log_entry(r)
            if entry is not None:
                entry.panic(exc, _debug_stack(exc))
            else:
                print_pretty_stack(exc)
            w.write_header(HTTPStatus.INTERNAL_SERVER_ERROR)

    return serve