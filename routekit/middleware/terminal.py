"""ANSI colour output for terminal logging."""
from __future__ import annotations

import sys
from enum import Enum
from typing import TextIO


class Color(str, Enum):
    """ANSI escape sequences for normal and bright foreground colours."""

    N_BLACK = "\033[30m"
    N_RED = "\033[31m"
    N_GREEN = "\033[32m"
    N_YELLOW = "\033[33m"
    N_BLUE = "\033[34m"
    N_MAGENTA = "\033[35m"
    N_CYAN = "\033[36m"
    N_WHITE = "\033[37m"
    B_BLACK = "\033[30;1m"
    B_RED = "\033[31;1m"
    B_GREEN = "\033[32;1m"
    B_YELLOW = "\033[33;1m"
    B_BLUE = "\033[34;1m"
    B_MAGENTA = "\033[35;1m"
    B_CYAN = "\033[36;1m"
    B_WHITE = "\033[37;1m"
    RESET = "\033[0m"


def _stdout_is_tty() -> bool:
    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


IS_TTY = _stdout_is_tty()
"""Whether standard output was a terminal when the package was loaded."""


def color_write(out: TextIO, use_color: bool, color: Color, text: str) -> None:
    """Write ``text`` to ``out``, coloured when on a terminal and ``use_color``."""
    colored = IS_TTY and use_color
    if colored:
        out.write(color.value)
    out.write(text)
    if colored:
        out.write(Color.RESET.value)