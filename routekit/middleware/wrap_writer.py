"""Response writer proxies that record status and size of a response."""
from __future__ import annotations

from http import HTTPStatus
from typing import Any

from ..http import Headers

_CHUNK = 32 * 1024


def _has(obj: Any, name: str) -> bool:
    return callable(getattr(obj, name, None))


class BasicWriter:
    """Proxy that records the status code and bytes written."""

    def __init__(self, writer: Any) -> None:
        self._writer = writer
        self.wrote_header = False
        self._code = 0
        self._bytes = 0
        self._tee: Any = None

    def header(self) -> Headers:
        return self._writer.header()

    def write_header(self, code: int) -> None:
        if not self.wrote_header:
            self._code = code
            self.wrote_header = True
            self._writer.write_header(code)

    def write(self, data: bytes) -> int:
        self._maybe_write_header()
        n = self._writer.write(data)
        n = len(data) if n is None else n
        self._bytes += n
        if self._tee is not None:
            self._tee.write(data[:n])
        return n

    def _maybe_write_header(self) -> None:
        if not self.wrote_header:
            self.write_header(HTTPStatus.OK)

    @property
    def status(self) -> int:
        """The status sent, or 0 if none has been sent yet."""
        return self._code

    @property
    def bytes_written(self) -> int:
        return self._bytes

    def tee(self, writer: Any) -> None:
        """Also copy the response body to ``writer``, replacing any earlier one."""
        self._tee = writer

    def unwrap(self) -> Any:
        return self._writer


class FlushWriter(BasicWriter):
    def flush(self) -> None:
        self.wrote_header = True
        self._writer.flush()


class HijackWriter(BasicWriter):
    def hijack(self) -> Any:
        return self._writer.hijack()


class FlushHijackWriter(BasicWriter):
    def flush(self) -> None:
        self.wrote_header = True
        self._writer.flush()

    def hijack(self) -> Any:
        return self._writer.hijack()


class HTTPFancyWriter(BasicWriter):
    """Proxy for HTTP/1 writers that flush, hijack and read from streams."""

    def flush(self) -> None:
        self.wrote_header = True
        self._writer.flush()

    def hijack(self) -> Any:
        return self._writer.hijack()

    def read_from(self, reader: Any) -> int:
        """Copy ``reader`` into the response and return the byte count."""
        if self._tee is not None:
            total = 0
            while chunk := reader.read(_CHUNK):
                total += self.write(chunk)
            return total
        self._maybe_write_header()
        n = self._writer.read_from(reader)
        self._bytes += n
        return n


class HTTP2FancyWriter(BasicWriter):
    """Proxy for HTTP/2 writers that flush and push."""

    def flush(self) -> None:
        self.wrote_header = True
        self._writer.flush()

    def push(self, target: str, options: Any = None) -> Any:
        return self._writer.push(target, options)


def new_wrap_response_writer(w: Any, proto_major: int) -> BasicWriter:
    """Wrap ``w`` in the proxy that keeps the capabilities it has."""
    can_flush = _has(w, "flush")
    if proto_major == 2:
        if can_flush and _has(w, "push"):
            return HTTP2FancyWriter(w)
    else:
        can_hijack = _has(w, "hijack")
        if can_flush and can_hijack and _has(w, "read_from"):
            return HTTPFancyWriter(w)
        if can_flush and can_hijack:
            return FlushHijackWriter(w)
        if can_hijack:
            return HijackWriter(w)
    if can_flush:
        return FlushWriter(w)
    return BasicWriter(w)