"""Middleware that compresses response bodies according to Accept-Encoding."""
from __future__ import annotations

import threading
import zlib
from http import HTTPStatus
from typing import Any, Callable

from ..http import Handler, Headers, Middleware, Request

DEFAULT_COMPRESSIBLE_CONTENT_TYPES = (
    "text/html",
    "text/css",
    "text/plain",
    "text/javascript",
    "application/javascript",
    "application/x-javascript",
    "application/json",
    "application/atom+xml",
    "application/rss+xml",
    "image/svg+xml",
)

EncoderFunc = Callable[[Any, int], Any]
"""Wraps a writer with a streaming compressor; returns ``None`` on failure."""


class _Discard:
    def write(self, data: bytes) -> int:
        return len(data)


_DISCARD = _Discard()


def _new_compressobj(level: int, wbits: int) -> Any:
    if not -2 <= level <= 9:
        raise ValueError(f"invalid compression level: {level}")
    if level == -2:
        return zlib.compressobj(level=zlib.Z_DEFAULT_COMPRESSION, method=zlib.DEFLATED,
                                wbits=wbits, strategy=zlib.Z_HUFFMAN_ONLY)
    return zlib.compressobj(level=level, method=zlib.DEFLATED, wbits=wbits)


class _ZlibWriter:
    """Streaming compressor writing to a target; can be reset onto a new one."""

    _wbits = zlib.MAX_WBITS

    def __init__(self, target: Any, level: int) -> None:
        self._level = level
        self.reset(target)

    def reset(self, target: Any) -> None:
        self._target = target
        self._comp = _new_compressobj(self._level, self._wbits)
        self._closed = False

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to a closed encoder")
        out = self._comp.compress(bytes(data))
        if out:
            self._target.write(out)
        return len(data)

    def flush(self) -> None:
        if self._closed:
            return
        out = self._comp.flush(zlib.Z_SYNC_FLUSH)
        if out:
            self._target.write(out)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        out = self._comp.flush(zlib.Z_FINISH)
        if out:
            self._target.write(out)


class _GzipWriter(_ZlibWriter):
    _wbits = 16 + zlib.MAX_WBITS


class _DeflateWriter(_ZlibWriter):
    _wbits = -zlib.MAX_WBITS


def _encoder_gzip(w: Any, level: int) -> Any:
    try:
        return _GzipWriter(w, level)
    except ValueError:
        return None


def _encoder_deflate(w: Any, level: int) -> Any:
    try:
        return _DeflateWriter(w, level)
    except ValueError:
        return None


class _Pool:
    def __init__(self, factory: Callable[[], Any]) -> None:
        self._factory = factory
        self._items: list[Any] = []
        self._lock = threading.Lock()

    def get(self) -> Any:
        with self._lock:
            if self._items:
                return self._items.pop()
        return self._factory()

    def put(self, item: Any) -> None:
        with self._lock:
            self._items.append(item)


class Compressor:
    """A set of encoders and the content types they may be applied to."""

    def __init__(self, level: int, *types: str) -> None:
        self.level = level
        self.encoders: dict[str, EncoderFunc] = {}
        self.pooled_encoders: dict[str, _Pool] = {}
        self.allowed_types: set[str] = set()
        self.allowed_wildcards: set[str] = set()
        self.encoding_precedence: list[str] = []

        if types:
            for content_type in types:
                if "*" in content_type.removesuffix("/*"):
                    raise ValueError(
                        "middleware/compress: Unsupported content-type wildcard pattern "
                        f"'{content_type}'. Only '/*' supported"
                    )
                if content_type.endswith("/*"):
                    self.allowed_wildcards.add(content_type.removesuffix("/*"))
                else:
                    self.allowed_types.add(content_type)
        else:
            self.allowed_types.update(DEFAULT_COMPRESSIBLE_CONTENT_TYPES)

        # Later registrations take precedence, so gzip is preferred over deflate.
        self.set_encoder("deflate", _encoder_deflate)
        self.set_encoder("gzip", _encoder_gzip)

    def set_encoder(self, encoding: str, fn: EncoderFunc | None) -> None:
        """Register ``fn`` for ``encoding`` and give it the highest precedence."""
        encoding = encoding.lower()
        if not encoding:
            raise ValueError("the encoding can not be empty")
        if fn is None:
            raise ValueError("attempted to set a nil encoder function")

        self.pooled_encoders.pop(encoding, None)
        self.encoders.pop(encoding, None)

        probe = fn(_DISCARD, self.level)
        if probe is not None and callable(getattr(probe, "reset", None)):
            level = self.level
            self.pooled_encoders[encoding] = _Pool(lambda: fn(_DISCARD, level))
        else:
            self.encoders[encoding] = fn

        self.encoding_precedence = [encoding] + [
            name for name in self.encoding_precedence if name != encoding
        ]

    def _select_encoder(
        self, headers: Headers, w: Any
    ) -> tuple[Any, str, Callable[[], None] | None]:
        """Return the encoder, its name and an optional cleanup callback."""
        accepted = headers.get("Accept-Encoding").lower().split(",")
        for name in self.encoding_precedence:
            if not any(name in value for value in accepted):
                continue
            pool = self.pooled_encoders.get(name)
            if pool is not None:
                encoder = pool.get()
                encoder.reset(w)
                return encoder, name, lambda: pool.put(encoder)
            fn = self.encoders.get(name)
            if fn is not None:
                return fn(w, self.level), name, None
        return None, "", None

    def handler(self, next_handler: Handler) -> Handler:
        """Wrap ``next_handler`` so its responses are compressed when allowed."""

        def serve(w: Any, r: Request) -> None:
            encoder, encoding, cleanup = self._select_encoder(r.headers, w)
            cw = _CompressResponseWriter(
                w,
                encoder if encoder is not None else w,
                self.allowed_types,
                self.allowed_wildcards,
                encoding,
            )
            try:
                next_handler(cw, r)
            finally:
                try:
                    cw.close()
                except TypeError:
                    pass
                finally:
                    if cleanup is not None:
                        cleanup()

        return serve


class _CompressResponseWriter:
    def __init__(self, underlying: Any, encoder: Any, content_types: set[str],
                 content_wildcards: set[str], encoding: str) -> None:
        self._underlying = underlying
        self._encoder = encoder
        self._content_types = content_types
        self._content_wildcards = content_wildcards
        self._encoding = encoding
        self._wrote_header = False
        self.compressable = False

    def header(self) -> Headers:
        return self._underlying.header()

    def _is_compressable(self) -> bool:
        content_type = self.header().get("Content-Type").split(";", 1)[0]
        if content_type in self._content_types:
            return True
        slash = content_type.find("/")
        if slash > 0:
            return content_type[:slash] in self._content_wildcards
        return False

    def write_header(self, code: int) -> None:
        if self._wrote_header:
            self._underlying.write_header(code)
            return
        self._wrote_header = True
        try:
            headers = self.header()
            if headers.get("Content-Encoding"):
                return
            if not self._is_compressable():
                self.compressable = False
                return
            if self._encoding:
                self.compressable = True
                headers.set("Content-Encoding", self._encoding)
                headers.add("Vary", "Accept-Encoding")
                headers.delete("Content-Length")
        finally:
            self._underlying.write_header(code)

    def _writer(self) -> Any:
        return self._encoder if self.compressable else self._underlying

    def write(self, data: bytes) -> int:
        if not self._wrote_header:
            self.write_header(HTTPStatus.OK)
        return self._writer().write(data)

    def flush(self) -> None:
        target = self._writer()
        flush = getattr(target, "flush", None)
        if callable(flush):
            flush()
        if target is not self._underlying:
            underlying_flush = getattr(self._underlying, "flush", None)
            if callable(underlying_flush):
                underlying_flush()

    def hijack(self) -> Any:
        hijack = getattr(self._writer(), "hijack", None)
        if not callable(hijack):
            raise TypeError("middleware: hijacking is unavailable on the writer")
        return hijack()

    def push(self, target: str, options: Any = None) -> Any:
        push = getattr(self._writer(), "push", None)
        if not callable(push):
            raise TypeError("middleware: push is unavailable on the writer")
        return push(target, options)

    def close(self) -> None:
        close = getattr(self._writer(), "close", None)
        if not callable(close):
            raise TypeError("middleware: close is unavailable on the writer")
        close()


def compress(level: int, *args: str) -> Middleware:
    """Make a middleware compressing responses of the given content types."""
    return Compressor(level, *args).handler