"""HTTP primitives shared by the router and its middlewares.

Handlers are callables taking ``(w, r)``: a response writer and a
:class:`Request`. Middlewares are callables taking a handler and returning
a new handler.
"""
from __future__ import annotations

import base64
import binascii
import html
import posixpath
import threading
import time
import weakref
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from http import HTTPStatus
from typing import Any, Callable, Iterable, Iterator, Mapping, Protocol
from urllib.parse import urlsplit


def _canonical_key(key: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


class Headers:
    """Case-insensitive, multi-valued HTTP header collection."""

    def __init__(
        self, initial: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None
    ) -> None:
        self._items: dict[str, list[str]] = {}
        if not initial:
            return
        pairs = initial.items() if isinstance(initial, Mapping) else initial
        for key, value in pairs:
            if isinstance(value, (list, tuple)):
                for item in value:
                    self.add(key, item)
            else:
                self.add(key, value)

    def get(self, key: str) -> str:
        """Return the first value for ``key``, or an empty string."""
        values = self._items.get(_canonical_key(key))
        return values[0] if values else ""

    def set(self, key: str, value: str) -> None:
        self._items[_canonical_key(key)] = [value]

    def add(self, key: str, value: str) -> None:
        self._items.setdefault(_canonical_key(key), []).append(value)

    def delete(self, key: str) -> None:
        self._items.pop(_canonical_key(key), None)

    def values(self, key: str) -> list[str]:
        """Return every value stored for ``key``."""
        return list(self._items.get(_canonical_key(key), ()))

    def copy(self) -> Headers:
        duplicate = Headers()
        duplicate._items = {k: list(v) for k, v in self._items.items()}
        return duplicate

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and _canonical_key(key) in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"


class Canceled(Exception):
    """The request context was canceled."""


class DeadlineExceeded(TimeoutError):
    """The request context's deadline passed."""


class AbortHandler(Exception):
    """Raised by a handler to abort the response; never recovered."""


class _CancelState:
    __slots__ = ("_lock", "_event", "_error", "_deadline", "_children", "__weakref__")

    def __init__(self, parent: _CancelState | None, deadline: float | None) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._error: Exception | None = None
        self._children: weakref.WeakSet[_CancelState] = weakref.WeakSet()
        if parent is not None and parent._deadline is not None:
            deadline = parent._deadline if deadline is None else min(deadline, parent._deadline)
        self._deadline = deadline
        if parent is not None:
            with parent._lock:
                parent_error = parent._error
                if parent_error is None:
                    parent._children.add(self)
            if parent_error is not None:
                self.cancel(parent_error)

    def cancel(self, error: Exception) -> None:
        with self._lock:
            if self._error is not None:
                return
            self._error = error
            children = list(self._children)
            self._children.clear()
            self._event.set()
        for child in children:
            child.cancel(error)

    def error(self) -> Exception | None:
        if (
            self._error is None
            and self._deadline is not None
            and time.monotonic() >= self._deadline
        ):
            self.cancel(DeadlineExceeded("context deadline exceeded"))
        return self._error

    def wait(self, timeout: float | None) -> bool:
        end = None if timeout is None else time.monotonic() + timeout
        while self.error() is None:
            now = time.monotonic()
            if end is not None and now >= end:
                return False
            limits = [t - now for t in (end, self._deadline) if t is not None]
            self._event.wait(min(limits) if limits else None)
        return True


_NO_KEY = object()


class RequestContext:
    """Request-scoped values with cancellation and deadlines."""

    def __init__(self) -> None:
        self._parent: RequestContext | None = None
        self._key: Any = _NO_KEY
        self._value: Any = None
        self._state = _CancelState(None, None)

    def _derive(self, key: Any = _NO_KEY, value: Any = None,
                deadline: float | None = None) -> RequestContext:
        child = RequestContext.__new__(RequestContext)
        child._parent = self
        child._key = key
        child._value = value
        child._state = _CancelState(self._state, deadline)
        return child

    def value(self, key: Any) -> Any:
        """Return the value stored under ``key`` here or in an ancestor."""
        node: RequestContext | None = self
        while node is not None:
            if node._key is not _NO_KEY and node._key == key:
                return node._value
            node = node._parent
        return None

    def with_value(self, key: Any, value: Any) -> RequestContext:
        return self._derive(key, value)

    def with_timeout(self, seconds: float) -> RequestContext:
        return self._derive(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._state.cancel(Canceled("context canceled"))

    def done(self) -> bool:
        return self._state.error() is not None

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the context is done or ``timeout`` passes."""
        return self._state.wait(timeout)

    def error(self) -> Exception | None:
        return self._state.error()


@dataclass
class Request:
    """An incoming HTTP request."""

    method: str = "GET"
    path: str = "/"
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    raw_query: str = ""
    raw_path: str = ""
    host: str = "example.com"
    remote_addr: str = "192.0.2.1:1234"
    proto: str = "HTTP/1.1"
    proto_major: int = 1
    tls: bool = False
    request_uri: str = ""
    content_length: int | None = None
    context: RequestContext = field(default_factory=RequestContext)

    def __post_init__(self) -> None:
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)
        if not self.raw_query and "?" in self.path:
            self.path, self.raw_query = self.path.split("?", 1)
        if not self.request_uri:
            self.request_uri = self.path + (f"?{self.raw_query}" if self.raw_query else "")
        if self.content_length is None:
            self.content_length = len(self.body)

    def with_context(self, context: RequestContext) -> Request:
        """Return a shallow copy of the request carrying ``context``."""
        return replace(self, context=context)

    def basic_auth(self) -> tuple[str, str] | None:
        """Return the user and password of a Basic Authorization header."""
        header_value = self.headers.get("Authorization")
        scheme = "basic "
        if header_value[: len(scheme)].lower() != scheme:
            return None
        try:
            decoded = base64.b64decode(header_value[len(scheme):], validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return None
        user, sep, remainder = decoded.partition(":")
        if not sep:
            return None
        return user, remainder


class ResponseWriter(Protocol):
    def header(self) -> Headers: ...

    def write_header(self, code: int) -> None: ...

    def write(self, data: bytes) -> int: ...


Handler = Callable[[Any, Request], None]
Middleware = Callable[[Handler], Handler]


class ResponseRecorder:
    """A response writer that records what a handler wrote."""

    def __init__(self) -> None:
        self.code = 200
        self.headers = Headers()
        self.body = bytearray()
        self.wrote_header = False
        self.flushed = False

    def header(self) -> Headers:
        return self.headers

    def write_header(self, code: int) -> None:
        if self.wrote_header:
            return
        if not 100 <= code <= 999:
            raise ValueError(f"invalid WriteHeader code {code}")
        self.code = code
        self.wrote_header = True

    def write(self, data: bytes) -> int:
        if not self.wrote_header:
            self.write_header(HTTPStatus.OK)
        self.body.extend(data)
        return len(data)

    def flush(self) -> None:
        if not self.wrote_header:
            self.write_header(HTTPStatus.OK)
        self.flushed = True


class Routes(ABC):
    """A routing tree that can be searched without serving a request."""

    @abstractmethod
    def match(self, rctx: Any, method: str, path: str) -> bool:
        """Report whether a handler exists for ``method`` and ``path``."""


def status_text(code: int) -> str:
    """Return the reason phrase for ``code``, or an empty string."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


def error(w: Any, message: str, code: int) -> None:
    """Reply with a plain-text error message and status ``code``."""
    header = w.header()
    header.delete("Content-Length")
    header.set("Content-Type", "text/plain; charset=utf-8")
    header.set("X-Content-Type-Options", "nosniff")
    w.write_header(code)
    w.write((message + "\n").encode("utf-8"))


def _clean(path: str) -> str:
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def redirect(w: Any, r: Request, url: str, code: int) -> None:
    """Reply with a redirect to ``url``, resolved against the request path."""
    try:
        parts = urlsplit(url)
    except ValueError:
        parts = None
    if parts is not None and not parts.scheme and not parts.netloc:
        old_path = r.path or "/"
        if not url.startswith("/"):
            old_dir = old_path[: old_path.rfind("/") + 1]
            url = old_dir + url
        query = ""
        if "?" in url:
            url, rest = url.split("?", 1)
            query = "?" + rest
        trailing = url.endswith("/")
        url = _clean(url)
        if trailing and not url.endswith("/"):
            url += "/"
        url += query

    header = w.header()
    had_content_type = "Content-Type" in header
    header.set("Location", url)
    if not had_content_type and r.method in ("GET", "HEAD"):
        header.set("Content-Type", "text/html; charset=utf-8")
    w.write_header(code)
    if not had_content_type and r.method == "GET":
        body = f'<a href="{html.escape(url)}">{status_text(code)}</a>.\n\n'
        w.write(body.encode("utf-8"))