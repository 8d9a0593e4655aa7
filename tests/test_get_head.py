import re

import pytest

from routekit.chain import Middlewares
from routekit.context import ROUTE_CTX_KEY, new_route_context, route_context, url_param
from routekit.http import Request, ResponseRecorder, Routes, error
from routekit.middleware.get_head import get_head


def _compile(pattern):
    parts = re.split(r"(\{\w+\})", pattern)
    body = "".join(
        f"(?P<{p[1:-1]}>[^/]+)" if p.startswith("{") else re.escape(p) for p in parts
    )
    return re.compile(body)


class _Router(Routes):
    def __init__(self, middlewares=()):
        self._middlewares = Middlewares(middlewares)
        self._routes = []

    def add(self, method, pattern, handler):
        self._routes.append((method, _compile(pattern), handler))

    def _find(self, method, path):
        for route_method, regex, handler in self._routes:
            found = regex.fullmatch(path)
            if route_method == method and found:
                return handler, found.groupdict()
        return None

    def match(self, rctx, method, path):
        return self._find(method, path) is not None

    def _route(self, w, r):
        rctx = route_context(r.context)
        found = self._find(rctx.route_method or r.method, rctx.route_path or r.path)
        if found is None:
            error(w, "404 page not found", 404)
            return
        handler, params = found
        for key, value in params.items():
            rctx.url_params.add(key, value)
        handler(w, r)

    def __call__(self, w, r):
        rctx = new_route_context()
        rctx.routes = self
        r = r.with_context(r.context.with_value(ROUTE_CTX_KEY, rctx))
        self._middlewares.handler(self._route)(w, r)


def _build(methods_seen=None):
    router = _Router([get_head])

    def hi(w, r):
        if methods_seen is not None:
            methods_seen.append(r.method)
        w.header().set("X-Test", "yes")
        w.write(b"bye")

    def article(w, r):
        article_id = url_param(r, "id")
        w.header().set("X-Article", article_id)
        w.write(b"article:" + article_id.encode())

    def user_head(w, r):
        w.header().set("X-User", "-")
        w.write(b"user")

    def user_get(w, r):
        user_id = url_param(r, "id")
        w.header().set("X-User", user_id)
        w.write(b"user:" + user_id.encode())

    router.add("GET", "/hi", hi)
    router.add("GET", "/articles/{id}", article)
    router.add("HEAD", "/users/{id}", user_head)
    router.add("GET", "/users/{id}", user_get)
    return router


def _serve(router, method, path):
    w = ResponseRecorder()
    router(w, Request(method=method, path=path))
    return w


def test_get_hi():
    assert bytes(_serve(_build(), "GET", "/hi").body) == b"bye"


def test_head_falls_back_to_get():
    w = _serve(_build(), "HEAD", "/hi")
    assert w.headers.get("X-Test") == "yes"


def test_head_keeps_its_method():
    seen = []
    _serve(_build(seen), "HEAD", "/hi")
    assert seen == ["HEAD"]


def test_get_unknown_is_not_found():
    assert bytes(_serve(_build(), "GET", "/").body) == b"404 page not found\n"


def test_head_unknown_is_not_found():
    assert _serve(_build(), "HEAD", "/").code == 404


def test_get_article():
    assert bytes(_serve(_build(), "GET", "/articles/5").body) == b"article:5"


def test_head_article_uses_get_handler():
    assert _serve(_build(), "HEAD", "/articles/5").headers.get("X-Article") == "5"


def test_get_user():
    assert bytes(_serve(_build(), "GET", "/users/1").body) == b"user:1"


def test_head_user_uses_head_handler():
    assert _serve(_build(), "HEAD", "/users/1").headers.get("X-User") == "-"


def test_head_without_route_context_raises():
    with pytest.raises(RuntimeError):
        get_head(lambda w, r: None)(ResponseRecorder(), Request(method="HEAD"))


def test_get_without_route_context_passes_through():
    calls = []
    get_head(lambda w, r: calls.append(r.method))(ResponseRecorder(), Request(method="GET"))
    assert calls == ["GET"]