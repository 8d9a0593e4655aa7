import base64

import pytest

from routekit.http import (
    Canceled,
    DeadlineExceeded,
    Headers,
    Request,
    RequestContext,
    ResponseRecorder,
    Routes,
    error,
    redirect,
    status_text,
)


def test_headers_case_insensitive_get_and_set():
    h = Headers()
    h.set("content-type", "text/html")
    assert h.get("Content-Type") == "text/html"
    assert h.get("CONTENT-TYPE") == "text/html"
    assert "Content-type" in h


def test_headers_add_and_values():
    h = Headers()
    h.add("Vary", "Accept")
    h.add("vary", "Accept-Encoding")
    assert h.values("VARY") == ["Accept", "Accept-Encoding"]
    assert h.get("Vary") == "Accept"
    h.set("Vary", "Origin")
    assert h.values("Vary") == ["Origin"]


def test_headers_delete_and_missing():
    h = Headers({"X-One": "1", "X-Many": ["a", "b"]})
    h.delete("x-one")
    assert h.get("X-One") == ""
    assert h.values("X-One") == []
    assert h.values("X-Many") == ["a", "b"]


def test_context_values_chain():
    root = RequestContext()
    child = root.with_value("a", 1).with_value("b", 2)
    assert child.value("a") == 1
    assert child.value("b") == 2
    assert root.value("a") is None
    shadow = child.with_value("a", 3)
    assert shadow.value("a") == 3
    assert child.value("a") == 1


def test_context_cancel_propagates_to_children():
    root = RequestContext()
    child = root.with_value("k", "v")
    assert not child.done()
    root.cancel()
    assert child.done()
    assert isinstance(child.error(), Canceled)


def test_child_cancel_does_not_touch_parent():
    root = RequestContext()
    child = root.with_value("k", "v")
    child.cancel()
    assert child.done()
    assert not root.done()
    assert root.error() is None


def test_context_timeout():
    ctx = RequestContext().with_timeout(0.05)
    assert ctx.wait(2.0) is True
    assert isinstance(ctx.error(), DeadlineExceeded)


def test_context_wait_times_out_when_not_done():
    ctx = RequestContext()
    assert ctx.wait(0.01) is False
    assert ctx.error() is None


def test_derived_from_canceled_context_is_done():
    root = RequestContext()
    root.cancel()
    assert root.with_value("x", 1).done()


def test_request_splits_query_and_sets_content_length():
    r = Request("POST", "/a?x=1", body=b"abc")
    assert r.path == "/a"
    assert r.raw_query == "x=1"
    assert r.request_uri == "/a?x=1"
    assert r.content_length == len(b"abc")


def test_request_with_context_copies():
    r = Request()
    ctx = r.context.with_value("k", "v")
    r2 = r.with_context(ctx)
    assert r2.context.value("k") == "v"
    assert r.context.value("k") is None
    assert r2.headers is r.headers


def test_basic_auth_round_trip():
    encoded = base64.b64encode(b"user:password").decode()
    r = Request(headers={"Authorization": f"Basic {encoded}"})
    assert r.basic_auth() == ("user", "password")


@pytest.mark.parametrize("value", ["", "Bearer token", "Basic !!!", "Basic " + base64.b64encode(b"nocolon").decode()])
def test_basic_auth_invalid(value):
    r = Request(headers={"Authorization": value} if value else None)
    assert r.basic_auth() is None


def test_recorder_defaults_to_ok_on_write():
    w = ResponseRecorder()
    assert w.write(b"hi") == 2
    assert w.code == 200
    assert bytes(w.body) == b"hi"
    w.write_header(500)
    assert w.code == 200


def test_recorder_rejects_bad_code():
    with pytest.raises(ValueError):
        ResponseRecorder().write_header(42)


def test_recorder_flush():
    w = ResponseRecorder()
    w.flush()
    assert w.flushed and w.wrote_header


def test_status_text():
    assert status_text(404) == "Not Found"
    assert status_text(1) == ""


def test_error_writes_message():
    w = ResponseRecorder()
    w.header().set("Content-Length", "99")
    error(w, "boom", 429)
    assert w.code == 429
    assert bytes(w.body) == b"boom\n"
    assert w.headers.get("Content-Type") == "text/plain; charset=utf-8"
    assert w.headers.get("Content-Length") == ""


def test_redirect_relative_path():
    w = ResponseRecorder()
    redirect(w, Request(path="/a/b"), "c", 301)
    assert w.code == 301
    assert w.headers.get("Location") == "/a/c"
    assert b"<a href=" in bytes(w.body)


def test_redirect_keeps_network_path_and_query():
    w = ResponseRecorder()
    redirect(w, Request(path="/x/"), "//host/accounts?a=1", 301)
    assert w.headers.get("Location") == "//host/accounts?a=1"


def test_redirect_head_has_no_body():
    w = ResponseRecorder()
    redirect(w, Request("HEAD", "/x"), "/y/", 302)
    assert w.headers.get("Location") == "/y/"
    assert bytes(w.body) == b""


def test_routes_is_abstract():
    with pytest.raises(TypeError):
        Routes()

    class Always(Routes):
        def match(self, rctx, method, path):
            return method == "GET"

    assert Always().match(None, "GET", "/") is True
    assert Always().match(None, "POST", "/") is False