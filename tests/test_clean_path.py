import pytest

from routekit.context import ROUTE_CTX_KEY, new_route_context
from routekit.http import Request, ResponseRecorder
from routekit.middleware.clean_path import clean_path


def _run(request, preset=""):
    rctx = new_route_context()
    rctx.route_path = preset
    request = request.with_context(request.context.with_value(ROUTE_CTX_KEY, rctx))
    calls = []
    clean_path(lambda w, r: calls.append(r))(ResponseRecorder(), request)
    return rctx, calls


def test_double_slashes_are_collapsed():
    first, _ = _run(Request(path="/users//1"))
    second, _ = _run(Request(path="//users////1"))
    assert first.route_path == "/users/1"
    assert second.route_path == first.route_path


def test_next_handler_runs_once():
    _, calls = _run(Request(path="/a//b"))
    assert len(calls) == 1


def test_existing_route_path_is_kept():
    rctx, _ = _run(Request(path="/x//y"), preset="/already//set")
    assert rctx.route_path == "/already//set"


def test_raw_path_is_preferred():
    rctx, _ = _run(Request(path="/a b//x", raw_path="/a%20b//x"))
    assert rctx.route_path == "/a%20b/x"


@pytest.mark.parametrize("path", ["/a/./b//c/", "//x///y", "/p/q/../r", "/../../etc"])
def test_cleaned_path_is_canonical(path):
    rctx, _ = _run(Request(path=path))
    cleaned = rctx.route_path
    assert cleaned.startswith("/")
    assert "//" not in cleaned
    assert "." not in cleaned.split("/")
    assert ".." not in cleaned.split("/")
    again, _ = _run(Request(path=cleaned))
    assert again.route_path == cleaned


def test_requires_route_context():
    with pytest.raises(RuntimeError):
        clean_path(lambda w, r: None)(ResponseRecorder(), Request(path="/a//b"))