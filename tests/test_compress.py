import gzip
import re
import zlib

import pytest

from routekit.http import Request, ResponseRecorder
from routekit.middleware.compress import Compressor, compress


def _html(w, r):
    w.header().set("Content-Type", "text/html")
    w.write(b"textstring")


def _serve(handler, accept=None):
    headers = {"Accept-Encoding": accept} if accept is not None else {}
    w = ResponseRecorder()
    handler(w, Request(headers=headers))
    return w


def _decode(w):
    body = bytes(w.body)
    encoding = w.headers.get("Content-Encoding")
    if encoding == "gzip":
        return gzip.decompress(body).decode()
    if encoding == "deflate":
        return zlib.decompress(body, -zlib.MAX_WBITS).decode()
    return body.decode()


def _compressor_with_nop():
    compressor = Compressor(5, "text/html", "text/css")
    compressor.set_encoder("nop", lambda w, _level: w)
    return compressor


def test_default_encoders_are_pooled():
    compressor = Compressor(5, "text/html", "text/css")
    assert len(compressor.encoders) == 0
    assert len(compressor.pooled_encoders) == 2


def test_nop_encoder_stored_in_encoders():
    compressor = _compressor_with_nop()
    assert len(compressor.encoders) == 1
    assert compressor.encoding_precedence[0] == "nop"


@pytest.mark.parametrize(
    "accepted, expected",
    [
        (None, ""),
        ("gzip", "gzip"),
        ("gzip,deflate", "gzip"),
        ("deflate", "deflate"),
        ("nop, gzip, deflate", "nop"),
    ],
)
def test_compressor_selects_encoding(accepted, expected):
    handler = _compressor_with_nop().handler(_html)
    w = _serve(handler, accepted)
    assert w.headers.get("Content-Encoding") == expected
    assert _decode(w) == "textstring"


@pytest.mark.parametrize(
    "types, types_count, wc_count",
    [
        ((), 10, 0),
        (("text/plain", "text/html"), 2, 0),
        (("text/*",), 0, 1),
        (("audio/wav", "text/*"), 1, 1),
    ],
)
def test_compressor_wildcards(types, types_count, wc_count):
    compressor = Compressor(5, *types)
    assert len(compressor.allowed_types) == types_count
    assert len(compressor.allowed_wildcards) == wc_count


@pytest.mark.parametrize("pattern", ["audio/*wav", "application*/*"])
def test_compressor_invalid_wildcards(pattern):
    message = (
        "middleware/compress: Unsupported content-type wildcard pattern "
        f"'{pattern}'. Only '/*' supported"
    )
    with pytest.raises(ValueError, match=re.escape(message)):
        Compressor(5, pattern)


def test_content_type_not_allowed_is_not_compressed():
    def endpoint(w, r):
        w.header().set("Content-Type", "image/png")
        w.write(b"textstring")

    w = _serve(compress(5)(endpoint), "gzip")
    assert w.headers.get("Content-Encoding") == ""
    assert bytes(w.body) == b"textstring"


def test_wildcard_type_is_compressed():
    def endpoint(w, r):
        w.header().set("Content-Type", "text/plain; charset=utf-8")
        w.write(b"textstring")

    w = _serve(compress(5, "text/*")(endpoint), "gzip")
    assert w.headers.get("Content-Encoding") == "gzip"
    assert _decode(w) == "textstring"


def test_compressed_response_headers():
    def endpoint(w, r):
        w.header().set("Content-Type", "application/json")
        w.header().set("Content-Length", "10")
        w.write(b"textstring")

    w = _serve(compress(5)(endpoint), "gzip")
    assert w.headers.get("Vary") == "Accept-Encoding"
    assert "Content-Length" not in w.headers


def test_already_encoded_response_untouched():
    def endpoint(w, r):
        w.header().set("Content-Type", "text/html")
        w.header().set("Content-Encoding", "br")
        w.write(b"raw")

    w = _serve(compress(5)(endpoint), "gzip")
    assert w.headers.get("Content-Encoding") == "br"
    assert bytes(w.body) == b"raw"


def test_pooled_encoder_reused_across_requests():
    handler = compress(5)(_html)
    first = _serve(handler, "gzip")
    second = _serve(handler, "gzip")
    assert _decode(first) == "textstring"
    assert _decode(second) == "textstring"


def test_flush_pushes_compressed_data():
    seen = {}

    def endpoint(w, r):
        w.header().set("Content-Type", "text/html")
        w.write(b"textstring")
        w.flush()
        seen["partial"] = zlib.decompressobj(16 + zlib.MAX_WBITS).decompress(
            bytes(recorder.body)
        )

    recorder = ResponseRecorder()
    compress(5)(endpoint)(recorder, Request(headers={"Accept-Encoding": "gzip"}))
    assert seen["partial"] == b"textstring"
    assert recorder.flushed is True


def test_hijack_unavailable_raises():
    def endpoint(w, r):
        with pytest.raises(TypeError):
            w.hijack()
        w.write(b"x")

    w = _serve(compress(5)(endpoint), "gzip")
    assert w.code == 200


def test_invalid_level_falls_back_to_plain_encoders():
    compressor = Compressor(42)
    assert len(compressor.pooled_encoders) == 0
    assert len(compressor.encoders) == 2
    w = _serve(compressor.handler(_html), "gzip")
    assert w.headers.get("Content-Encoding") == "gzip"
    assert bytes(w.body) == b"textstring"


def test_set_encoder_rejects_empty_name_and_none():
    compressor = Compressor(5)
    with pytest.raises(ValueError):
        compressor.set_encoder("", lambda w, level: w)
    with pytest.raises(ValueError):
        compressor.set_encoder("br", None)


def test_set_encoder_replaces_and_reorders():
    compressor = Compressor(5)
    compressor.set_encoder("DEFLATE", lambda w, level: w)
    assert compressor.encoding_precedence == ["deflate", "gzip"]
    assert "deflate" not in compressor.pooled_encoders
    assert "deflate" in compressor.encoders