# routekit

Small, composable building blocks for HTTP request handling: a request
model with a cancellable context, a routing context that tracks URL
parameters and route patterns, middleware chains, and a collection of
ready-made middlewares.

A handler is any callable taking a response writer and a request,
`handler(w, r)`. A middleware is a callable that takes the next handler and
returns a new handler.

## Installation

Install the `routekit` distribution with your usual package installer. It
has no runtime dependencies beyond the standard library. The `test` extra
pulls in pytest for running the test suite.

## HTTP primitives

`routekit.http` provides what handlers work with:

- `Request` — a dataclass with `method`, `path`, `headers`, `body`,
  `raw_query`, `raw_path`, `host`, `remote_addr`, `proto`, `proto_major`,
  `tls`, `request_uri`, `content_length` and `context`. A query string in
  `path` is split off into `raw_query`. `with_context(ctx)` returns a copy
  carrying another context; `basic_auth()` returns `(user, password)` from a
  Basic `Authorization` header, or `None`.
- `Headers` — case-insensitive, multi-valued headers with `get`, `set`,
  `add`, `delete` and `values`.
- `RequestContext` — request-scoped values (`value`, `with_value`) with
  cancellation and deadlines (`with_timeout`, `cancel`, `done`, `wait`,
  `error`). Cancellation reports `Canceled`; a passed deadline reports
  `DeadlineExceeded`.
- `ResponseRecorder` — a response writer that records `code`, `headers` and
  `body`, for exercising handlers without a network server.
- `error(w, message, code)`, `redirect(w, r, url, code)` and
  `status_text(code)` helpers.
- `AbortHandler` — raise it from a handler to abort; `recoverer` lets it
  through.
- `Routes` — an abstract base class with `match(rctx, method, path)`, for a
  routing tree that `get_head` can consult.

## Composing middlewares

```python
from routekit.chain import chain
from routekit.http import Request, ResponseRecorder
from routekit.middleware.realip import real_ip
from routekit.middleware.request_id import request_id
from routekit.middleware.simple import heartbeat, no_cache


def hello(w, r):
    w.write(b"hello world")


app = chain(request_id, real_ip, heartbeat("/ping"), no_cache).handler(hello)

w = ResponseRecorder()
app(w, Request(method="GET", path="/ping"))
assert w.code == 200 and bytes(w.body) == b"."
```

`chain(*middlewares)` returns a `Middlewares` list; its `handler(endpoint)`
builds a `ChainHandler`. The first middleware wraps all the others, and the
endpoint runs last.

## Routing context

`routekit.context` holds the per-request routing state:

- `RouteContext` carries `route_path`, `route_method`, `url_params`,
  `route_patterns` and `routes`; `reset()` clears it.
- `new_route_context()` creates an empty one; store it on a request context
  under `ROUTE_CTX_KEY` (`r.context.with_value(ROUTE_CTX_KEY, rctx)`) and
  fetch it with `route_context(ctx)`.
- `url_param(r, key)` and `url_param_from_ctx(ctx, key)` read the most
  recently captured value of a URL parameter, or an empty string.
- `RouteContext.route_pattern()` joins the patterns matched across nested
  routers, collapsing in-the-middle wildcards, so
  `["/v1/*", "/resources/*", "/{resource_id}"]` becomes
  `"/v1/resources/{resource_id}"`.

## Middlewares

All under `routekit.middleware`:

| Module | Names |
| --- | --- |
| `base` | `new(handler)` — a middleware serving `handler` in place of the next one; `ContextKey` |
| `wrap_writer` | `new_wrap_response_writer`, `BasicWriter` (`status`, `bytes_written`, `tee`, `unwrap`) and its flush/hijack/push variants |
| `request_id` | `request_id`, `get_req_id`, `next_request_id`, `REQUEST_ID_HEADER` |
| `logger` | `logger`, `request_logger`, `DefaultLogFormatter`, `LogFormatter`, `LogEntry`, `get_log_entry`, `with_log_entry` |
| `recoverer` | `recoverer`, `print_pretty_stack`, `PrettyStack` |
| `terminal` | `color_write`, `Color`, `IS_TTY` |
| `compress` | `compress`, `Compressor` (gzip and deflate built in, more via `set_encoder`) |
| `basic_auth` | `basic_auth(realm, creds)` |
| `content_charset` | `content_charset(*charsets)`, `charset_allowed`, `split` |
| `content_encoding` | `allow_content_encoding(*encodings)` |
| `content_type` | `allow_content_type(*types)`, `set_header(key, value)` |
| `clean_path` | `clean_path` |
| `get_head` | `get_head` — serve undefined HEAD routes with their GET handlers |
| `simple` | `heartbeat`, `maybe`, `no_cache`, `page_route`, `path_rewrite`, `with_value` |
| `realip` | `real_ip`, `extract_real_ip` |
| `route_headers` | `route_headers`, `HeaderRouter`, `HeaderRoute`, `Pattern`, `new_pattern` |
| `strip` | `strip_slashes`, `redirect_slashes` |
| `url_format` | `url_format` |
| `throttle` | `throttle`, `throttle_backlog`, `throttle_with_opts`, `ThrottleOpts` |
| `timeout` | `timeout(seconds)` |

Rejected requests get the conventional status codes: 401 for failed basic
authentication, 415 for disallowed content types, charsets or encodings,
429 when the throttle is full, its backlog wait times out or the request
context is canceled. `timeout` sets 504 when the deadline has passed by the
time the handler returns; handlers must watch `r.context` themselves.
`recoverer` answers 500 for any other exception a handler raises.

`clean_path`, `get_head` and `url_format` (when the path has an extension)
need a `RouteContext` on the request and raise `RuntimeError` without one.
`Compressor` raises `ValueError` for wildcard types other than `type/*`;
`throttle_with_opts` raises `ValueError` for a limit below 1 or a negative
backlog limit.

## Compression example

```python
from routekit.middleware.compress import Compressor

compressor = Compressor(5, "text/html", "text/*")
app = compressor.handler(hello)
```

Only responses whose `Content-Type` is in the allowed set are compressed,
and the encoding is chosen from the request's `Accept-Encoding` header,
preferring the most recently registered encoder.

## What this package does not do

There is no router here: nothing registers routes, matches request paths
against patterns or fills in URL parameters. The routing context and the
`Routes` interface are what such a router would use, and middlewares that
depend on them expect the caller to supply them. There is also no HTTP
server or WSGI adapter; handlers are called directly with a response writer
and a `Request`.