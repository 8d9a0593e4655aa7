"""Middleware requiring HTTP Basic authentication."""
from __future__ import annotations

import hmac
from http import HTTPStatus
from typing import Any, Mapping

from ..http import Handler, Middleware, Request


def _basic_auth_failed(w: Any, realm: str) -> None:
    w.header().add("WWW-Authenticate", f'Basic realm="{realm}"')
    w.write_header(HTTPStatus.UNAUTHORIZED)


def basic_auth(realm: str, creds: Mapping[str, str]) -> Middleware:
    """Make a middleware admitting only the users and passwords in ``creds``."""

    def middleware(next_handler: Handler) -> Handler:
        def serve(w: Any, r: Request) -> None:
            supplied = r.basic_auth()
            if supplied is None:
                _basic_auth_failed(w, realm)
                return
            user, given = supplied
            expected = creds.get(user)
            if expected is None or not hmac.compare_digest(
                given.encode("utf-8"), expected.encode("utf-8")
            ):
                _basic_auth_failed(w, realm)
                return
            next_handler(w, r)

        return serve

    return middleware