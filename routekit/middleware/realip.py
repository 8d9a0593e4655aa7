"""Middleware that sets the remote address from proxy headers."""
from __future__ import annotations

import ipaddress
from typing import Any

from ..http import Handler, Request

TRUE_CLIENT_IP = "True-Client-IP"
X_REAL_IP = "X-Real-IP"
X_FORWARDED_FOR = "X-Forwarded-For"


def _valid_ip(text: str) -> bool:
    if "%" in text:
        return False
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def extract_real_ip(r: Request) -> str:
    """Return the client IP named by True-Client-IP, X-Real-IP or X-Forwarded-For.

    Returns an empty string when none is present or the value is not an IP.
    """
    ip = r.headers.get(TRUE_CLIENT_IP) or r.headers.get(X_REAL_IP)
    if not ip:
        ip = r.headers.get(X_FORWARDED_FOR).split(",", 1)[0]
    if not ip or not _valid_ip(ip):
        return ""
    return ip


def real_ip(next_handler: Handler) -> Handler:
    """Replace the request's remote address with the IP from trusted proxy headers.

    Use only behind a proxy that controls these headers.
    """

    def serve(w: Any, r: Request) -> None:
        ip = extract_real_ip(r)
        if ip:
            r.remote_addr = ip
        next_handler(w, r)

    return serve