"""
Caller IP resolution for gateway logging.

The gateway normally sits behind Netlify or another reverse proxy, so the
socket peer is the proxy. Proxy headers are consulted first.
"""

from __future__ import annotations

from fastapi import Request

# Checked in priority order; the first non-empty value wins
_PROXY_HEADERS: tuple[str, ...] = (
    "x-nf-client-connection-ip",  # Netlify edge
    "x-forwarded-for",
    "x-real-ip",
)


def get_client_ip(request: Request) -> str:
    """Return the originating client IP for *request*, or ``""`` if unknown.

    ``X-Forwarded-For`` may carry a chain; only its first hop is used.
    """
    for header in _PROXY_HEADERS:
        value = request.headers.get(header)
        if value:
            first_hop = value.split(",")[0].strip()
            if first_hop:
                return first_hop

    return request.client.host if request.client else ""
