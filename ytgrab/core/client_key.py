"""Client key resolution for the abuse governor.

The key is the requester's address. Proxy headers are spoofable, so they
are only consulted when ``APP_TRUST_FORWARDED_HEADERS`` is enabled, i.e.
when the service sits behind a reverse proxy that overwrites them.
"""

from __future__ import annotations

from fastapi import Request

from ytgrab.adapters.governor.base import UNKNOWN_CLIENT_KEY
from ytgrab.core.config import settings


def resolve_client_key(request: Request, *, trust_forwarded: bool | None = None) -> str:
    """Derive the governor key for a request.

    Resolution order: first hop of ``X-Forwarded-For``, then ``X-Real-IP``
    (both only when trusted), then the socket peer address, else "unknown".

    Args:
        request: Incoming request.
        trust_forwarded: Override for ``settings.app.trust_forwarded_headers``.

    Returns:
        Non-empty client key.
    """
    if trust_forwarded is None:
        trust_forwarded = settings.app.trust_forwarded_headers

    if trust_forwarded:
        forwarded_for = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT_KEY


def mask_client_key(client_key: str) -> str:
    """Shorten a client key for display back to the client ("203.0.113***")."""
    return client_key[:10] + "***"
