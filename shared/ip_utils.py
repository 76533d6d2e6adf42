"""
Client IP resolution for FastAPI requests.

Takes an explicit ``Request`` parameter so the function is testable
without a running server.
"""

from __future__ import annotations

from fastapi import Request


def get_client_ip(request: Request) -> str:
    """Extract the visitor address from a FastAPI ``Request``.

    The first hop of ``X-Forwarded-For`` wins; otherwise the direct
    connection address is used. The value is returned as seen, without
    normalisation, so proxy-chain artifacts survive into the visit log.

    Returns:
        The resolved client IP string, or ``""`` if none can be found.
    """
    forwarded: str | None = request.headers.get("X-Forwarded-For")
    if forwarded:
        first_hop: str = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    return request.client.host if request.client else ""
