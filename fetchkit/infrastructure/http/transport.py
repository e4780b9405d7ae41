"""Builders for the underlying httpx transport.

Centralizes timeouts and default headers so that the API client and the
content loader behave the same way, and so tests can swap in an
httpx.MockTransport.
"""

from typing import Dict, Optional

import httpx

DEFAULT_TIMEOUT_SECONDS = 20.0
USER_AGENT = "fetchkit/0.1"


def build_async_client(
    base_url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    extra_headers: Optional[Dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Creates an httpx.AsyncClient bound to base_url with safe defaults.

    Args:
        base_url: Base address every relative request path resolves against.
        timeout: Default per-request timeout in seconds.
        extra_headers: Headers merged over the defaults.
        transport: Optional transport override (e.g. httpx.MockTransport).
    """
    headers: Dict[str, str] = {"User-Agent": USER_AGENT}
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )
