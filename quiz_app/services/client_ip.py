# quiz_app/services/client_ip.py
from __future__ import annotations
from typing import Iterable, Optional

import httpx
from starlette.requests import Request

from quiz_app.core.logging import get_logger
from quiz_app.guard.ratelimit import UNKNOWN_IP

log = get_logger("services.client_ip")


def ip_from_request(request: Request, trusted_proxies: Iterable[str] = ()) -> str:
    """Socket peer address; the first X-Forwarded-For hop only when the peer is a trusted proxy."""
    peer = request.client.host if request.client else None
    fwd = request.headers.get("x-forwarded-for")
    if fwd and peer and peer in trusted_proxies:
        first = fwd.split(",")[0].strip()
        if first:
            return first
    return peer or UNKNOWN_IP


class ClientIPLookup:
    """GET ``url`` -> ``{"ip": ...}``. Any failure yields ``unknown``."""

    def __init__(self, url: str, *, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def lookup(self) -> str:
        try:
            resp = await self.client.get(self.url)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("client ip lookup failed: %s", exc)
            return UNKNOWN_IP
        ip = data.get("ip") if isinstance(data, dict) else None
        return str(ip) if ip else UNKNOWN_IP

    async def aclose(self) -> None:
        await self.client.aclose()
