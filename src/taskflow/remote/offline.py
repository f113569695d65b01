# src/taskflow/remote/offline.py

from __future__ import annotations

import logging
from collections.abc import Iterable

import httpx

logger = logging.getLogger(__name__)


class OfflineFallbackTransport(httpx.AsyncBaseTransport):
    """
    Network-first GET cache in front of another transport.

    - Only GET requests are intercepted; everything else passes through.
    - Hosts in ``bypass_hosts`` (the task service itself) always go straight
      to the network and are never cached.
    - A successful GET is remembered; when a later fetch of the same URL fails
      at the transport level, the remembered response is served instead.
      With nothing remembered the failure propagates.

    Active from construction, there is no install/activate phase.
    """

    def __init__(
        self,
        inner: httpx.AsyncBaseTransport | None = None,
        *,
        bypass_hosts: Iterable[str] = (),
    ) -> None:
        self._inner = inner or httpx.AsyncHTTPTransport()
        self._bypass = {h.lower() for h in bypass_hosts if h}
        self._cache: dict[str, tuple[int, list[tuple[bytes, bytes]], bytes]] = {}

    def _bypassed(self, request: httpx.Request) -> bool:
        host = (request.url.host or "").lower()
        return any(host == b or host.endswith("." + b) for b in self._bypass)

    def cached_urls(self) -> list[str]:
        return list(self._cache)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.method != "GET" or self._bypassed(request):
            return await self._inner.handle_async_request(request)

        key = str(request.url)
        try:
            response = await self._inner.handle_async_request(request)
        except httpx.TransportError:
            cached = self._cache.get(key)
            if cached is None:
                raise
            logger.info("Offline: serving cached response for %s", key)
            status, headers, body = cached
            return httpx.Response(status, headers=headers, content=body, request=request)

        if response.status_code < 400:
            body = await response.aread()
            headers = [
                (k, v)
                for k, v in response.headers.raw
                if k.lower() not in (b"content-encoding", b"content-length", b"transfer-encoding")
            ]
            self._cache[key] = (response.status_code, headers, body)
            await response.aclose()
            return httpx.Response(response.status_code, headers=headers, content=body, request=request)
        return response

    async def aclose(self) -> None:
        await self._inner.aclose()
