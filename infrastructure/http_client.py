"""Async HTTP client shared by the SecurePay calls."""

from typing import Any, Optional

import httpx

DEFAULT_HEADERS = {"User-Agent": "kazadi-dashboard/1.0"}


class HttpClient:
    """Owns one ``httpx.AsyncClient`` for the lifetime of the app.

    ``transport`` replaces the network layer, e.g. with ``httpx.MockTransport``.
    Per-request headers are merged over the defaults by httpx.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={**DEFAULT_HEADERS, **(headers or {})},
        )

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.post(url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
