"""HTTP client for the Kazadi SecurePay API.

Every call walks the configured base URLs in order: a transport failure
(DNS, refused connection, timeout) on one base moves on to the next, while
any HTTP response, success or error, is final. Idempotency keys make the
retry across bases safe for key generation.
"""

import json
from typing import Any, Optional, Sequence

import httpx

from infrastructure.http_client import HttpClient
from infrastructure.upstream.protocol import (
    ForwardedResponse,
    UpstreamConnectionError,
    UpstreamFailure,
    UpstreamResult,
    UpstreamSuccess,
)
from shared.logging import get_logger

log = get_logger(__name__)

REGISTER_PATH = "/api/users/register"
LOGIN_PATH = "/api/users/login"
GENERATE_KEY_PATH = "/api/generate-key"
TRANSACTION_PATH = "/api/transaction"


def _join_url(base: str, path: str) -> str:
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def to_result(response: httpx.Response) -> UpstreamResult:
    """Narrow an httpx response into UpstreamSuccess / UpstreamFailure.

    A 2xx with a non-object or non-JSON body is still a success, with empty
    data; callers then fail on the missing field they need.
    """
    text = response.text
    if not response.is_success:
        return UpstreamFailure(status=response.status_code, raw_body=text)
    data: Any = {}
    if text:
        try:
            data = json.loads(text)
        except ValueError:
            data = {}
    if not isinstance(data, dict):
        data = {}
    return UpstreamSuccess(status=response.status_code, data=data)


class SecurePayClient:
    def __init__(self, base_urls: Sequence[str], http_client: HttpClient) -> None:
        if not base_urls:
            raise ValueError("at least one SecurePay base URL is required")
        self._base_urls = list(dict.fromkeys(base_urls))
        self._http = http_client

    async def _post(self, path: str, **kwargs: Any) -> httpx.Response:
        last_error: Optional[Exception] = None
        for base in self._base_urls:
            url = _join_url(base, path)
            try:
                return await self._http.post(url, **kwargs)
            except httpx.TransportError as e:
                log.warning(
                    "securepay_base_unreachable",
                    url=url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                last_error = e
        raise UpstreamConnectionError(
            f"SecurePay API unreachable ({type(last_error).__name__})"
        ) from last_error

    async def register(self, email: str, password: str) -> UpstreamResult:
        response = await self._post(
            REGISTER_PATH, json={"email": email, "password": password}
        )
        return to_result(response)

    async def login(self, email: str, password: str) -> UpstreamResult:
        response = await self._post(
            LOGIN_PATH, json={"email": email, "password": password}
        )
        return to_result(response)

    async def generate_key(
        self,
        token: str,
        client_secret: str,
        alias_email: str,
        idempotency_key: str,
    ) -> UpstreamResult:
        response = await self._post(
            GENERATE_KEY_PATH,
            headers={
                "Authorization": f"Bearer {token}",
                "x-user-email": alias_email,
                "x-idempotency-key": idempotency_key,
                "x-request-id": idempotency_key,
            },
            json={"clientSecret": client_secret, "email": alias_email},
        )
        return to_result(response)

    async def forward_transaction(
        self,
        body: bytes,
        request_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ForwardedResponse:
        headers = {"Content-Type": "application/json"}
        if request_id:
            headers["x-request-id"] = request_id
        if idempotency_key:
            headers["x-idempotency-key"] = idempotency_key

        response = await self._post(
            TRANSACTION_PATH, headers=headers, content=body or b"{}"
        )
        return ForwardedResponse(
            status=response.status_code,
            content_type=response.headers.get("content-type", "application/json"),
            body=response.content,
        )
