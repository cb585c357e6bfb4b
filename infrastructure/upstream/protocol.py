"""SecurePay boundary types and the provider protocol services depend on.

Upstream responses are loosely shaped; they are narrowed here into a sum type
so a malformed or failed response is a value the caller must match on, never
an untyped dict.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union


@dataclass(frozen=True)
class UpstreamSuccess:
    status: int
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpstreamFailure:
    status: int
    raw_body: str


UpstreamResult = Union[UpstreamSuccess, UpstreamFailure]


@dataclass(frozen=True)
class ForwardedResponse:
    """Upstream transaction response, relayed verbatim to the gateway caller."""

    status: int
    content_type: str
    body: bytes


class UpstreamConnectionError(Exception):
    """Every configured SecurePay base URL failed at the transport level."""


class SecurePayProvider(Protocol):
    async def register(self, email: str, password: str) -> UpstreamResult: ...

    async def login(self, email: str, password: str) -> UpstreamResult: ...

    async def generate_key(
        self,
        token: str,
        client_secret: str,
        alias_email: str,
        idempotency_key: str,
    ) -> UpstreamResult: ...

    async def forward_transaction(
        self,
        body: bytes,
        request_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ForwardedResponse: ...
