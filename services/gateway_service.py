"""
Transaction gateway: authenticate by API key, forward to SecurePay.

Checks, in order. Any failure is a 401 with one fixed message and the reason
only goes to the log:
    1. both x-api-key and x-client-secret present
    2. a record exists for sha256(api key)
    3. stored client-secret hash (if any) matches
    4. key not revoked
    5. test key not past expires_at (persisting ``expired`` best-effort)

Upstream status, content type and body are relayed verbatim. Usage counters
are bumped afterwards by ``record_usage``, which never raises.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, NoReturn, Optional

from errors import AppError, UnauthorizedError, UpstreamUnavailableError
from infrastructure.upstream.protocol import ForwardedResponse, SecurePayProvider
from repositories.api_key_repository import ApiKeyRepository
from schemas.models.api_key import ApiKeyDoc, KeyStatus
from services.key_lifecycle_service import KeyLifecycleService
from shared.crypto import digests_match, hash_token
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)


class GatewayService:
    def __init__(
        self,
        repo: ApiKeyRepository,
        lifecycle: KeyLifecycleService,
        upstream: SecurePayProvider,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repo = repo
        self.lifecycle = lifecycle
        self.upstream = upstream
        self._clock = clock

    def _reject(self, reason: str, **context) -> NoReturn:
        log.warning("gateway_rejected", reason=reason, **context)
        raise UnauthorizedError()

    async def authorize(
        self, api_key: Optional[str], client_secret: Optional[str]
    ) -> ApiKeyDoc:
        try:
            return await self._authorize(api_key, client_secret)
        except AppError:
            raise
        except Exception as e:
            # fail closed: a lookup error must not look like a valid key
            log.error(
                "gateway_authorize_failed", error=str(e), error_type=type(e).__name__
            )
            raise UnauthorizedError() from e

    async def _authorize(
        self, api_key: Optional[str], client_secret: Optional[str]
    ) -> ApiKeyDoc:
        if not api_key or not client_secret:
            self._reject("missing_credentials")

        doc = await self.repo.find_by_hash(hash_token(api_key))
        if doc is None:
            self._reject("unknown_key")

        if doc.client_secret_hash and not digests_match(
            doc.client_secret_hash, hash_token(client_secret)
        ):
            self._reject("secret_mismatch", key_id=doc.key_id)

        if doc.status == KeyStatus.REVOKED.value:
            self._reject("revoked", key_id=doc.key_id)

        if doc.effective_status(self._clock()) == KeyStatus.EXPIRED.value:
            if doc.status == KeyStatus.ACTIVE.value:
                await self.lifecycle.mark_expired([doc.key_id])
            self._reject("expired", key_id=doc.key_id)

        return doc

    async def forward(
        self,
        doc: ApiKeyDoc,
        body: bytes,
        request_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ForwardedResponse:
        try:
            response = await self.upstream.forward_transaction(
                body, request_id=request_id, idempotency_key=idempotency_key
            )
        except Exception as e:
            log.error(
                "gateway_upstream_failed",
                key_id=doc.key_id,
                request_id=request_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UpstreamUnavailableError() from e

        log.info(
            "gateway_forwarded",
            key_id=doc.key_id,
            request_id=request_id,
            upstream_status=response.status,
        )
        return response

    async def record_usage(self, key_id: str) -> None:
        """Best-effort usage bump; failures are logged and dropped."""
        try:
            await self.repo.record_usage(key_id)
        except Exception as e:
            log.warning(
                "usage_update_failed",
                key_id=key_id,
                error=str(e),
                error_type=type(e).__name__,
            )
