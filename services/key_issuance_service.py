"""
Test-key issuance against the SecurePay API.

Flow for one request:
    validate → quota → alias bootstrap (register + login)
    → generate key (idempotency token) → check format
    → persist hash + metadata → stage plaintext in the reveal store

Nothing is written locally until the upstream has returned a well-formed
key. If the local write then fails the upstream key is left orphaned; this
is logged as ``api_key_orphaned_upstream`` and no compensating call is made.

Only one issuance per session (or per owner when no session id is sent) may
be in flight inside this process; a second concurrent request is refused
with 409 instead of minting a duplicate key upstream.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from errors import (
    ConflictError,
    MalformedUpstreamResponseError,
    QuotaExceededError,
    StorageError,
    UpstreamAuthError,
    UpstreamIssuanceError,
    ValidationError,
)
from infrastructure.cache.reveal_store import RevealEntry, RevealStore
from infrastructure.upstream.protocol import (
    SecurePayProvider,
    UpstreamConnectionError,
    UpstreamFailure,
)
from repositories.api_key_repository import ApiKeyRepository
from schemas.models.api_key import ApiKeyDoc, KeyStatus, KeyType
from services.quota_service import QuotaService
from shared.crypto import derive_alias_password, hash_token
from shared.datetime_utils import utcnow
from shared.generators import (
    generate_alias_email,
    generate_idempotency_key,
    generate_key_id,
)
from shared.logging import get_logger
from shared.validators import validate_api_key_format, validate_client_secret

log = get_logger(__name__)


@dataclass(frozen=True)
class IssuedKey:
    key_id: str
    last4: str
    expires_at: datetime


class KeyIssuanceService:
    def __init__(
        self,
        repo: ApiKeyRepository,
        reveal_store: RevealStore,
        quota: QuotaService,
        upstream: SecurePayProvider,
        *,
        key_ttl_seconds: int = 3600,
        min_secret_length: int = 6,
        alias_email_domain: str = "falub.ca",
        api_key_prefix: str = "kazadi-sk-",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repo = repo
        self.reveal_store = reveal_store
        self.quota = quota
        self.upstream = upstream
        self.key_ttl = timedelta(seconds=key_ttl_seconds)
        self.min_secret_length = min_secret_length
        self.alias_email_domain = alias_email_domain
        self.api_key_prefix = api_key_prefix
        self._clock = clock
        self._in_flight: set[str] = set()

    async def issue_test_key(
        self,
        owner_id: str,
        label: Optional[str],
        client_secret: str,
        key_type: KeyType = KeyType.TEST,
        session_id: Optional[str] = None,
    ) -> IssuedKey:
        lock_key = session_id or owner_id
        if lock_key in self._in_flight:
            log.warning("api_key_issuance_in_flight", owner_id=owner_id)
            raise ConflictError("key issuance already in progress")
        self._in_flight.add(lock_key)
        try:
            return await self._issue(owner_id, label, client_secret, key_type)
        finally:
            self._in_flight.discard(lock_key)

    async def _issue(
        self,
        owner_id: str,
        label: Optional[str],
        client_secret: str,
        key_type: KeyType,
    ) -> IssuedKey:
        if KeyType(key_type) != KeyType.TEST:
            raise ValidationError("only test keys can be issued", field="type")
        if not validate_client_secret(client_secret, self.min_secret_length):
            raise ValidationError(
                f"clientSecret must be at least {self.min_secret_length} characters",
                field="clientSecret",
            )

        now = self._clock()
        if not await self.quota.can_issue(owner_id, now):
            log.info("api_key_quota_exceeded", owner_id=owner_id)
            raise QuotaExceededError(
                f"Monthly test key quota reached ({self.quota.monthly_limit})."
            )

        token, alias_email = await self._obtain_upstream_token(owner_id)
        raw_key, upstream_key_id = await self._generate_upstream_key(
            token, client_secret, alias_email
        )

        key_id = upstream_key_id or generate_key_id()
        doc = ApiKeyDoc(
            key_id=key_id,
            owner_id=owner_id,
            label=label or "",
            key_hash=hash_token(raw_key),
            last4=raw_key[-4:],
            type=KeyType.TEST,
            status=KeyStatus.ACTIVE,
            alias_email=alias_email,
            client_secret_hash=hash_token(client_secret),
            created_at=now,
            expires_at=now + self.key_ttl,
            request_count=0,
        )

        try:
            await self.repo.insert(doc)
        except Exception as e:
            log.error(
                "api_key_orphaned_upstream",
                owner_id=owner_id,
                key_id=key_id,
                alias_email=alias_email,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageError("failed to store api key") from e

        try:
            await self.reveal_store.put(
                RevealEntry(
                    key_id=key_id,
                    plaintext_key=raw_key,
                    plaintext_secret=client_secret,
                    created_at=self._clock(),
                )
            )
        except Exception as e:
            log.error(
                "reveal_stage_failed",
                key_id=key_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageError("failed to stage key for reveal") from e

        log.info(
            "api_key_issued",
            owner_id=owner_id,
            key_id=key_id,
            last4=doc.last4,
            expires_at=doc.expires_at.isoformat(),
        )
        return IssuedKey(key_id=key_id, last4=doc.last4, expires_at=doc.expires_at)

    async def _obtain_upstream_token(self, owner_id: str) -> tuple[str, str]:
        """Bootstrap a fresh alias identity and return ``(token, alias_email)``.

        Registration is fire-and-forget ("already exists" is the common
        failure); login decides whether we have a usable credential.
        """
        alias_email = generate_alias_email(self.alias_email_domain)
        password = derive_alias_password(owner_id, alias_email)

        try:
            registered = await self.upstream.register(alias_email, password)
            if isinstance(registered, UpstreamFailure):
                log.debug("securepay_register_ignored", status=registered.status)
        except UpstreamConnectionError as e:
            log.warning("securepay_register_unreachable", error=str(e))

        try:
            login = await self.upstream.login(alias_email, password)
        except UpstreamConnectionError as e:
            raise UpstreamAuthError(
                "SecurePay login failed", upstream_body=str(e)
            ) from e

        if isinstance(login, UpstreamFailure):
            log.warning("securepay_login_failed", status=login.status)
            raise UpstreamAuthError(
                "SecurePay login failed",
                upstream_status=login.status,
                upstream_body=login.raw_body,
            )

        token = str(login.data.get("token") or "").strip()
        if not token:
            raise UpstreamAuthError(
                "SecurePay login returned no token",
                upstream_status=login.status,
                upstream_body=json.dumps(login.data),
            )
        return token, alias_email

    async def _generate_upstream_key(
        self, token: str, client_secret: str, alias_email: str
    ) -> tuple[str, Optional[str]]:
        """Mint a key upstream and return ``(raw_key, upstream_key_id)``."""
        idempotency_key = generate_idempotency_key()
        try:
            result = await self.upstream.generate_key(
                token, client_secret, alias_email, idempotency_key
            )
        except UpstreamConnectionError as e:
            raise UpstreamIssuanceError(
                "SecurePay key generation failed", upstream_body=str(e)
            ) from e

        if isinstance(result, UpstreamFailure):
            log.warning(
                "securepay_generate_key_failed",
                status=result.status,
                idempotency_key=idempotency_key,
            )
            raise UpstreamIssuanceError(
                "SecurePay key generation failed",
                upstream_status=result.status,
                upstream_body=result.raw_body,
            )

        raw_key = result.data.get("apiKey") or result.data.get("key")
        if not validate_api_key_format(raw_key, self.api_key_prefix):
            log.error(
                "securepay_malformed_key",
                status=result.status,
                fields=sorted(result.data.keys()),
            )
            raise MalformedUpstreamResponseError("Unexpected API key format from SecurePay")

        upstream_key_id = result.data.get("keyId")
        return raw_key, str(upstream_key_id) if upstream_key_id else None
