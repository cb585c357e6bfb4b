"""
Key status transitions: expiry and revocation.

    active ──(now >= expires_at)──▶ expired    automatic, idempotent
    active ──(owner action)───────▶ revoked    explicit, terminal

Authorization never trusts the persisted status alone; it is recomputed from
``expires_at`` at read time (ApiKeyDoc.effective_status). Persisting
``expired`` is a best-effort follow-up whose failure is only logged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Sequence

from errors import NotFoundError
from infrastructure.cache.reveal_store import RevealStore
from repositories.api_key_repository import ApiKeyRepository
from schemas.models.api_key import ApiKeyDoc, KeyStatus
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass
class OwnerKeys:
    """An owner's keys with statuses already recomputed for *now*."""

    keys: list[ApiKeyDoc] = field(default_factory=list)
    # Still persisted as active although past expiry
    stale_key_ids: list[str] = field(default_factory=list)


class KeyLifecycleService:
    def __init__(
        self,
        repo: ApiKeyRepository,
        reveal_store: RevealStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repo = repo
        self.reveal_store = reveal_store
        self._clock = clock

    async def mark_expired(self, key_ids: Sequence[str]) -> int:
        """Persist ``expired`` for *key_ids*. Never raises."""
        if not key_ids:
            return 0
        try:
            return await self.repo.mark_expired(key_ids)
        except Exception as e:
            log.warning(
                "mark_expired_failed",
                key_ids=list(key_ids),
                error=str(e),
                error_type=type(e).__name__,
            )
            return 0

    async def list_keys(self, owner_id: str) -> OwnerKeys:
        now = self._clock()
        result = OwnerKeys()
        for doc in await self.repo.list_by_owner(owner_id):
            status = doc.effective_status(now)
            if status != doc.status:
                result.stale_key_ids.append(doc.key_id)
                doc = doc.model_copy(update={"status": status})
            result.keys.append(doc)
        return result

    async def revoke(self, key_id: str, owner_id: Optional[str] = None) -> str:
        """Revoke *key_id* and scrub any pending reveal for it.

        Returns the key's resulting status. Revoking a key that is already
        revoked or expired changes nothing but still clears its reveal entry.
        """
        doc = await self.repo.find_by_key_id(key_id)
        if doc is None or (owner_id is not None and doc.owner_id != owner_id):
            raise NotFoundError("key not found")

        status = doc.effective_status(self._clock())
        try:
            if status == KeyStatus.ACTIVE.value:
                if await self.repo.revoke(key_id):
                    status = KeyStatus.REVOKED.value
                else:
                    # lost a race with another transition; report what won
                    current = await self.repo.find_by_key_id(key_id)
                    status = (
                        current.effective_status(self._clock())
                        if current is not None
                        else KeyStatus.REVOKED.value
                    )
            elif status == KeyStatus.EXPIRED.value and doc.status == KeyStatus.ACTIVE.value:
                await self.mark_expired([key_id])
            elif status == KeyStatus.REVOKED.value:
                # no-op unless an earlier revoke stopped after the global write
                await self.repo.revoke(key_id)
        finally:
            # the plaintext must not stay revealable even if a status write failed
            await self.reveal_store.discard(key_id)

        log.info(
            "api_key_revoked",
            key_id=key_id,
            owner_id=doc.owner_id,
            previous_status=doc.status,
            status=status,
        )
        return status

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Persist ``expired`` for every active test key past its expiry."""
        now = now or self._clock()
        count = await self.repo.mark_expired_before(now)
        log.info("expiry_sweep_completed", expired=count)
        return count
