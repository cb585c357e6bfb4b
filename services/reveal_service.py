"""
One-time reveal of freshly issued key material.

The entry is taken (read + deleted atomically) before its age is checked.
A stale entry is therefore destroyed by the same call that reports it
expired, and a retry sees NotFound. Concurrent callers for one key id get at
most one plaintext between them.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

from errors import NotFoundError, RevealExpiredError
from infrastructure.cache.reveal_store import RevealEntry, RevealStore
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)


class RevealService:
    def __init__(
        self,
        store: RevealStore,
        ttl_seconds: int = 900,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    async def reveal_once(self, key_id: str) -> RevealEntry:
        entry = await self.store.take(key_id)
        if entry is None:
            log.info("reveal_not_found", key_id=key_id)
            raise NotFoundError("Not found or already revealed")

        age = self._clock() - entry.created_at
        if age > self.ttl:
            log.info("reveal_expired", key_id=key_id, age_seconds=int(age.total_seconds()))
            raise RevealExpiredError("Reveal expired")

        log.info("reveal_consumed", key_id=key_id)
        return entry
