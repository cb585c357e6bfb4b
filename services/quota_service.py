"""
Monthly test-key quota.

The window is the current UTC calendar month, ``[start_of_month(now), now)``.
The check is advisory: it runs immediately before issuance, but two
concurrent requests from one owner can both pass it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from repositories.api_key_repository import ApiKeyRepository
from shared.datetime_utils import start_of_month, utcnow


class QuotaService:
    def __init__(
        self,
        repo: ApiKeyRepository,
        monthly_limit: int = 3,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repo = repo
        self.monthly_limit = monthly_limit
        self._clock = clock

    async def used_this_month(self, owner_id: str, now: Optional[datetime] = None) -> int:
        since = start_of_month(now or self._clock())
        return await self.repo.count_test_keys_since(owner_id, since)

    async def can_issue(self, owner_id: str, now: Optional[datetime] = None) -> bool:
        return await self.used_this_month(owner_id, now) < self.monthly_limit
