"""Periodic expiry sweep for test keys.

Authorization already recomputes expiry from ``expires_at``; the sweep only
brings the persisted ``status`` in line so dashboards and exports agree.
Errors are logged and the loop carries on at the next tick.
"""

import asyncio
from typing import Optional

from services.key_lifecycle_service import KeyLifecycleService
from shared.logging import get_logger

log = get_logger(__name__)


class ExpirySweeper:
    def __init__(self, lifecycle: KeyLifecycleService, interval_seconds: int = 300) -> None:
        self.lifecycle = lifecycle
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def run_once(self) -> int:
        try:
            return await self.lifecycle.sweep_expired()
        except Exception as e:
            log.error("expiry_sweep_failed", error=str(e), error_type=type(e).__name__)
            return 0

    async def run_forever(self) -> None:
        log.info("expiry_sweeper_started", interval_seconds=self.interval_seconds)
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self._task is None and self.interval_seconds > 0:
            self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("expiry_sweeper_stopped")
