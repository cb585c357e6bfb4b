#!/usr/bin/env python3
"""
Expiry Sweeper Runner

Runs the test-key expiry sweep as its own process, for deployments that set
EXPIRY_SWEEP_INTERVAL_SECONDS=0 on the web service.
"""

import asyncio
import sys

from pymongo import AsyncMongoClient

from config import AppSettings
from infrastructure.cache.reveal_store import MongoRevealStore
from repositories.api_key_repository import ApiKeyRepository
from services.key_lifecycle_service import KeyLifecycleService
from shared.logging import get_logger, setup_logging
from workers.expiry_sweeper import ExpirySweeper

log = get_logger(__name__)


async def run() -> None:
    settings = AppSettings()
    setup_logging(settings.logging.log_level, settings.logging.log_format)

    client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri, tz_aware=True)
    db = client[settings.db.db_name]
    # The sweep never reads reveal entries; Mongo store only satisfies the
    # lifecycle constructor.
    lifecycle = KeyLifecycleService(ApiKeyRepository(db), MongoRevealStore(db))
    # 0 disables the in-process sweeper only; standalone always sweeps
    interval = settings.key_policy.expiry_sweep_interval_seconds or 300
    sweeper = ExpirySweeper(lifecycle, interval_seconds=interval)
    try:
        await sweeper.run_forever()
    finally:
        await client.close()


def main():
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        log.info("expiry_sweeper_interrupted")
    except Exception as e:
        log.error("expiry_sweeper_crashed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
