"""MongoDB index bootstrap, run once from the app lifespan."""

from __future__ import annotations

from typing import Any

from pymongo import ASCENDING, DESCENDING

from infrastructure.cache.reveal_store import REVEAL_COLLECTION
from repositories.api_key_repository import GLOBAL_COLLECTION, OWNER_COLLECTION
from shared.logging import get_logger

log = get_logger(__name__)


async def ensure_indexes(db: Any, reveal_ttl_seconds: int = 900) -> None:
    owner_keys = db[OWNER_COLLECTION]
    global_keys = db[GLOBAL_COLLECTION]

    # quota count + dashboard listing
    await owner_keys.create_index(
        [("owner_id", ASCENDING), ("type", ASCENDING), ("created_at", DESCENDING)]
    )
    await owner_keys.create_index([("key_id", ASCENDING)])

    # gateway lookup and expiry sweep
    await global_keys.create_index([("key_hash", ASCENDING)], unique=True)
    await global_keys.create_index(
        [("type", ASCENDING), ("status", ASCENDING), ("expires_at", ASCENDING)]
    )

    await db[REVEAL_COLLECTION].create_index(
        [("created_at", ASCENDING)], expireAfterSeconds=reveal_ttl_seconds
    )

    log.info("mongo_indexes_ensured")
