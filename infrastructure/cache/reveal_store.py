"""One-shot reveal storage for freshly minted key material.

Holds the plaintext API key and client secret for a bounded window after
issuance. ``take`` is an atomic read-and-delete, so concurrent reveal
attempts for one key id have at most one winner.

Two backends share the RevealStore protocol:
- RedisRevealStore - JSON under ``key_reveal:{key_id}`` with SETEX; take = GETDEL
- MongoRevealStore - ``key-reveals`` collection; take = find_one_and_delete

Unlike the read-through caches elsewhere, failures here are NOT swallowed:
losing a write means the key can never be shown, so callers must know.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

import redis.asyncio as aioredis

from shared.datetime_utils import ensure_utc


REVEAL_COLLECTION = "key-reveals"


@dataclass
class RevealEntry:
    key_id: str
    plaintext_key: str
    plaintext_secret: str
    created_at: datetime

    def to_json(self) -> str:
        return json.dumps(
            {
                "key_id": self.key_id,
                "plaintext_key": self.plaintext_key,
                "plaintext_secret": self.plaintext_secret,
                "created_at": self.created_at.timestamp(),
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> "RevealEntry":
        data = json.loads(raw)
        return cls(
            key_id=data["key_id"],
            plaintext_key=data["plaintext_key"],
            plaintext_secret=data["plaintext_secret"],
            created_at=datetime.fromtimestamp(data["created_at"], tz=timezone.utc),
        )


class RevealStore(Protocol):
    # "redis" or "mongodb"; fixed for the life of the process
    backend: str

    async def put(self, entry: RevealEntry) -> None: ...

    async def take(self, key_id: str) -> Optional[RevealEntry]: ...

    async def discard(self, key_id: str) -> bool: ...


class RedisRevealStore:
    backend = "redis"

    def __init__(self, redis_client: aioredis.Redis, ttl_seconds: int = 900) -> None:
        self._redis = redis_client
        self.ttl_seconds = ttl_seconds

    def _key(self, key_id: str) -> str:
        return f"key_reveal:{key_id}"

    async def put(self, entry: RevealEntry) -> None:
        await self._redis.setex(self._key(entry.key_id), self.ttl_seconds, entry.to_json())

    async def take(self, key_id: str) -> Optional[RevealEntry]:
        raw = await self._redis.getdel(self._key(key_id))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return RevealEntry.from_json(raw)

    async def discard(self, key_id: str) -> bool:
        removed = await self._redis.delete(self._key(key_id))
        return bool(removed)


class MongoRevealStore:
    """Fallback store for deployments without Redis.

    A TTL index on ``created_at`` (see repositories.indexes) reaps entries in
    the background; the reveal service still checks age on every take since
    the TTL monitor only runs about once a minute.
    """

    backend = "mongodb"

    def __init__(self, db: Any) -> None:
        self._collection = db[REVEAL_COLLECTION]

    async def put(self, entry: RevealEntry) -> None:
        await self._collection.replace_one(
            {"_id": entry.key_id},
            {
                "_id": entry.key_id,
                "plaintext_key": entry.plaintext_key,
                "plaintext_secret": entry.plaintext_secret,
                "created_at": entry.created_at,
            },
            upsert=True,
        )

    async def take(self, key_id: str) -> Optional[RevealEntry]:
        doc = await self._collection.find_one_and_delete({"_id": key_id})
        if doc is None:
            return None
        return RevealEntry(
            key_id=doc["_id"],
            plaintext_key=doc["plaintext_key"],
            plaintext_secret=doc["plaintext_secret"],
            created_at=ensure_utc(doc["created_at"]),
        )

    async def discard(self, key_id: str) -> bool:
        result = await self._collection.delete_one({"_id": key_id})
        return result.deleted_count > 0
