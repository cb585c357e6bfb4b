"""
Credential store for issued API keys.

Each key lives in two documents kept in sync by this repository:
- `api-keys`        - per-owner record, listed on the dashboard and counted
                      by the quota check
- `api-keys-global` - `_id = key_id`, looked up by `key_hash` on every
                      gateway call

Status transitions are filtered on the current status, so replaying an
expiry or revocation is a no-op. Timestamps for revocation and usage are
server-assigned with `$currentDate`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from schemas.models.api_key import ApiKeyDoc, KeyStatus, KeyType


OWNER_COLLECTION = "api-keys"
GLOBAL_COLLECTION = "api-keys-global"


def _from_global(doc: Optional[dict]) -> Optional[ApiKeyDoc]:
    # The global _id is the key id string, not an ObjectId
    if doc is None:
        return None
    data = dict(doc)
    data.pop("_id", None)
    return ApiKeyDoc.from_mongo(data)


class ApiKeyRepository:
    def __init__(self, db: Any) -> None:
        self.db = db
        self.owner_keys = db[OWNER_COLLECTION]
        self.global_keys = db[GLOBAL_COLLECTION]

    async def insert(self, doc: ApiKeyDoc) -> ApiKeyDoc:
        """Write both documents for a newly issued key.

        If the global write fails, the per-owner document is removed again so
        no half-written key survives, then the error propagates.
        """
        data = doc.to_mongo()
        result = await self.owner_keys.insert_one(dict(data))
        try:
            # a reused key id or hash raises DuplicateKeyError instead of overwriting
            await self.global_keys.insert_one({**data, "_id": doc.key_id})
        except Exception:
            await self.owner_keys.delete_one({"_id": result.inserted_id})
            raise
        return doc.model_copy(update={"id": result.inserted_id})

    async def count_test_keys_since(self, owner_id: str, since: datetime) -> int:
        return await self.owner_keys.count_documents(
            {
                "owner_id": owner_id,
                "type": KeyType.TEST.value,
                "created_at": {"$gte": since},
            }
        )

    async def find_by_hash(self, key_hash: str) -> Optional[ApiKeyDoc]:
        doc = await self.global_keys.find_one({"key_hash": key_hash})
        return _from_global(doc)

    async def find_by_key_id(self, key_id: str) -> Optional[ApiKeyDoc]:
        doc = await self.global_keys.find_one({"_id": key_id})
        if doc is not None:
            return _from_global(doc)
        return ApiKeyDoc.from_mongo(await self.owner_keys.find_one({"key_id": key_id}))

    async def list_by_owner(self, owner_id: str) -> list[ApiKeyDoc]:
        cursor = self.owner_keys.find({"owner_id": owner_id}).sort("created_at", -1)
        docs = await cursor.to_list(length=None)
        return [ApiKeyDoc.from_mongo(d) for d in docs]

    async def mark_expired(self, key_ids: Sequence[str]) -> int:
        """Persist ``expired`` for the given keys that are still ``active``."""
        ids = list(key_ids)
        if not ids:
            return 0
        update = {"$set": {"status": KeyStatus.EXPIRED.value}}
        await self.owner_keys.update_many(
            {"key_id": {"$in": ids}, "status": KeyStatus.ACTIVE.value}, update
        )
        result = await self.global_keys.update_many(
            {"_id": {"$in": ids}, "status": KeyStatus.ACTIVE.value}, update
        )
        return result.modified_count

    async def mark_expired_before(self, now: datetime) -> int:
        """Persist ``expired`` for every active test key past its expiry."""
        query = {
            "type": KeyType.TEST.value,
            "status": KeyStatus.ACTIVE.value,
            "expires_at": {"$lte": now},
        }
        update = {"$set": {"status": KeyStatus.EXPIRED.value}}
        await self.owner_keys.update_many(query, update)
        result = await self.global_keys.update_many(query, update)
        return result.modified_count

    async def revoke(self, key_id: str) -> bool:
        """Move an active key to ``revoked`` in both documents.

        The global document goes first: it is the one the gateway reads, so a
        failure on the owner write still leaves the key unusable.
        Returns True when either document changed.
        """
        update = {
            "$set": {"status": KeyStatus.REVOKED.value},
            "$currentDate": {"revoked_at": True},
        }
        global_result = await self.global_keys.update_one(
            {"_id": key_id, "status": KeyStatus.ACTIVE.value}, update
        )
        owner_result = await self.owner_keys.update_one(
            {"key_id": key_id, "status": KeyStatus.ACTIVE.value}, update
        )
        return bool(owner_result.modified_count or global_result.modified_count)

    async def record_usage(self, key_id: str) -> None:
        """Bump the request counter and last-used time; revoked keys are skipped."""
        update = {
            "$inc": {"request_count": 1},
            "$currentDate": {"last_used_at": True},
        }
        not_revoked = {"$ne": KeyStatus.REVOKED.value}
        await self.global_keys.update_one({"_id": key_id, "status": not_revoked}, update)
        await self.owner_keys.update_one(
            {"key_id": key_id, "status": not_revoked}, update
        )
