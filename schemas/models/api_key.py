"""
API key document model.

Maps to two MongoDB collections that hold the same fields:
- `api-keys`        - per-owner records (`_id` is a generated ObjectId)
- `api-keys-global` - lookup-by-hash records (`_id` is the key id)

key_hash stores SHA-256(raw_key); the raw key is revealed once through the
reveal store and never persisted here. last4 is kept for display only.
client_secret_hash is SHA-256 of the caller's client secret, checked by the
gateway.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from schemas.models.base import MongoDocument, UtcDatetime


class KeyType(str, Enum):
    TEST = "test"
    PRODUCTION = "production"


class KeyStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


TERMINAL_STATUSES = frozenset({KeyStatus.EXPIRED.value, KeyStatus.REVOKED.value})

PROVIDER_NAME = "kazadi-securepay"


class ApiKeyDoc(MongoDocument):
    """Document model for the API key collections."""

    key_id: str
    owner_id: str
    label: str = ""
    key_hash: str
    last4: str
    type: KeyType = KeyType.TEST
    status: KeyStatus = KeyStatus.ACTIVE
    alias_email: Optional[str] = None
    client_secret_hash: Optional[str] = None
    provider: str = PROVIDER_NAME
    created_at: UtcDatetime
    expires_at: Optional[UtcDatetime] = None
    revoked_at: Optional[UtcDatetime] = None
    request_count: int = 0
    last_used_at: Optional[UtcDatetime] = None

    def is_expired_at(self, now: datetime) -> bool:
        """Time-driven expiry; only test keys carry a hard TTL."""
        if self.type != KeyType.TEST.value or self.expires_at is None:
            return False
        return now >= self.expires_at

    def effective_status(self, now: datetime) -> str:
        """Status for authorization and display, recomputed from expires_at.

        The persisted flag may lag behind the clock; it never wins over it.
        """
        if self.status in TERMINAL_STATUSES:
            return self.status
        if self.is_expired_at(now):
            return KeyStatus.EXPIRED.value
        return KeyStatus.ACTIVE.value
