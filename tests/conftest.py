"""
Shared fixtures: in-memory stand-ins for MongoDB, the reveal store and the
SecurePay API, plus a controllable clock.

The fakes follow the same filtered-update rules as the real repository so
service tests exercise the real transition logic.
"""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from infrastructure.cache.reveal_store import RevealEntry
from infrastructure.upstream.protocol import (
    ForwardedResponse,
    UpstreamConnectionError,
    UpstreamFailure,
    UpstreamSuccess,
)
from schemas.models.api_key import ApiKeyDoc, KeyStatus, KeyType

# AppSettings needs a MONGODB_URI even when nothing connects
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/")

RAW_KEY = "kazadi-sk-test0123456789abcdefWXYZ"


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeApiKeyRepository:
    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self.docs: dict[str, ApiKeyDoc] = {}
        self.fail_insert = False
        self.fail_lookup = False
        self.fail_usage = False
        self.fail_mark_expired = False
        self.fail_revoke = False
        self.revoke_calls: list[str] = []
        self.usage_calls: list[str] = []

    async def insert(self, doc: ApiKeyDoc) -> ApiKeyDoc:
        if self.fail_insert:
            raise RuntimeError("write concern error")
        self.docs[doc.key_id] = doc
        return doc

    async def count_test_keys_since(self, owner_id: str, since: datetime) -> int:
        return sum(
            1
            for d in self.docs.values()
            if d.owner_id == owner_id and d.type == KeyType.TEST.value and d.created_at >= since
        )

    async def find_by_hash(self, key_hash: str) -> Optional[ApiKeyDoc]:
        if self.fail_lookup:
            raise RuntimeError("connection reset")
        return next((d for d in self.docs.values() if d.key_hash == key_hash), None)

    async def find_by_key_id(self, key_id: str) -> Optional[ApiKeyDoc]:
        return self.docs.get(key_id)

    async def list_by_owner(self, owner_id: str) -> list[ApiKeyDoc]:
        owned = [d for d in self.docs.values() if d.owner_id == owner_id]
        return sorted(owned, key=lambda d: d.created_at, reverse=True)

    def _set(self, key_id: str, **fields) -> None:
        self.docs[key_id] = self.docs[key_id].model_copy(update=fields)

    async def mark_expired(self, key_ids) -> int:
        if self.fail_mark_expired:
            raise RuntimeError("not primary")
        changed = 0
        for key_id in key_ids:
            doc = self.docs.get(key_id)
            if doc is not None and doc.status == KeyStatus.ACTIVE.value:
                self._set(key_id, status=KeyStatus.EXPIRED.value)
                changed += 1
        return changed

    async def mark_expired_before(self, now: datetime) -> int:
        stale = [
            d.key_id
            for d in self.docs.values()
            if d.type == KeyType.TEST.value
            and d.status == KeyStatus.ACTIVE.value
            and d.expires_at is not None
            and d.expires_at <= now
        ]
        return await self.mark_expired(stale)

    async def revoke(self, key_id: str) -> bool:
        self.revoke_calls.append(key_id)
        if self.fail_revoke:
            raise RuntimeError("not primary")
        doc = self.docs.get(key_id)
        if doc is None or doc.status != KeyStatus.ACTIVE.value:
            return False
        self._set(key_id, status=KeyStatus.REVOKED.value, revoked_at=self._clock())
        return True

    async def record_usage(self, key_id: str) -> None:
        self.usage_calls.append(key_id)
        if self.fail_usage:
            raise RuntimeError("write conflict")
        doc = self.docs.get(key_id)
        if doc is None or doc.status == KeyStatus.REVOKED.value:
            return
        self._set(
            key_id,
            request_count=doc.request_count + 1,
            last_used_at=self._clock(),
        )


class FakeRevealStore:
    backend = "memory"

    def __init__(self) -> None:
        self.entries: dict[str, RevealEntry] = {}
        self.fail_put = False

    async def put(self, entry: RevealEntry) -> None:
        if self.fail_put:
            raise RuntimeError("redis down")
        self.entries[entry.key_id] = entry

    async def take(self, key_id: str) -> Optional[RevealEntry]:
        # yield first so concurrent callers genuinely interleave
        await asyncio.sleep(0)
        return self.entries.pop(key_id, None)

    async def discard(self, key_id: str) -> bool:
        return self.entries.pop(key_id, None) is not None


class FakeSecurePay:
    """Scriptable SecurePay API. Each attribute is the next result to return."""

    def __init__(self) -> None:
        self.register_result = UpstreamFailure(status=409, raw_body='{"error":"exists"}')
        self.login_result = UpstreamSuccess(status=200, data={"token": "jwt-abc"})
        self.generate_result = UpstreamSuccess(
            status=201,
            data={"apiKey": RAW_KEY, "keyId": "key_001", "last4": RAW_KEY[-4:]},
        )
        self.forward_result = ForwardedResponse(
            status=200, content_type="application/json", body=b'{"status":"approved"}'
        )
        self.forward_error: Optional[Exception] = None
        self.login_unreachable = False
        self.generate_delay = 0.0
        self.calls: list[tuple] = []

    async def register(self, email: str, password: str):
        self.calls.append(("register", email, password))
        return self.register_result

    async def login(self, email: str, password: str):
        self.calls.append(("login", email, password))
        if self.login_unreachable:
            raise UpstreamConnectionError("SecurePay API unreachable (ConnectError)")
        return self.login_result

    async def generate_key(self, token, client_secret, alias_email, idempotency_key):
        self.calls.append(("generate_key", token, client_secret, alias_email, idempotency_key))
        if self.generate_delay:
            await asyncio.sleep(self.generate_delay)
        return self.generate_result

    async def forward_transaction(self, body, request_id=None, idempotency_key=None):
        self.calls.append(("forward_transaction", body, request_id, idempotency_key))
        if self.forward_error is not None:
            raise self.forward_error
        return self.forward_result

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


def make_key_doc(clock: Clock, **overrides) -> ApiKeyDoc:
    from shared.crypto import hash_token

    now = clock()
    base = dict(
        key_id="key_001",
        owner_id="U1",
        label="CI key",
        key_hash=hash_token(RAW_KEY),
        last4=RAW_KEY[-4:],
        type=KeyType.TEST,
        status=KeyStatus.ACTIVE,
        client_secret_hash=hash_token("abc123"),
        created_at=now,
        expires_at=now + timedelta(hours=1),
    )
    base.update(overrides)
    return ApiKeyDoc(**base)


@pytest.fixture
def clock() -> Clock:
    return Clock(datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def repo(clock) -> FakeApiKeyRepository:
    return FakeApiKeyRepository(clock)


@pytest.fixture
def reveal_store() -> FakeRevealStore:
    return FakeRevealStore()


@pytest.fixture
def upstream() -> FakeSecurePay:
    return FakeSecurePay()


@pytest.fixture
def key_factory(clock):
    def _make(**overrides) -> ApiKeyDoc:
        return make_key_doc(clock, **overrides)

    return _make
