"""
Response DTOs for API key management endpoints.

ApiKeyCreatedResponse - POST /keys (201) - key id and last4 only
RevealKeyResponse     - POST /keys/reveal (200) - the one-time plaintext
ApiKeyResponse        - one entry in GET /keys
ApiKeysListResponse   - GET /keys (200)
ApiKeyRevokedResponse - POST /keys/{key_id}/revoke (200)

Fields serialize with camelCase aliases. No response here ever carries
``key_hash`` or ``client_secret_hash``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiKeyCreatedResponse(BaseModel):
    """Response for POST /keys (201).

    The plaintext is NOT here; the caller fetches it once via /keys/reveal.
    """

    model_config = ConfigDict(populate_by_name=True)

    key_id: str = Field(alias="keyId")
    last4: str
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    reveal_window_seconds: int = Field(alias="revealWindowSeconds")


class RevealKeyResponse(BaseModel):
    """Response for POST /keys/reveal, returned at most once per key."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(alias="apiKey")
    secret: str


class ApiKeyResponse(BaseModel):
    """A single API key entry as returned by the list endpoint.

    ``status`` is the effective status recomputed from ``expiresAt``.
    """

    model_config = ConfigDict(populate_by_name=True)

    key_id: str = Field(alias="keyId")
    owner_id: str = Field(alias="ownerId")
    label: str
    last4: str
    type: str
    status: str
    created_at: datetime = Field(alias="createdAt")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    revoked_at: Optional[datetime] = Field(default=None, alias="revokedAt")
    request_count: int = Field(alias="requestCount")
    last_used_at: Optional[datetime] = Field(default=None, alias="lastUsedAt")


class ApiKeysListResponse(BaseModel):
    """Response body for GET /keys."""

    model_config = ConfigDict(populate_by_name=True)

    keys: list[ApiKeyResponse]
    monthly_test_keys_used: int = Field(alias="monthlyTestKeysUsed")
    monthly_test_key_quota: int = Field(alias="monthlyTestKeyQuota")


class ApiKeyRevokedResponse(BaseModel):
    """Response body for POST /keys/{key_id}/revoke."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    key_id: str = Field(alias="keyId")
    status: str
