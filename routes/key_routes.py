"""
API key management endpoints.

POST /keys                   - issue a test key → {keyId, last4, ...}
POST /keys/reveal            - one-shot plaintext {apiKey, secret} | 404 | 410
POST /keys/{key_id}/revoke   - revoke and scrub the reveal entry | 404
GET  /keys?ownerId=          - list an owner's keys (no hashes)

Owner authentication is handled in front of this service; ownerId is taken
as given.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query

from config import AppSettings
from dependencies import (
    get_issuance_service,
    get_lifecycle_service,
    get_quota_service,
    get_reveal_service,
    get_settings,
)
from schemas.dto.requests.api_key import CreateApiKeyRequest, RevealKeyRequest
from schemas.dto.responses.api_key import (
    ApiKeyCreatedResponse,
    ApiKeyResponse,
    ApiKeyRevokedResponse,
    ApiKeysListResponse,
    RevealKeyResponse,
)
from schemas.dto.responses.common import ErrorResponse
from services.key_issuance_service import KeyIssuanceService
from services.key_lifecycle_service import KeyLifecycleService
from services.quota_service import QuotaService
from services.reveal_service import RevealService

router = APIRouter(
    prefix="/keys",
    tags=["keys"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


@router.post("", status_code=201, response_model=ApiKeyCreatedResponse)
async def create_key(
    body: CreateApiKeyRequest,
    x_session_id: Optional[str] = Header(default=None),
    issuance: KeyIssuanceService = Depends(get_issuance_service),
    settings: AppSettings = Depends(get_settings),
) -> ApiKeyCreatedResponse:
    issued = await issuance.issue_test_key(
        owner_id=body.owner_id,
        label=body.label,
        client_secret=body.client_secret,
        key_type=body.type,
        session_id=x_session_id,
    )
    return ApiKeyCreatedResponse(
        key_id=issued.key_id,
        last4=issued.last4,
        expires_at=issued.expires_at,
        reveal_window_seconds=settings.key_policy.reveal_display_seconds,
    )


@router.post("/reveal", response_model=RevealKeyResponse)
async def reveal_key(
    body: RevealKeyRequest,
    reveal: RevealService = Depends(get_reveal_service),
) -> RevealKeyResponse:
    entry = await reveal.reveal_once(body.key_id)
    return RevealKeyResponse(api_key=entry.plaintext_key, secret=entry.plaintext_secret)


@router.post("/{key_id}/revoke", response_model=ApiKeyRevokedResponse)
async def revoke_key(
    key_id: str,
    owner_id: Optional[str] = Query(default=None, alias="ownerId"),
    lifecycle: KeyLifecycleService = Depends(get_lifecycle_service),
) -> ApiKeyRevokedResponse:
    status = await lifecycle.revoke(key_id, owner_id=owner_id)
    return ApiKeyRevokedResponse(success=True, key_id=key_id, status=status)


@router.get("", response_model=ApiKeysListResponse)
async def list_keys(
    background_tasks: BackgroundTasks,
    owner_id: str = Query(alias="ownerId", min_length=1),
    lifecycle: KeyLifecycleService = Depends(get_lifecycle_service),
    quota: QuotaService = Depends(get_quota_service),
) -> ApiKeysListResponse:
    listing = await lifecycle.list_keys(owner_id)
    if listing.stale_key_ids:
        background_tasks.add_task(lifecycle.mark_expired, listing.stale_key_ids)

    used = await quota.used_this_month(owner_id)
    return ApiKeysListResponse(
        keys=[
            ApiKeyResponse(
                key_id=k.key_id,
                owner_id=k.owner_id,
                label=k.label,
                last4=k.last4,
                type=k.type,
                status=k.status,
                created_at=k.created_at,
                expires_at=k.expires_at,
                revoked_at=k.revoked_at,
                request_count=k.request_count,
                last_used_at=k.last_used_at,
            )
            for k in listing.keys
        ],
        monthly_test_keys_used=used,
        monthly_test_key_quota=quota.monthly_limit,
    )
