"""Unit tests for request/response DTOs."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from schemas.dto.requests.api_key import CreateApiKeyRequest, RevealKeyRequest
from schemas.dto.responses.api_key import (
    ApiKeyCreatedResponse,
    ApiKeyResponse,
    ApiKeysListResponse,
    ApiKeyRevokedResponse,
    RevealKeyResponse,
)
from schemas.dto.responses.common import ErrorResponse
from schemas.models.api_key import KeyType


class TestCreateApiKeyRequest:
    def test_camel_case_body(self):
        req = CreateApiKeyRequest.model_validate(
            {"ownerId": "U1", "label": " CI ", "type": "test", "clientSecret": "abc123"}
        )
        assert req.owner_id == "U1"
        assert req.label == "CI"
        assert req.type == KeyType.TEST
        assert req.client_secret == "abc123"

    def test_snake_case_accepted(self):
        req = CreateApiKeyRequest(owner_id="U1", client_secret="abc123")
        assert req.type == KeyType.TEST
        assert req.label is None

    def test_blank_owner_rejected(self):
        with pytest.raises(ValidationError):
            CreateApiKeyRequest.model_validate({"ownerId": "  ", "clientSecret": "abc123"})

    def test_missing_secret_rejected(self):
        with pytest.raises(ValidationError):
            CreateApiKeyRequest.model_validate({"ownerId": "U1"})

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            CreateApiKeyRequest.model_validate(
                {"ownerId": "U1", "clientSecret": "abc123", "type": "sandbox"}
            )

    def test_production_type_parses(self):
        req = CreateApiKeyRequest.model_validate(
            {"ownerId": "U1", "clientSecret": "abc123", "type": "production"}
        )
        assert req.type == KeyType.PRODUCTION


class TestRevealKeyRequest:
    def test_parses(self):
        assert RevealKeyRequest.model_validate({"keyId": "key_001"}).key_id == "key_001"

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            RevealKeyRequest.model_validate({"keyId": ""})


class TestResponses:
    def test_created_response_aliases(self):
        expires = datetime(2026, 3, 14, 13, 0, tzinfo=timezone.utc)
        body = ApiKeyCreatedResponse(
            key_id="key_001", last4="WXYZ", expires_at=expires, reveal_window_seconds=20
        ).model_dump(by_alias=True)
        assert body == {
            "keyId": "key_001",
            "last4": "WXYZ",
            "expiresAt": expires,
            "revealWindowSeconds": 20,
        }

    def test_reveal_response(self):
        body = RevealKeyResponse(api_key="kazadi-sk-x", secret="abc123").model_dump(
            by_alias=True
        )
        assert body == {"apiKey": "kazadi-sk-x", "secret": "abc123"}

    def test_list_response_has_no_hashes(self):
        created = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)
        entry = ApiKeyResponse(
            key_id="key_001",
            owner_id="U1",
            label="CI",
            last4="WXYZ",
            type="test",
            status="active",
            created_at=created,
            request_count=0,
        )
        body = ApiKeysListResponse(
            keys=[entry], monthly_test_keys_used=1, monthly_test_key_quota=3
        ).model_dump(by_alias=True)
        assert body["monthlyTestKeysUsed"] == 1
        assert body["monthlyTestKeyQuota"] == 3
        key = body["keys"][0]
        assert "keyHash" not in key and "key_hash" not in key
        assert key["requestCount"] == 0

    def test_revoked_response(self):
        body = ApiKeyRevokedResponse(success=True, key_id="k", status="revoked").model_dump(
            by_alias=True
        )
        assert body == {"success": True, "keyId": "k", "status": "revoked"}

    def test_error_response(self):
        body = ErrorResponse(error="Invalid API credentials", code="unauthorized")
        assert body.field is None
        assert body.details is None
