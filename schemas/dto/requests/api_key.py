"""
Request DTOs for API key management endpoints.

CreateApiKeyRequest - POST /keys
RevealKeyRequest    - POST /keys/reveal

Wire names are camelCase to match the dashboard; snake_case is accepted too.
Length rules on the client secret are enforced by the issuance service so
they surface as a 400 ``validation_error`` with a stable message.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.models.api_key import KeyType


class CreateApiKeyRequest(BaseModel):
    """Request body for POST /keys."""

    model_config = ConfigDict(populate_by_name=True)

    owner_id: str = Field(alias="ownerId")
    label: Optional[str] = None
    type: KeyType = KeyType.TEST
    client_secret: str = Field(alias="clientSecret")

    @field_validator("owner_id", mode="after")
    @classmethod
    def _owner_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("ownerId is required")
        return v

    @field_validator("label", mode="after")
    @classmethod
    def _strip_label(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None


class RevealKeyRequest(BaseModel):
    """Request body for POST /keys/reveal."""

    model_config = ConfigDict(populate_by_name=True)

    key_id: str = Field(alias="keyId", min_length=1)
