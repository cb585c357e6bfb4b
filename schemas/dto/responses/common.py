"""Response bodies shared by every router: the error envelope and the health report."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Body written by the AppError handlers. ``field`` names the offending input."""

    error: str
    code: str
    field: Optional[str] = None
    details: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["healthy", "degraded", "unhealthy"]
    checks: dict[str, str]
    # where a freshly issued key waits for its one-shot reveal
    reveal_backend: str = Field(alias="revealBackend")
