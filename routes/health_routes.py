"""
GET /health: MongoDB and Redis reachability for the load balancer.

MongoDB down makes the service unhealthy (503) since no key can be issued,
listed or checked. Redis down only degrades it: issuance and reveals fail
while the gateway keeps serving, since the reveal store is chosen once at
startup. Running without Redis at all is a supported mode.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse

router = APIRouter(tags=["health"])


async def _probe_mongo(db: Any) -> str:
    try:
        await db.client.admin.command("ping")
    except Exception:
        return "error"
    return "ok"


async def _probe_redis(redis: Optional[Any]) -> str:
    if redis is None:
        return "not_configured"
    try:
        await redis.ping()
    except Exception:
        return "error"
    return "ok"


@router.get(
    "/health",
    responses={200: {"model": HealthResponse}, 503: {"model": HealthResponse}},
)
async def health_check(request: Request) -> JSONResponse:
    state = request.app.state
    checks = {
        "mongodb": await _probe_mongo(state.db),
        "redis": await _probe_redis(state.redis),
    }

    if checks["mongodb"] != "ok":
        status = "unhealthy"
    elif checks["redis"] == "error":
        status = "degraded"
    else:
        status = "healthy"

    body = HealthResponse(
        status=status,
        checks=checks,
        reveal_backend=state.reveal_store.backend,
    )
    return JSONResponse(
        status_code=503 if status == "unhealthy" else 200,
        content=body.model_dump(by_alias=True),
    )
