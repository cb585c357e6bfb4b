"""
Transaction gateway endpoint.

POST /transaction requires x-api-key and x-client-secret; passes
x-request-id and x-idempotency-key through to SecurePay and relays its
response verbatim.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request, Response

from dependencies import get_gateway_service
from schemas.dto.responses.common import ErrorResponse
from services.gateway_service import GatewayService
from shared.ip_utils import get_client_ip
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(
    tags=["gateway"],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


@router.post("/transaction")
async def proxy_transaction(
    request: Request,
    background_tasks: BackgroundTasks,
    x_api_key: Optional[str] = Header(default=None),
    x_client_secret: Optional[str] = Header(default=None),
    x_request_id: Optional[str] = Header(default=None),
    x_idempotency_key: Optional[str] = Header(default=None),
    gateway: GatewayService = Depends(get_gateway_service),
) -> Response:
    log.debug("gateway_request", client_ip=get_client_ip(request), request_id=x_request_id)

    key = await gateway.authorize(x_api_key, x_client_secret)
    body = await request.body()
    forwarded = await gateway.forward(
        key, body, request_id=x_request_id, idempotency_key=x_idempotency_key
    )

    # runs after the response is sent; failures never reach the caller
    background_tasks.add_task(gateway.record_usage, key.key_id)

    return Response(
        content=forwarded.body,
        status_code=forwarded.status,
        # raw header so Starlette does not append a charset to text types
        headers={"content-type": forwarded.content_type},
    )
