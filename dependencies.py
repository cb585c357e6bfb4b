"""
FastAPI dependency providers.

All injectable dependencies are plain functions used with FastAPI's
Depends() system. Services are built once in the app lifespan and stored on
app.state; these providers only hand them out.
"""

from __future__ import annotations

from fastapi import Request

from config import AppSettings
from services.gateway_service import GatewayService
from services.key_issuance_service import KeyIssuanceService
from services.key_lifecycle_service import KeyLifecycleService
from services.quota_service import QuotaService
from services.reveal_service import RevealService


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_issuance_service(request: Request) -> KeyIssuanceService:
    return request.app.state.issuance_service


def get_reveal_service(request: Request) -> RevealService:
    return request.app.state.reveal_service


def get_lifecycle_service(request: Request) -> KeyLifecycleService:
    return request.app.state.lifecycle_service


def get_quota_service(request: Request) -> QuotaService:
    return request.app.state.quota_service


def get_gateway_service(request: Request) -> GatewayService:
    return request.app.state.gateway_service
