"""
App factory for the dashboard API.

The lifespan owns every outbound connection (MongoDB, optional Redis, the
SecurePay HTTP client) and the expiry sweeper task. Services are built by
wire_services so tests can attach the same graph to in-memory fakes.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.cache.redis_client import create_redis_client
from infrastructure.cache.reveal_store import (
    MongoRevealStore,
    RedisRevealStore,
    RevealStore,
)
from infrastructure.http_client import HttpClient
from infrastructure.upstream.protocol import SecurePayProvider
from infrastructure.upstream.securepay import SecurePayClient
from repositories.api_key_repository import ApiKeyRepository
from repositories.indexes import ensure_indexes
from routes.gateway_routes import router as gateway_router
from routes.health_routes import router as health_router
from routes.key_routes import router as key_router
from services.gateway_service import GatewayService
from services.key_issuance_service import KeyIssuanceService
from services.key_lifecycle_service import KeyLifecycleService
from services.quota_service import QuotaService
from services.reveal_service import RevealService
from shared.datetime_utils import utcnow
from shared.logging import get_logger, setup_logging
from workers.expiry_sweeper import ExpirySweeper

log = get_logger(__name__)

CORS_ALLOWED_HEADERS = [
    "content-type",
    "x-api-key",
    "x-client-secret",
    "x-session-id",
    "x-request-id",
    "x-idempotency-key",
]


def _init_sentry(settings: AppSettings) -> None:
    sentry = settings.sentry
    if not sentry.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=sentry.sentry_dsn,
        environment=settings.env,
        send_default_pii=sentry.sentry_send_pii,
        traces_sample_rate=sentry.sentry_traces_sample_rate,
        profiles_sample_rate=sentry.sentry_profile_sample_rate,
    )


def _build_reveal_store(redis_client: Any, db: Any, ttl_seconds: int) -> RevealStore:
    if redis_client is not None:
        return RedisRevealStore(redis_client, ttl_seconds=ttl_seconds)
    return MongoRevealStore(db)


def wire_services(
    state: Any,
    settings: AppSettings,
    repo: ApiKeyRepository,
    reveal_store: RevealStore,
    upstream: SecurePayProvider,
    clock: Callable[[], datetime] = utcnow,
) -> None:
    """Build the service graph and attach it to *state* (``app.state``)."""
    policy = settings.key_policy

    quota = QuotaService(
        repo, monthly_limit=policy.monthly_test_key_quota, clock=clock
    )
    lifecycle = KeyLifecycleService(repo, reveal_store, clock=clock)

    state.settings = settings
    state.reveal_store = reveal_store
    state.quota_service = quota
    state.lifecycle_service = lifecycle
    state.reveal_service = RevealService(
        reveal_store, ttl_seconds=policy.reveal_ttl_seconds, clock=clock
    )
    state.issuance_service = KeyIssuanceService(
        repo,
        reveal_store,
        quota,
        upstream,
        key_ttl_seconds=policy.test_key_ttl_seconds,
        min_secret_length=policy.min_client_secret_length,
        alias_email_domain=settings.upstream.alias_email_domain,
        api_key_prefix=settings.upstream.api_key_prefix,
        clock=clock,
    )
    state.gateway_service = GatewayService(repo, lifecycle, upstream, clock=clock)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    settings = settings or AppSettings()

    setup_logging(settings.logging.log_level, settings.logging.log_format)
    _init_sentry(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db

        # Redis is optional; without it reveal entries live in MongoDB
        redis_client = await create_redis_client(settings.redis.redis_uri)
        app.state.redis = redis_client

        policy = settings.key_policy
        reveal_store = _build_reveal_store(redis_client, db, policy.reveal_ttl_seconds)

        http_client = HttpClient(timeout=settings.upstream.securepay_timeout_seconds)
        upstream = SecurePayClient(settings.upstream.securepay_base_urls, http_client)

        wire_services(app.state, settings, ApiKeyRepository(db), reveal_store, upstream)
        await ensure_indexes(db, reveal_ttl_seconds=policy.reveal_ttl_seconds)

        sweeper = ExpirySweeper(
            app.state.lifecycle_service,
            interval_seconds=policy.expiry_sweep_interval_seconds,
        )
        sweeper.start()

        log.info(
            "app_started",
            env=settings.env,
            reveal_backend=reveal_store.backend,
        )

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await sweeper.stop()
        await http_client.aclose()
        await mongo_client.close()
        if redis_client is not None:
            await redis_client.aclose()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=None if settings.is_production else settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=CORS_ALLOWED_HEADERS,
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(key_router)
    app.include_router(gateway_router)

    return app
