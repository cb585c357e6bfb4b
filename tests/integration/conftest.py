"""
Integration test configuration.

Builds the real routers and service graph over the in-memory fakes from the
top-level conftest. No MongoDB, Redis or SecurePay connection is made.
"""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import wire_services
from config import AppSettings
from errors import register_error_handlers
from routes.gateway_routes import router as gateway_router
from routes.key_routes import router as key_router


def _build_test_app(repo, reveal_store, upstream, clock) -> FastAPI:
    settings = AppSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        wire_services(app.state, settings, repo, reveal_store, upstream, clock=clock)
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(key_router)
    app.include_router(gateway_router)
    return app


@pytest.fixture
def client(repo, reveal_store, upstream, clock):
    with TestClient(_build_test_app(repo, reveal_store, upstream, clock)) as c:
        yield c
