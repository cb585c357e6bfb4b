"""Integration tests for GET /health."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import _build_reveal_store
from routes.health_routes import router as health_router

UP, DOWN, ABSENT = "up", "down", "absent"


def _mongo(state: str) -> MagicMock:
    db = MagicMock()
    if state == UP:
        db.client.admin.command = AsyncMock(return_value={"ok": 1})
    else:
        db.client.admin.command = AsyncMock(side_effect=OSError("connection refused"))
    return db


def _redis(state: str):
    if state == ABSENT:
        return None
    redis = AsyncMock()
    if state == UP:
        redis.ping.return_value = True
    else:
        redis.ping.side_effect = ConnectionError("redis down")
    return redis


def _get_health(mongo: str, redis: str):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = _mongo(mongo)
        app.state.redis = _redis(redis)
        # same selection as startup: a connected Redis stays the store for good
        app.state.reveal_store = _build_reveal_store(app.state.redis, app.state.db, 900)
        yield

    app = FastAPI(lifespan=lifespan)
    app.include_router(health_router)
    with TestClient(app) as client:
        return client.get("/health")


@pytest.mark.parametrize(
    "mongo, redis, http_status, status, backend",
    [
        (UP, UP, 200, "healthy", "redis"),
        (UP, ABSENT, 200, "healthy", "mongodb"),
        (UP, DOWN, 200, "degraded", "redis"),
        (DOWN, UP, 503, "unhealthy", "redis"),
        (DOWN, DOWN, 503, "unhealthy", "redis"),
    ],
)
def test_health_matrix(mongo, redis, http_status, status, backend):
    resp = _get_health(mongo, redis)
    assert resp.status_code == http_status
    body = resp.json()
    assert body["status"] == status
    assert body["revealBackend"] == backend


class TestHealthChecks:
    def test_check_values(self):
        body = _get_health(UP, DOWN).json()
        assert body["checks"] == {"mongodb": "ok", "redis": "error"}

    def test_redis_not_configured_is_reported(self):
        body = _get_health(UP, ABSENT).json()
        assert body["checks"]["redis"] == "not_configured"

    def test_mongo_failure_is_reported(self):
        body = _get_health(DOWN, ABSENT).json()
        assert body["checks"]["mongodb"] == "error"
