"""Optional Redis connection used as the primary reveal store."""

from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from shared.logging import get_logger

log = get_logger(__name__)


def _without_credentials(uri: str) -> str:
    return uri.rsplit("@", 1)[-1]


async def create_redis_client(redis_uri: Optional[str]) -> Optional[aioredis.Redis]:
    """Connect and ping, or return None so reveals fall back to MongoDB.

    Startup never fails on Redis: an unreachable or malformed URI is logged
    and treated the same as an unset one.
    """
    if not redis_uri:
        log.info("redis_not_configured", reveal_backend="mongodb")
        return None

    target = _without_credentials(redis_uri)
    try:
        client: aioredis.Redis = aioredis.from_url(redis_uri, decode_responses=True)
        await client.ping()
    except (RedisError, OSError, ValueError) as e:
        log.warning(
            "redis_unavailable",
            target=target,
            error=str(e),
            error_type=type(e).__name__,
            reveal_backend="mongodb",
        )
        return None

    log.info("redis_connected", target=target, reveal_backend="redis")
    return client
