import logging

from upstash_redis.asyncio import Redis

from app.config import get_settings

logger = logging.getLogger(__name__)

_redis_client: Redis | None = None


def get_redis_client() -> Redis:
    """Get the process-wide async Redis client, creating it on first use.

    The game store and chat service both receive this client from the
    application lifespan rather than reaching for it themselves.
    """
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        logger.info("Initializing Upstash Redis client")
        _redis_client = Redis(
            url=settings.UPSTASH_REDIS_REST_URL,
            token=settings.UPSTASH_REDIS_REST_TOKEN,
        )
        logger.debug("Redis client created for %s", settings.UPSTASH_REDIS_REST_URL)
    return _redis_client


async def close_redis_client() -> None:
    """Close the Redis client and forget it."""
    global _redis_client
    if _redis_client is None:
        return
    logger.info("Closing Upstash Redis client")
    await _redis_client.close()
    _redis_client = None
