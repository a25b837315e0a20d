# /app/db/redis.py
from redis.asyncio import Redis
from typing import Optional
from fastapi import HTTPException, Request
from app.core.config import settings
import logging
import asyncio

logger = logging.getLogger(__name__)


async def connect_redis(max_retries: int = 3) -> Redis:
    retry_delay = 1  # seconds
    last_error = None

    for attempt in range(max_retries):
        redis = Redis.from_url(settings.redis_url, decode_responses=True)
        try:
            await redis.ping()
            logger.info(f"Connected to Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT}")
            return redis
        except Exception as e:
            last_error = e
            await redis.close()
            if attempt < max_retries - 1:
                logger.warning(
                    f"Redis connection attempt {attempt + 1} failed: {str(e)}. Retrying in {retry_delay}s...")
                await asyncio.sleep(retry_delay)
                retry_delay *= 2

    logger.error(f"Redis connection failed after {max_retries} attempts: {str(last_error)}")
    raise ConnectionError(f"Could not connect to Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT}")


async def get_redis(request: Request) -> Redis:
    """Shared Redis client opened at startup; reconnects when it is missing."""
    redis = getattr(request.app.state, "redis", None)
    if redis is not None:
        return redis

    try:
        redis = await connect_redis(max_retries=1)
    except ConnectionError:
        raise HTTPException(
            status_code=503,
            detail="Service temporarily unavailable. Please try again later.",
        )
    request.app.state.redis = redis
    return redis


async def get_optional_redis(request: Request) -> Optional[Redis]:
    """Shared Redis client, or None when startup ran without one. Never reconnects."""
    return getattr(request.app.state, "redis", None)
