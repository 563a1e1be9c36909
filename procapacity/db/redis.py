"""Redis client lifecycle and the refresh token session store."""

from typing import Optional
from uuid import UUID

import redis.asyncio as aioredis

from procapacity.config import settings

redis_client: Optional[aioredis.Redis] = None

REFRESH_TOKEN_TTL = settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60


async def init_redis() -> None:
    global redis_client

    redis_client = aioredis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
    )
    await redis_client.ping()


async def close_redis() -> None:
    global redis_client

    if redis_client:
        await redis_client.aclose()
        redis_client = None


def get_redis() -> aioredis.Redis:
    if redis_client is None:
        raise RuntimeError("Redis is not initialized")
    return redis_client


def _refresh_key(user_id: UUID) -> str:
    return f"refresh_token:{user_id}"


async def store_refresh_token(user_id: UUID, token: str) -> None:
    """Make ``token`` the only refresh token accepted for the user.

    Issuing a new pair (login, refresh, password reset) replaces the previous
    token, so a refresh token can be exchanged once.
    """
    await get_redis().setex(_refresh_key(user_id), REFRESH_TOKEN_TTL, token)


async def is_current_refresh_token(user_id: UUID, token: str) -> bool:
    stored = await get_redis().get(_refresh_key(user_id))
    return stored is not None and stored == token


async def revoke_refresh_token(user_id: UUID) -> None:
    """Drop the user's refresh token, signing them out of every session."""
    await get_redis().delete(_refresh_key(user_id))
