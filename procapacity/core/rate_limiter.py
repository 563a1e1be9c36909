"""Sliding window rate limiting backed by Redis sorted sets."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request, Response
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from procapacity.config import settings
from procapacity.core.security import verify_access_token
from procapacity.db.redis import get_redis

logger = logging.getLogger(__name__)

# Health probes and Stripe callbacks are never throttled
EXEMPT_PATHS = {"/health", f"{settings.API_V1_PREFIX}/billing/webhook"}

# Unauthenticated endpoints that accept credentials or tokens
CREDENTIAL_PATHS = {
    f"{settings.API_V1_PREFIX}/auth/{name}"
    for name in ("signup", "login", "forgot-password", "reset-password", "accept-invite")
}


@dataclass(frozen=True)
class Bucket:
    key: str
    limit: int


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def bucket_for(request: Request) -> Bucket:
    """Pick the counter a request is charged to.

    Credential endpoints share a small per-IP allowance. Other requests are
    counted per user when they carry a valid access token, otherwise per IP.
    """
    if request.url.path in CREDENTIAL_PATHS:
        return Bucket(f"ratelimit:auth:{client_ip(request)}", settings.AUTH_RATE_LIMIT_REQUESTS)

    subject = _token_subject(request)
    if subject is not None:
        return Bucket(f"ratelimit:user:{subject}", settings.RATE_LIMIT_REQUESTS)
    return Bucket(f"ratelimit:ip:{client_ip(request)}", settings.RATE_LIMIT_REQUESTS)


def _token_subject(request: Request) -> Optional[str]:
    """User id from a valid bearer access token, else None."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    try:
        return verify_access_token(auth_header[len("Bearer "):])["sub"]
    except ValueError:
        # Invalid tokens are rejected by the route itself
        return None


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        bucket = bucket_for(request)
        is_allowed, remaining = await self._hit(bucket)
        window = settings.RATE_LIMIT_WINDOW
        headers = {
            "X-RateLimit-Limit": str(bucket.limit),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(window),
        }

        if not is_allowed:
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests. Please try again shortly.", "retry_after": window},
                headers={**headers, "Retry-After": str(window)},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response

    async def _hit(self, bucket: Bucket) -> tuple[bool, int]:
        """Record a request and return (allowed, remaining)."""
        try:
            redis = get_redis()
            now = time.time()
            member = f"{now:.6f}"

            pipe = redis.pipeline()
            pipe.zremrangebyscore(bucket.key, 0, now - settings.RATE_LIMIT_WINDOW)
            pipe.zcard(bucket.key)
            pipe.zadd(bucket.key, {member: now})
            pipe.expire(bucket.key, settings.RATE_LIMIT_WINDOW)
            results = await pipe.execute()
            seen = results[1]

            if seen >= bucket.limit:
                await redis.zrem(bucket.key, member)
                return False, 0
            return True, max(0, bucket.limit - seen - 1)

        except (RedisError, RuntimeError, OSError) as e:
            # Fail open when Redis is unavailable
            logger.warning(f"Rate limiter unavailable, allowing request: {e}")
            return True, bucket.limit
