"""Request metrics middleware backed by Redis hashes."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware

from procapacity.db.redis import get_redis

logger = logging.getLogger(__name__)

REQUEST_COUNTS_KEY = "metrics:request_counts"
LATENCIES_KEY = "metrics:latencies"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count requests per route/status and record the latest latency per route."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)

        try:
            redis = get_redis()
            await redis.hincrby(REQUEST_COUNTS_KEY, f"{request.method} {path}:{response.status_code}", 1)
            await redis.hset(LATENCIES_KEY, f"{request.method} {path}", f"{process_time:.4f}")
        except (RedisError, RuntimeError, OSError) as e:
            logger.debug(f"Skipping metrics for {path}: {e}")

        return response


async def read_metrics() -> dict:
    redis = get_redis()
    counts = await redis.hgetall(REQUEST_COUNTS_KEY)
    latencies = await redis.hgetall(LATENCIES_KEY)
    return {
        "request_counts": {k: int(v) for k, v in counts.items()},
        "latencies_ms": {k: float(v) * 1000 for k, v in latencies.items()},
    }
