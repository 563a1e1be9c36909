"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

from procapacity.api.v1.router import api_router
from procapacity.config import settings
from procapacity.core.metrics import MetricsMiddleware, read_metrics
from procapacity.core.rate_limiter import RateLimitMiddleware
from procapacity.db.postgres import close_postgres, init_postgres
from procapacity.db.redis import close_redis, init_redis

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    logger.info(f"Starting up ProCapacity API ({settings.ENVIRONMENT})...")
    await init_postgres()
    await init_redis()
    logger.info("Database and cache connections established")

    yield

    logger.info("Shutting down ProCapacity API...")
    await close_postgres()
    await close_redis()
    logger.info("Database and cache connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="ProCapacity API",
        description="Capacity planning for agencies: team, projects, assignments and utilization",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        """Liveness probe that also reports which integrations are configured."""
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
            "billing_enabled": bool(settings.STRIPE_SECRET_KEY),
            "email_enabled": bool(settings.RESEND_API_KEY),
        }

    @app.get("/metrics", tags=["Observability"])
    async def get_metrics() -> dict:
        """Request counts and latencies recorded by the metrics middleware."""
        try:
            return await read_metrics()
        except (RedisError, RuntimeError, OSError) as e:
            logger.warning(f"Metrics unavailable: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Metrics store is unavailable",
            )

    return app


app = create_app()
