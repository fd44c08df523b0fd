"""Anime Lists & Games API - FastAPI Application."""

import logging
from contextlib import asynccontextmanager
from datetime import timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.config import get_settings
from app.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

from app.api.v1.router import api_router
from app.core.cache import get_cache
from app.core.exceptions import AppError
from app.db.database import init_db
from app.middleware import CorrelationIDMiddleware
from app.services.list_service import run_popularity_recompute

logger = logging.getLogger(__name__)

# Rate limiter - 100 requests per minute per IP for general endpoints
# Vote and view endpoints have stricter limits applied via decorators
limiter = Limiter(key_func=get_remote_address, default_limits=["100/minute"])


def create_scheduler() -> AsyncIOScheduler:
    """Scheduler owned by the app lifespan; nothing runs until start()."""
    scheduler = AsyncIOScheduler(
        timezone=timezone.utc,
        job_defaults={
            # Run a missed nightly job when we come back instead of skipping it
            "misfire_grace_time": 60 * 60,
            "coalesce": True,
            "max_instances": 1,
        },
    )
    scheduler.add_job(
        run_popularity_recompute,
        CronTrigger(hour=settings.popularity_recompute_hour, minute=0),
        id="list_popularity_recompute",
        replace_existing=True,
    )
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    await init_db()

    scheduler = create_scheduler()
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info(
        f"Scheduler started - list popularity recompute at {settings.popularity_recompute_hour:02d}:00 UTC"
    )

    yield

    logger.info("Shutting down application...")
    scheduler.shutdown(wait=False)
    await get_cache().close()
    logger.info("Shutdown complete")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map service errors to HTTP responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Member lists, rankings and daily guess games",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(AppError, app_error_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Correlation-ID"],
        expose_headers=["X-Correlation-ID"],
    )
    app.add_middleware(CorrelationIDMiddleware)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": settings.app_name}

    return app


app = create_app()
