"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request

from .deps.auth import get_api_key
from .metrics import instrument_app, router as metrics_router
from .ratelimit.store import RateLimitStore
from .routers import rate_limit, transcripts
from .schemas import HealthResponse, WelcomeResponse
from .settings import APISettings, get_settings

LOGGER = logging.getLogger("slab.api")

_logging_configured = False


def configure_logging(level: str = "INFO") -> None:
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logging_configured = True


def create_app(settings: APISettings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    store = RateLimitStore(sweep_interval=settings.rate_limit_sweep_sec)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.start()
        LOGGER.info("Rate limit sweeper started (every %ss)", store.sweep_interval)
        try:
            yield
        finally:
            await store.stop()
            LOGGER.info("Rate limit sweeper stopped")

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.rate_limits = store

    @app.get("/welcome", response_model=WelcomeResponse)
    async def welcome():
        return WelcomeResponse(
            name=settings.app_name,
            version=settings.version,
            docs="/docs",
            endpoints={
                "redact": "/v1/transcripts/redact",
                "render": "/v1/transcripts/render",
                "detect_pii": "/v1/transcripts/detect-pii",
                "rate_limit_status": "/v1/rate-limit/status",
            },
        )

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz(request: Request, _: str = Depends(get_api_key)):
        limits: RateLimitStore = request.app.state.rate_limits
        return HealthResponse(
            ok=True,
            rate_limit_entries=len(limits),
            sweeper="running" if limits.running else "stopped",
            timestamp=datetime.now(timezone.utc),
        )

    app.include_router(transcripts.router)
    app.include_router(rate_limit.router)
    app.include_router(metrics_router)
    instrument_app(app)
    return app
