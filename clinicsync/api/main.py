"""clinicsync FastAPI application entry point.

Start with:
    uvicorn clinicsync.api.main:app --reload --host 0.0.0.0 --port 8000

Google Calendar sync is optional: without an OAuth client configured the
scheduling API still works and every record simply stays local.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from clinicsync.config import GoogleOAuthConfig, SyncConfig
from clinicsync.core.exceptions import ConfigurationError, ProjectError
from clinicsync.core.logger import configure
from clinicsync.infra.calendar import CalendarAdapterFactory, StoredCredentialProvider
from clinicsync.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from clinicsync.services import NotificationSink

logger = logging.getLogger(__name__)


def _oauth_config_or_none():
    try:
        return GoogleOAuthConfig.from_env()
    except ConfigurationError:
        logger.info("API: Google OAuth client not configured; calendar sync disabled")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ──────────────────────────────────────────────────
    configure()

    await ensure_database_exists()
    engine = build_engine()
    session_factory = build_session_factory(engine)
    await init_db()
    app.state.session_factory = session_factory

    provider = StoredCredentialProvider(session_factory, _oauth_config_or_none())
    sync_config = SyncConfig.from_env(credential_provider=provider)
    app.state.sync_config = sync_config
    app.state.adapter_factory = CalendarAdapterFactory(sync_config)
    app.state.notifier = NotificationSink(
        sync_config.notification_sink_url,
        sync_config.notification_secret,
    )
    logger.info(
        "API: ready (notifications %s)",
        "enabled" if app.state.notifier.enabled else "disabled",
    )

    yield

    # ── Shutdown ─────────────────────────────────────────────────
    await app.state.notifier.drain()
    await close_engine()
    logger.info("API: engine disposed")


app = FastAPI(
    title="clinicsync API",
    version="0.1.0",
    description="Clinic scheduling with Google Calendar reconciliation.",
    lifespan=lifespan,
)


@app.exception_handler(ProjectError)
async def project_error_handler(request: Request, exc: ProjectError):
    if exc.http_status >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# CORS: allow the dashboard dev server and any configured origin
_allowed_origins = os.environ.get(
    "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Optional API key authentication ──────────────────────────────
# Set ADMIN_API_KEY env var to protect all /api/v1/* endpoints.
# Requests must then include the header:  X-Api-Key: <value>
# The OAuth callback is a browser redirect from Google and cannot carry it.
_ADMIN_API_KEY = os.environ.get("ADMIN_API_KEY", "").strip() or None
_PUBLIC_PATHS = {"/api/v1/google/callback"}


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    path = request.url.path
    if _ADMIN_API_KEY and path.startswith("/api/v1") and path not in _PUBLIC_PATHS:
        provided = request.headers.get("X-Api-Key")
        if provided != _ADMIN_API_KEY:
            return JSONResponse(
                status_code=401,
                content={"error": "UNAUTHORIZED", "message": "Set the X-Api-Key header"},
            )
    return await call_next(request)


# ── Routers ───────────────────────────────────────────────────────
from clinicsync.api.routers import appointments, blocks, google, webhooks  # noqa: E402

app.state.limiter = webhooks.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(appointments.router, prefix="/api/v1")
app.include_router(blocks.router, prefix="/api/v1")
app.include_router(google.router, prefix="/api/v1")
app.include_router(webhooks.router)  # No /api/v1/ prefix, secret-authenticated


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
