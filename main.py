"""Click-to-call — FastAPI server entry point.

Serves:
- / — home page, sets the session cookie
- /token — short-lived Twilio Access Token (session + quota gated)
- /static/* — browser assets
- /health — health check

Rate limiting is fixed-window and in-memory. A multi-server deployment needs
the quota buckets in a shared store (see services.quota.QuotaStore).
"""

from __future__ import annotations

import asyncio
import sys
import warnings

import sentry_sdk
import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from loguru import logger

from api.middleware.error_handler import register_error_handlers
from api.middleware.rate_limit import limiter
from api.routes.pages import STATIC_DIR, router as pages_router
from api.routes.token import router as token_router
from api.schemas import HealthResponse
from config import Settings, settings as env_settings
from services.gatekeeper import Gatekeeper, build_gatekeeper
from services.quota import run_quota_sweeper

logger.remove()
logger.add(sys.stderr, level=env_settings.log_level)


# Route Python warnings through loguru instead of raw stderr.
# DeprecationWarnings → DEBUG (hidden at INFO), other warnings → WARNING.
def _warning_handler(message, category, filename, lineno, file=None, line=None):
    if issubclass(category, DeprecationWarning):
        logger.debug("{msg}", msg=str(message))
    else:
        logger.warning("{cat}: {msg}", cat=category.__name__, msg=str(message))


warnings.showwarning = _warning_handler

if env_settings.sentry_dsn:
    sentry_sdk.init(
        dsn=env_settings.sentry_dsn,
        traces_sample_rate=0,
        send_default_pii=False,
    )
    logger.info("Sentry initialized")


def create_app(settings: Settings | None = None, gatekeeper: Gatekeeper | None = None) -> FastAPI:
    """Build the application. Tests pass their own settings and gatekeeper."""
    settings = settings or env_settings
    app = FastAPI(title="Click-to-Call", version="0.1.0")

    app.state.settings = settings
    app.state.gatekeeper = gatekeeper or build_gatekeeper(settings)
    app.state.sweeper = None

    # Rate limiting (page routes; /token is quota-gated by the gatekeeper)
    app.state.limiter = limiter

    # Error handlers, including the page rate limit 429
    register_error_handlers(app)

    # Routes
    app.include_router(pages_router)
    app.include_router(token_router)
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint with quota tier status."""
        gate = app.state.gatekeeper
        return {
            "status": "ok",
            "service": "click-to-call",
            "session_mode": gate.session_binder.mode,
            "tracked_buckets": {
                gate.identity_limiter.name: gate.identity_limiter.tracked_keys,
                gate.global_limiter.name: gate.global_limiter.tracked_keys,
            },
        }

    @app.on_event("startup")
    async def startup():
        gate = app.state.gatekeeper
        logger.info(
            "Quotas: {il}, {gl}; token ttl={ttl}s; session mode={mode}",
            il=gate.identity_limiter,
            gl=gate.global_limiter,
            ttl=gate.ttl,
            mode=gate.session_binder.mode,
        )
        app.state.sweeper = asyncio.create_task(
            run_quota_sweeper(
                [gate.identity_limiter, gate.global_limiter],
                interval_seconds=settings.quota_sweep_interval_seconds,
                idle_windows=settings.quota_idle_windows,
                session_binder=gate.session_binder,
            )
        )

    @app.on_event("shutdown")
    async def shutdown():
        task = app.state.sweeper
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            app.state.sweeper = None
        logger.info("Click-to-call shut down")

    return app


app = create_app()


def run() -> None:
    """Console entry point: validate Twilio settings, then serve."""
    missing = env_settings.missing_telephony_settings()
    if missing:
        logger.error("Please set the {names} environment variables.", names=", ".join(missing))
        sys.exit(1)

    logger.info("Server running on http://localhost:{port}", port=env_settings.port)
    uvicorn.run(app, host="0.0.0.0", port=env_settings.port, log_level=env_settings.log_level.lower())


if __name__ == "__main__":
    run()
