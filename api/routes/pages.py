"""Page routes — home page with its session cookie.

GET / hands the browser a session proof bound to its address; /token only
honors requests that present it back from the same address.
"""

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse
from loguru import logger

from api.middleware.rate_limit import PAGE_LIMIT, client_identity, limiter
from lib.sanitize import mask_ip

router = APIRouter()

STATIC_DIR = Path(__file__).resolve().parents[2] / "static"


@router.get("/")
@limiter.limit(PAGE_LIMIT)
async def home(request: Request):
    """Return the home page along with a session cookie for the caller's address."""
    settings = request.app.state.settings
    binder = request.app.state.gatekeeper.session_binder

    identity = client_identity(request)
    response = FileResponse(STATIC_DIR / "index.html", media_type="text/html")
    response.set_cookie(
        settings.session_cookie_name,
        binder.issue(identity),
        max_age=settings.session_max_age_seconds or None,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    logger.debug("[{ip}] Session issued ({mode})", ip=mask_ip(identity), mode=binder.mode)
    return response
