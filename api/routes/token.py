"""Access token route.

GET /token checks the session cookie and quotas through the gatekeeper and
returns a short-lived Twilio Access Token. Rejections are final for that
click; the browser never retries on its own.
"""

from __future__ import annotations

import math

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.middleware.error_handler import error_response
from api.middleware.rate_limit import client_identity
from api.schemas import ErrorResponse, TokenResponse
from services.gatekeeper import GateError

router = APIRouter()

# GateError → (status, user-facing message). Issuer details stay in the logs.
ERROR_RESPONSES: dict[GateError, tuple[int, str]] = {
    GateError.UNAUTHORIZED: (401, "You're not authorized to make calls."),
    GateError.IDENTITY_QUOTA_EXCEEDED: (429, "You've made too many calls, please try again tomorrow."),
    GateError.GLOBAL_QUOTA_EXCEEDED: (429, "Sorry, we're very busy. Please try again later."),
    GateError.ISSUER_FAILURE: (500, "Unable to create an access token right now."),
}


@router.get(
    "/token",
    response_model=TokenResponse,
    responses={401: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_token(request: Request):
    """Serve an Access Token if the session and both quota tiers allow it."""
    gatekeeper = request.app.state.gatekeeper
    cookie_name = request.app.state.settings.session_cookie_name

    identity = client_identity(request)
    session_proof = request.cookies.get(cookie_name)

    result = gatekeeper.authorize_issuance(identity, session_proof)
    if result.ok:
        return JSONResponse(
            content=TokenResponse(token=result.credential, ttl=result.ttl).model_dump(),
            headers={"Cache-Control": f"private, max-age={result.ttl}"},
        )

    status, message = ERROR_RESPONSES[result.error]
    retry_after = None
    if result.retry_after is not None:
        retry_after = max(1, math.ceil(result.retry_after))
    return error_response(status, message, retry_after=retry_after)
