"""Error responses for the click-to-call API.

Every error body is ``{"error": <message>}`` with ``Cache-Control: no-store``,
the same shape the /token rejections use. Log lines carry the masked client
identity; internal details never reach the browser.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded

from api.middleware.rate_limit import client_identity
from lib.sanitize import mask_ip

PAGE_RATE_LIMIT_MESSAGE = "Too many page loads, please wait a minute and try again."
INTERNAL_ERROR_MESSAGE = "An internal error occurred"


def error_response(status_code: int, message: str, retry_after: int | None = None) -> JSONResponse:
    headers = {"Cache-Control": "no-store"}
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(RateLimitExceeded)
    async def page_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        logger.warning(
            "[{ip}] Page rate limit hit on {path} ({limit})",
            ip=mask_ip(client_identity(request)),
            path=request.url.path,
            limit=exc.detail,
        )
        return error_response(429, PAGE_RATE_LIMIT_MESSAGE, retry_after=exc.limit.limit.get_expiry())

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return error_response(400, str(exc))

    @app.exception_handler(Exception)
    async def global_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error(
            "[{rid}] [{ip}] Unhandled error on {path}: {err}",
            rid=request.headers.get("x-request-id", "no-id"),
            ip=mask_ip(client_identity(request)),
            path=request.url.path,
            err=str(exc),
        )
        return error_response(500, INTERNAL_ERROR_MESSAGE)
