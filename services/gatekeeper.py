"""Access token gatekeeper.

Every token request runs one decision pipeline, stopping at the first failure:

    verify session → consume identity quota → consume global quota → issue

Order matters. An unverified caller consumes nothing, so nobody can drain a
victim's quota by spoofing their address. A caller over their own limit never
touches the shared global allowance.

The identity unit spent in step 2 is not refunded when the global tier rejects
in step 3.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from loguru import logger

from lib.sanitize import mask_ip
from services.credentials import CredentialIssuer, TwilioCredentialIssuer
from services.quota import RateLimiter
from services.session_binder import SessionBinder, build_session_binder

GLOBAL_KEY = "global"


class GateError(str, enum.Enum):
    UNAUTHORIZED = "unauthorized"
    IDENTITY_QUOTA_EXCEEDED = "identity_quota_exceeded"
    GLOBAL_QUOTA_EXCEEDED = "global_quota_exceeded"
    ISSUER_FAILURE = "issuer_failure"


@dataclass(frozen=True)
class IssuanceResult:
    """Either a credential (ok) or the reason none was issued."""
    credential: str | None = None
    ttl: int | None = None
    error: GateError | None = None
    retry_after: float | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def rejected(cls, error: GateError, retry_after: float | None = None) -> "IssuanceResult":
        return cls(error=error, retry_after=retry_after)


class Gatekeeper:
    """Decides, per request, whether an access token may be issued."""

    def __init__(
        self,
        session_binder: SessionBinder,
        identity_limiter: RateLimiter,
        global_limiter: RateLimiter,
        issuer: CredentialIssuer,
        ttl: int,
    ):
        if ttl <= 0:
            raise ValueError(f"Access token TTL must be positive, got {ttl}")
        self.session_binder = session_binder
        self.identity_limiter = identity_limiter
        self.global_limiter = global_limiter
        self.issuer = issuer
        self.ttl = ttl

    def authorize_issuance(self, identity: str, session_proof: str | None) -> IssuanceResult:
        masked = mask_ip(identity)

        if not self.session_binder.verify(identity, session_proof):
            logger.info("[{ip}] Token refused: invalid session", ip=masked)
            return IssuanceResult.rejected(GateError.UNAUTHORIZED)

        # Individual tier first so an over-limit caller never spends global quota
        quota = self.identity_limiter.consume(identity)
        if not quota.allowed:
            logger.info("[{ip}] Token refused: identity quota exhausted", ip=masked)
            return IssuanceResult.rejected(GateError.IDENTITY_QUOTA_EXCEEDED, quota.retry_after)

        quota = self.global_limiter.consume(GLOBAL_KEY)
        if not quota.allowed:
            logger.info("[{ip}] Token refused: global quota exhausted", ip=masked)
            return IssuanceResult.rejected(GateError.GLOBAL_QUOTA_EXCEEDED, quota.retry_after)

        try:
            credential = self.issuer.generate(identity, self.ttl)
        except Exception:
            logger.exception("[{ip}] Credential issuer failed", ip=masked)
            return IssuanceResult.rejected(GateError.ISSUER_FAILURE)

        logger.info("[{ip}] Access token issued (ttl={ttl}s)", ip=masked, ttl=self.ttl)
        return IssuanceResult(credential=credential, ttl=self.ttl)


def build_gatekeeper(settings, issuer: CredentialIssuer | None = None) -> Gatekeeper:
    """Wire a Gatekeeper from settings. The Twilio issuer is the default."""
    return Gatekeeper(
        session_binder=build_session_binder(settings),
        identity_limiter=RateLimiter(
            "identity",
            settings.per_identity_limit,
            settings.per_identity_window_seconds,
        ),
        global_limiter=RateLimiter(
            "global",
            settings.global_limit,
            settings.global_window_seconds,
        ),
        issuer=issuer if issuer is not None else TwilioCredentialIssuer.from_settings(settings),
        ttl=settings.access_token_ttl,
    )
