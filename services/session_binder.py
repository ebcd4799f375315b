"""Session binding — ties a browser session to the client identity that opened it.

Two binders share one contract:
- SignedSessionBinder: stateless HS256 JWT carrying the identity. Nothing is
  stored server-side, so there is no shared state to synchronize.
- StoredSessionBinder: random opaque value kept in an in-memory map.

verify() never raises. A missing, malformed, forged, expired or foreign proof
is an ordinary False.
"""

from __future__ import annotations

import hmac
import secrets
import threading
import time
from typing import Callable

import jwt
from loguru import logger

from config import SESSION_MODES

_ALGORITHM = "HS256"


class SessionBinder:
    """Issues and checks proofs that bind a session to one identity."""

    mode = ""

    def issue(self, identity: str) -> str:
        raise NotImplementedError

    def verify(self, identity: str, proof: str | None) -> bool:
        raise NotImplementedError

    def evict_expired(self) -> int:
        """Drop server-side state for expired proofs. Stateless binders keep none."""
        return 0


class SignedSessionBinder(SessionBinder):
    """Stateless signed proof: {"sub": identity, "iat", ["exp"]} under a shared secret."""

    mode = "signed"

    def __init__(self, secret: str, max_age_seconds: int | None = None):
        if not secret:
            raise ValueError("Session signing secret must not be empty")
        self._secret = secret
        self._max_age = max_age_seconds or None

    def issue(self, identity: str) -> str:
        now = int(time.time())
        claims = {"sub": identity, "iat": now}
        if self._max_age:
            claims["exp"] = now + self._max_age
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def verify(self, identity: str, proof: str | None) -> bool:
        if not proof or not isinstance(proof, str):
            return False
        try:
            claims = jwt.decode(
                proof,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"require": ["sub"]},
            )
        except jwt.InvalidTokenError:
            return False
        subject = claims.get("sub")
        if not isinstance(subject, str):
            return False
        return hmac.compare_digest(subject.encode(), identity.encode())


class StoredSessionBinder(SessionBinder):
    """Server-issued random proof, one live proof per identity.

    With max_age_seconds set, proofs expire and evict_expired() drops them; the
    quota sweeper calls it on every pass. Without it the map keeps one entry per
    identity ever seen until the process restarts.
    """

    mode = "stored"

    def __init__(
        self,
        max_age_seconds: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._proofs: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._max_age = max_age_seconds or None
        self._clock = clock

    def _expired(self, issued_at: float, now: float) -> bool:
        return self._max_age is not None and now - issued_at >= self._max_age

    def issue(self, identity: str) -> str:
        proof = secrets.token_urlsafe(32)
        with self._lock:
            self._proofs[identity] = (proof, self._clock())
        return proof

    def verify(self, identity: str, proof: str | None) -> bool:
        if not proof or not isinstance(proof, str):
            return False
        with self._lock:
            entry = self._proofs.get(identity)
        if entry is None:
            return False
        expected, issued_at = entry
        if self._expired(issued_at, self._clock()):
            return False
        return hmac.compare_digest(proof.encode(), expected.encode())

    def evict_expired(self) -> int:
        if self._max_age is None:
            return 0
        now = self._clock()
        with self._lock:
            stale = [
                identity for identity, (_, issued_at) in self._proofs.items()
                if self._expired(issued_at, now)
            ]
            for identity in stale:
                del self._proofs[identity]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._proofs)


def build_session_binder(settings) -> SessionBinder:
    """Pick the binder named by settings.session_mode."""
    if settings.session_mode == "signed":
        secret = settings.session_secret
        if not secret:
            logger.warning("SESSION_SECRET not set — using an ephemeral key, sessions end on restart")
            secret = secrets.token_urlsafe(32)
        return SignedSessionBinder(
            secret,
            max_age_seconds=settings.session_max_age_seconds or None,
        )
    if settings.session_mode == "stored":
        return StoredSessionBinder(max_age_seconds=settings.session_max_age_seconds or None)
    raise ValueError(
        f"Unknown session mode {settings.session_mode!r}. Must be one of: {', '.join(SESSION_MODES)}"
    )
