"""Shared test fixtures for the click-to-call token service."""

import pytest
from fastapi.testclient import TestClient

from api.middleware.rate_limit import limiter
from config import Settings
from services.credentials import CredentialIssuer
from services.gatekeeper import Gatekeeper
from services.quota import RateLimiter
from services.session_binder import SignedSessionBinder

SESSION_SECRET = "test-session-secret-0123456789abcdef"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeIssuer(CredentialIssuer):
    """Records every generate() call and returns a predictable credential."""

    def __init__(self, error: Exception | None = None):
        self.calls: list[tuple[str, int]] = []
        self.error = error

    def generate(self, identity: str, ttl: int) -> str:
        self.calls.append((identity, ttl))
        if self.error is not None:
            raise self.error
        return f"token-for-{identity}"


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def issuer():
    return FakeIssuer()


@pytest.fixture
def test_settings():
    """Production-like quotas: 10/day per identity, 5/sec global, 2s tokens."""
    return Settings(
        twilio_account_sid="ACtest",
        twilio_api_key="SKtest",
        twilio_api_secret="twilio-api-secret-0123456789abcdef",
        twilio_app_sid="APtest",
        session_secret=SESSION_SECRET,
    )


@pytest.fixture
def binder():
    return SignedSessionBinder(SESSION_SECRET)


@pytest.fixture
def make_gatekeeper(clock, issuer, binder):
    """Factory for gatekeepers on the fake clock. Keyword overrides allowed."""

    def _make(
        identity_limit: int = 10,
        identity_window: float = 24 * 60 * 60,
        global_limit: int = 5,
        global_window: float = 1,
        ttl: int = 2,
        **overrides,
    ) -> Gatekeeper:
        parts = {
            "session_binder": binder,
            "identity_limiter": RateLimiter("identity", identity_limit, identity_window, clock=clock),
            "global_limiter": RateLimiter("global", global_limit, global_window, clock=clock),
            "issuer": issuer,
            "ttl": ttl,
        }
        parts.update(overrides)
        return Gatekeeper(**parts)

    return _make


@pytest.fixture
def gatekeeper(make_gatekeeper):
    return make_gatekeeper()


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def reset_page_limiter():
    """slowapi keeps its counters module-wide; start every test clean."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def make_client(test_settings, gatekeeper):
    """Factory for TestClients around a fresh app."""
    from main import create_app

    def _make(settings: Settings | None = None, gate: Gatekeeper | None = None) -> TestClient:
        app = create_app(settings or test_settings, gate or gatekeeper)
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
