"""Centralized configuration — all environment variables in one place.

Import `settings` from this module instead of calling os.getenv() directly.
Lazy-loaded on first access; reads from environment at that time.

Usage:
    from config import settings
    print(settings.per_identity_limit)
    print(settings.twilio_app_sid)
"""

import os
from dataclasses import dataclass
from functools import lru_cache

SESSION_MODES = ("signed", "stored")


@dataclass(frozen=True)
class Settings:
    """All environment variables used by the click-to-call token service."""

    # ---- Server ----
    port: int = 8080
    log_level: str = "INFO"
    sentry_dsn: str = ""

    # ---- Twilio ----
    twilio_account_sid: str = ""
    twilio_api_key: str = ""
    twilio_api_secret: str = ""
    twilio_app_sid: str = ""

    # ---- Access token ----
    access_token_ttl: int = 2  # As short as possible

    # ---- Quotas ----
    per_identity_limit: int = 10
    per_identity_window_seconds: float = 24 * 60 * 60
    global_limit: int = 5
    global_window_seconds: float = 1
    quota_sweep_interval_seconds: float = 60 * 60
    quota_idle_windows: int = 1

    # ---- Session ----
    session_mode: str = "signed"
    session_secret: str = ""
    session_cookie_name: str = "session"
    session_max_age_seconds: int = 0  # 0 = browser session, no expiry claim
    session_cookie_secure: bool = False

    # ---- Network ----
    trust_proxy_headers: bool = False
    trusted_proxy_hops: int = 1  # Proxies in front of the app that append to X-Forwarded-For

    def missing_telephony_settings(self) -> list[str]:
        """Names of the required Twilio variables that are unset."""
        required = {
            "TWILIO_ACCOUNT_SID": self.twilio_account_sid,
            "TWILIO_API_KEY": self.twilio_api_key,
            "TWILIO_API_SECRET": self.twilio_api_secret,
            "TWILIO_APP_SID": self.twilio_app_sid,
        }
        return [name for name, value in required.items() if not value]


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    """Load settings from environment. Cached after first call."""

    def _env(key: str, default: str = "") -> str:
        return os.environ.get(key, default)

    api_secret = _env("TWILIO_API_SECRET")

    return Settings(
        # Server
        port=int(_env("PORT", "8080")),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        sentry_dsn=_env("SENTRY_DSN"),
        # Twilio
        twilio_account_sid=_env("TWILIO_ACCOUNT_SID"),
        twilio_api_key=_env("TWILIO_API_KEY"),
        twilio_api_secret=api_secret,
        twilio_app_sid=_env("TWILIO_APP_SID"),
        # Access token
        access_token_ttl=int(_env("ACCESS_TOKEN_TTL", "2")),
        # Quotas
        per_identity_limit=int(_env("PER_IDENTITY_LIMIT", "10")),
        per_identity_window_seconds=float(_env("PER_IDENTITY_WINDOW_SECONDS", "86400")),
        global_limit=int(_env("GLOBAL_LIMIT", "5")),
        global_window_seconds=float(_env("GLOBAL_WINDOW_SECONDS", "1")),
        quota_sweep_interval_seconds=float(_env("QUOTA_SWEEP_INTERVAL_SECONDS", "3600")),
        quota_idle_windows=int(_env("QUOTA_IDLE_WINDOWS", "1")),
        # Session (cookies are signed with the API secret unless told otherwise)
        session_mode=_env("SESSION_MODE", "signed").lower(),
        session_secret=_env("SESSION_SECRET", api_secret),
        session_cookie_name=_env("SESSION_COOKIE_NAME", "session"),
        session_max_age_seconds=int(_env("SESSION_MAX_AGE_SECONDS", "0")),
        session_cookie_secure=_flag(_env("SESSION_COOKIE_SECURE", "false")),
        # Network
        trust_proxy_headers=_flag(_env("TRUST_PROXY_HEADERS", "false")),
        trusted_proxy_hops=int(_env("TRUSTED_PROXY_HOPS", "1")),
    )


# Module-level accessor — import this
settings = _load_settings()
