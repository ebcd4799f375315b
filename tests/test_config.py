"""Tests for config.py — environment loading and start-up checks."""

import os
from dataclasses import FrozenInstanceError
from unittest.mock import patch

import pytest

from config import Settings, _load_settings


@pytest.fixture
def load_with():
    """Load settings from a clean environment containing only the given vars."""

    def _load(**env):
        _load_settings.cache_clear()
        with patch.dict(os.environ, env, clear=True):
            return _load_settings()

    yield _load
    _load_settings.cache_clear()


class TestDefaults:
    def test_quota_defaults(self, load_with):
        s = load_with()
        assert s.per_identity_limit == 10
        assert s.per_identity_window_seconds == 86400
        assert s.global_limit == 5
        assert s.global_window_seconds == 1
        assert s.access_token_ttl == 2

    def test_session_defaults(self, load_with):
        s = load_with()
        assert s.session_mode == "signed"
        assert s.session_cookie_name == "session"
        assert s.session_max_age_seconds == 0
        assert s.session_cookie_secure is False
        assert s.trust_proxy_headers is False
        assert s.trusted_proxy_hops == 1

    def test_port_default(self, load_with):
        assert load_with().port == 8080


class TestEnvironment:
    def test_reads_quota_overrides(self, load_with):
        s = load_with(PER_IDENTITY_LIMIT="3", GLOBAL_LIMIT="20", GLOBAL_WINDOW_SECONDS="0.5")
        assert s.per_identity_limit == 3
        assert s.global_limit == 20
        assert s.global_window_seconds == 0.5

    def test_session_secret_defaults_to_api_secret(self, load_with):
        s = load_with(TWILIO_API_SECRET="api-secret")
        assert s.session_secret == "api-secret"

    def test_explicit_session_secret_wins(self, load_with):
        s = load_with(TWILIO_API_SECRET="api-secret", SESSION_SECRET="cookie-secret")
        assert s.session_secret == "cookie-secret"

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("YES", True), ("false", False), ("", False)])
    def test_boolean_flags(self, load_with, raw, expected):
        s = load_with(TRUST_PROXY_HEADERS=raw, SESSION_COOKIE_SECURE=raw)
        assert s.trust_proxy_headers is expected
        assert s.session_cookie_secure is expected

    def test_reads_proxy_hops(self, load_with):
        s = load_with(TRUST_PROXY_HEADERS="true", TRUSTED_PROXY_HOPS="2")
        assert s.trusted_proxy_hops == 2

    def test_session_mode_normalized(self, load_with):
        assert load_with(SESSION_MODE="Stored").session_mode == "stored"


class TestMissingTelephonySettings:
    def test_all_missing(self):
        assert Settings().missing_telephony_settings() == [
            "TWILIO_ACCOUNT_SID",
            "TWILIO_API_KEY",
            "TWILIO_API_SECRET",
            "TWILIO_APP_SID",
        ]

    def test_none_missing(self, test_settings):
        assert test_settings.missing_telephony_settings() == []

    def test_partial(self):
        s = Settings(twilio_account_sid="ACtest", twilio_api_key="SKtest")
        assert s.missing_telephony_settings() == ["TWILIO_API_SECRET", "TWILIO_APP_SID"]

    def test_settings_are_frozen(self):
        with pytest.raises(FrozenInstanceError):
            Settings().port = 1
