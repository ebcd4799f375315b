"""Tests for services/credentials.py — Twilio Access Token issuance."""

import time

import jwt
import pytest

from services.credentials import CredentialIssuer, TwilioCredentialIssuer

API_SECRET = "twilio-api-secret-0123456789abcdef"


@pytest.fixture
def twilio_issuer():
    return TwilioCredentialIssuer(
        account_sid="ACtest",
        api_key="SKtest",
        api_secret=API_SECRET,
        outgoing_application_sid="APtest",
    )


def _claims(token: str) -> dict:
    return jwt.decode(token, API_SECRET, algorithms=["HS256"])


class TestTwilioCredentialIssuer:
    def test_returns_signed_jwt_string(self, twilio_issuer):
        token = twilio_issuer.generate("10.0.0.5", ttl=60)
        assert isinstance(token, str)
        assert token.count(".") == 2

    def test_identity_and_issuer_claims(self, twilio_issuer):
        claims = _claims(twilio_issuer.generate("10.0.0.5", ttl=60))
        assert claims["grants"]["identity"] == "10.0.0.5"
        assert claims["iss"] == "SKtest"
        assert claims["sub"] == "ACtest"

    def test_ttl_controls_expiry(self, twilio_issuer):
        claims = _claims(twilio_issuer.generate("10.0.0.5", ttl=60))
        assert abs(claims["exp"] - (time.time() + 60)) < 5

    def test_outgoing_only_voice_grant(self, twilio_issuer):
        voice = _claims(twilio_issuer.generate("10.0.0.5", ttl=60))["grants"]["voice"]
        assert voice["outgoing"]["application_sid"] == "APtest"
        assert voice.get("incoming", {}).get("allow") is not True

    def test_other_secret_cannot_verify(self, twilio_issuer):
        token = twilio_issuer.generate("10.0.0.5", ttl=60)
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, "wrong-secret-0123456789abcdef01234", algorithms=["HS256"])

    def test_from_settings(self, test_settings):
        issuer = TwilioCredentialIssuer.from_settings(test_settings)
        assert issuer.account_sid == "ACtest"
        assert issuer.api_key == "SKtest"
        assert issuer.outgoing_application_sid == "APtest"


def test_base_issuer_is_abstract():
    with pytest.raises(NotImplementedError):
        CredentialIssuer().generate("10.0.0.5", 2)
