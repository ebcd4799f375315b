"""Telephony credential issuer — short-lived Twilio Access Tokens.

The token carries a VoiceGrant for the outgoing TwiML application only; the
browser can place calls but never receive them.

See https://www.twilio.com/docs/iam/access-tokens
"""

from __future__ import annotations

from twilio.jwt.access_token import AccessToken
from twilio.jwt.access_token.grants import VoiceGrant


class CredentialIssuer:
    """Produces a signed, opaque credential for an identity."""

    def generate(self, identity: str, ttl: int) -> str:
        raise NotImplementedError


class TwilioCredentialIssuer(CredentialIssuer):
    def __init__(
        self,
        account_sid: str,
        api_key: str,
        api_secret: str,
        outgoing_application_sid: str,
    ):
        self.account_sid = account_sid
        self.api_key = api_key
        self._api_secret = api_secret
        self.outgoing_application_sid = outgoing_application_sid

    def generate(self, identity: str, ttl: int) -> str:
        """Build an Access Token for identity, valid for ttl seconds, as a JWT string."""
        token = AccessToken(
            self.account_sid,
            self.api_key,
            self._api_secret,
            identity=identity,
            ttl=ttl,
        )
        token.add_grant(
            VoiceGrant(
                outgoing_application_sid=self.outgoing_application_sid,
                incoming_allow=False,
            )
        )
        return token.to_jwt()

    @classmethod
    def from_settings(cls, settings) -> "TwilioCredentialIssuer":
        return cls(
            account_sid=settings.twilio_account_sid,
            api_key=settings.twilio_api_key,
            api_secret=settings.twilio_api_secret,
            outgoing_application_sid=settings.twilio_app_sid,
        )
