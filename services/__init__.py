"""Click-to-call services — token gatekeeping and the telephony issuer.

Import modules directly (``from services.gatekeeper import Gatekeeper``);
this __init__ lists them for discoverability.
"""

__all__ = [
    "credentials",
    "gatekeeper",
    "quota",
    "session_binder",
]
