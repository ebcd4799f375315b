"""PII sanitization utilities.

Client identities are network addresses; mask them before they reach the logs.
"""

from __future__ import annotations

import ipaddress


def mask_ip(address: str | None) -> str:
    """Mask a client address: '10.0.0.5' → '10.0.0.***', '2001:db8::1' → '2001:db8:0:0:***'."""
    if not address:
        return "[no-ip]"
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        # Not an address (test client, unix socket); keep a short prefix only
        return address[:4] + "***" if len(address) > 4 else "***"
    if ip.version == 4:
        return str(ip).rsplit(".", 1)[0] + ".***"
    groups = ip.exploded.split(":")[:4]
    return ":".join(g.lstrip("0") or "0" for g in groups) + ":***"
