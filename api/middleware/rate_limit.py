"""Client identity and route-level rate limiting.

The client identity is the network address the gatekeeper keys quotas and
sessions on. Behind trusted proxies it is read from X-Forwarded-For, counting
TRUSTED_PROXY_HOPS entries from the right. Proxies append the address they
saw, so everything left of that point is client-supplied and ignored.

The slowapi limiter guards the cheap routes (home page); token issuance has
its own quota tiers in services.gatekeeper.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


def forwarded_client(header: str, hops: int) -> str | None:
    """Address appended by the outermost trusted proxy, or None if the chain is short."""
    chain = [hop.strip() for hop in header.split(",") if hop.strip()]
    if hops < 1 or len(chain) < hops:
        return None
    return chain[-hops]


def client_identity(request: Request) -> str:
    """Network address of the caller, honoring proxy headers only when trusted."""
    settings = getattr(request.app.state, "settings", None)
    if settings is not None and settings.trust_proxy_headers:
        forwarded = forwarded_client(
            request.headers.get("x-forwarded-for", ""),
            settings.trusted_proxy_hops,
        )
        if forwarded:
            return forwarded
    return get_remote_address(request)


limiter = Limiter(key_func=client_identity)

# Rate limit strings for use with @limiter.limit() decorator
PAGE_LIMIT = "30/minute"        # Home page (issues session cookies)
