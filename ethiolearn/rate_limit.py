"""Rate limiting keyed on the caller's IP address.

``X-Forwarded-For`` is honoured only when the direct peer sits in one of
the trusted proxy networks from ``Settings.trusted_proxy_cidrs``, so a
client cannot pick its own rate limit bucket. ``RATE_LIMIT_ENABLED=false``
(environment or ``.env``) turns the limits off.
"""

import ipaddress
from typing import Optional

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import Settings, get_settings
from .logging_config import get_logger

logger = get_logger("ethiolearn.rate_limit")

Network = ipaddress.IPv4Network | ipaddress.IPv6Network


def parse_networks(cidrs: list[str]) -> list[Network]:
    """Parse CIDR strings, skipping (and logging) invalid entries."""
    networks = []
    for cidr in cidrs:
        try:
            networks.append(ipaddress.ip_network(cidr, strict=False))
        except ValueError:
            logger.warning(f"Ignoring invalid trusted proxy CIDR: {cidr}")
    return networks


_trusted_networks: Optional[list[Network]] = None


def trusted_networks() -> list[Network]:
    """Trusted proxy networks, parsed once from settings."""
    global _trusted_networks
    if _trusted_networks is None:
        _trusted_networks = parse_networks(get_settings().trusted_proxy_cidrs)
    return _trusted_networks


def get_client_ip(request) -> str:
    """Resolve the rate limit key for a request.

    Behind a trusted proxy this is the leftmost forwarded address;
    otherwise it is the direct peer.
    """
    peer = get_remote_address(request)
    try:
        addr = ipaddress.ip_address(peer)
    except ValueError:
        return peer
    if not any(addr in network for network in trusted_networks()):
        return peer

    forwarded = request.headers.get("x-forwarded-for") or ""
    return forwarded.split(",")[0].strip() or peer


def build_limiter(settings: Settings) -> Limiter:
    """Create the shared limiter, honouring the on/off switch in settings."""
    if not settings.rate_limit_enabled:
        logger.info("Rate limiting disabled")
    return Limiter(key_func=get_client_ip, enabled=settings.rate_limit_enabled)


limiter = build_limiter(get_settings())
