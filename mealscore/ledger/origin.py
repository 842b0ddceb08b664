"""
Submission Origin

Every dinner records the IP address of the client that submitted it. This
module extracts that address from request headers and resolves it to a
human-readable location through ipapi.co, with a 24h in-process cache.
Lookups never raise: failures resolve to UNKNOWN_LOCATION_LABEL.
"""

import ipaddress
import threading
import time
from urllib.parse import quote

import requests

from mealscore.config import (
    IP_CACHE_TTL_SECONDS,
    IP_LOOKUP_TIMEOUT,
    IP_LOOKUP_URL,
    IP_LOOKUP_USER_AGENT,
    LOCAL_NETWORK_LABEL,
    UNKNOWN_LOCATION_LABEL,
)
from mealscore.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

# ip -> (location, looked_up_at)
_location_cache: dict[str, tuple[str, float]] = {}
_cache_lock = threading.Lock()

IPV4_MAPPED_PREFIX = "::ffff:"

PRIVATE_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("fc00::/7"),
]


def normalize_ip(ip: str) -> str:
    """Strip whitespace and the IPv4-mapped IPv6 prefix (::ffff:1.2.3.4 -> 1.2.3.4)."""
    ip = ip.strip()
    if ip.lower().startswith(IPV4_MAPPED_PREFIX):
        return ip[len(IPV4_MAPPED_PREFIX):]
    return ip


def is_private_ip(ip: str) -> bool:
    """True for loopback, RFC 1918 and unique-local addresses; False for anything unparsable."""
    try:
        address = ipaddress.ip_address(normalize_ip(ip))
    except ValueError:
        return False
    return address.is_loopback or any(address in network for network in PRIVATE_NETWORKS)


def _header(headers, name: str):
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def get_client_ip(headers=None, remote_addr: str | None = None) -> str | None:
    """
    Address of the submitting client.

    Uses the first hop of X-Forwarded-For when present (the app usually
    runs behind a proxy), otherwise the direct peer address.
    """
    forwarded = _header(headers, "x-forwarded-for") if headers else None
    if isinstance(forwarded, (list, tuple)):
        forwarded = forwarded[0] if forwarded else None
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return normalize_ip(first)

    if remote_addr:
        return normalize_ip(remote_addr)
    return None


def client_ip_from_context(context) -> str | None:
    """Client address from a Streamlit-style request context (headers + ip_address)."""
    headers = getattr(context, "headers", None)
    return get_client_ip(headers, remote_addr=getattr(context, "ip_address", None))


def _format_location(data: dict) -> str:
    parts = [data.get("country_name") or data.get("country"), data.get("region"), data.get("city")]
    parts = [part for part in parts if part]
    return " ".join(parts) if parts else UNKNOWN_LOCATION_LABEL


def lookup_ip_location(ip: str, now: float | None = None) -> str:
    """
    Resolve an IP address to "country region city".

    Args:
        ip: Address as stored on the event
        now: Current time in seconds (defaults to time.time())

    Returns:
        Location string, LOCAL_NETWORK_LABEL for private addresses, or
        UNKNOWN_LOCATION_LABEL when the lookup fails
    """
    normalized = normalize_ip(ip)
    if is_private_ip(normalized):
        return LOCAL_NETWORK_LABEL

    now = time.time() if now is None else now
    with _cache_lock:
        cached = _location_cache.get(normalized)
    if cached and now - cached[1] < IP_CACHE_TTL_SECONDS:
        return cached[0]

    try:
        response = requests.get(
            IP_LOOKUP_URL.format(ip=quote(normalized, safe="")),
            headers={"User-Agent": IP_LOOKUP_USER_AGENT},
            timeout=IP_LOOKUP_TIMEOUT,
        )
        response.raise_for_status()
        location = _format_location(response.json())
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"IP location lookup failed for {normalized}: {e}")
        location = UNKNOWN_LOCATION_LABEL

    # Failures are cached too, so a dead lookup service is hit once per TTL
    with _cache_lock:
        _location_cache[normalized] = (location, now)
    return location


def clear_location_cache() -> None:
    with _cache_lock:
        _location_cache.clear()
