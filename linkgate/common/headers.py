"""Header parsing utilities for the link gate service."""

import ipaddress
from typing import Dict, Iterable, Optional

from ..rules.network import is_ip_blocked, unmap

UNKNOWN = "Inconnu"


def extract_forwarded_headers(headers: Dict[str, str]) -> Dict[str, Optional[str]]:
    """Extract X-Forwarded-* headers from request.

    Args:
        headers: Request headers dictionary

    Returns:
        Dictionary with forwarded_proto, forwarded_host, forwarded_for
    """
    # Convert headers to lowercase for case-insensitive lookup
    headers_lower = {k.lower(): v for k, v in headers.items()}

    return {
        "forwarded_proto": headers_lower.get("x-forwarded-proto"),
        "forwarded_host": headers_lower.get("x-forwarded-host"),
        "forwarded_for": headers_lower.get("x-forwarded-for"),
    }


def build_base_url(
    headers: Dict[str, str],
    fallback_base_url: str,
    request_scheme: Optional[str] = None,
    request_host: Optional[str] = None,
) -> str:
    """Build base URL from headers or fallback.

    Priority:
    1. X-Forwarded-Proto + X-Forwarded-Host
    2. Request scheme + host
    3. Fallback base URL from config

    Args:
        headers: Request headers
        fallback_base_url: Fallback base URL from configuration
        request_scheme: Request scheme (http/https)
        request_host: Request host

    Returns:
        Base URL (e.g., https://example.com)
    """
    forwarded = extract_forwarded_headers(headers)

    if forwarded["forwarded_proto"] and forwarded["forwarded_host"]:
        proto = forwarded["forwarded_proto"]
        host = forwarded["forwarded_host"]
        return f"{proto}://{host}"

    if request_scheme and request_host:
        return f"{request_scheme}://{request_host}"

    return fallback_base_url.rstrip("/")


def get_forwarded_path_prefix(headers: Dict[str, str]) -> str:
    """Get path prefix from X-Forwarded-Prefix (set by a proxy stripping a prefix).

    Returns normalized prefix with leading slash, no trailing (e.g. '/s'), or '' if not set.
    """
    key = "x-forwarded-prefix"
    for k, v in headers.items():
        if k.lower() == key and v:
            p = v.strip().strip("/")
            return "/" + p if p else ""
    return ""


def _clean_ip(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip()
    # "1.2.3.4:5678" from some proxies
    if value.count(":") == 1 and "." in value:
        value = value.split(":", 1)[0]
    try:
        address = ipaddress.ip_address(value.strip("[]"))
    except ValueError:
        return None
    return str(unmap(address))


def is_trusted_proxy(peer_host: Optional[str], trusted_proxies: Optional[Iterable[str]]) -> bool:
    """Whether the direct peer is one of the configured proxies (IPs or CIDR ranges)."""
    peer = _clean_ip(peer_host)
    return peer is not None and is_ip_blocked(peer, trusted_proxies)


def resolve_client_ip(
    headers: Dict[str, str],
    peer_host: Optional[str] = None,
    trust_forwarded: bool = False,
    trusted_proxies: Optional[Iterable[str]] = None,
) -> str:
    """Resolve the visitor's IP address.

    Priority (forwarded headers only when trusted):
    1. First valid address in X-Forwarded-For
    2. X-Real-IP
    3. Peer address of the connection

    Forwarded headers are believed when ``trust_forwarded`` is set, or when
    the peer itself is listed in ``trusted_proxies``. Otherwise any client
    could pick its own address.

    Args:
        headers: Request headers
        peer_host: Address of the direct peer, if known
        trust_forwarded: Believe proxy headers from any peer
        trusted_proxies: Proxy addresses or ranges whose headers are believed

    Returns:
        Normalized IP string, or "Inconnu" when nothing usable is present.
        IPv4-mapped IPv6 addresses come back as plain IPv4.
    """
    if trust_forwarded or is_trusted_proxy(peer_host, trusted_proxies):
        headers_lower = {k.lower(): v for k, v in headers.items()}

        forwarded_for = headers_lower.get("x-forwarded-for")
        if forwarded_for:
            for candidate in forwarded_for.split(","):
                ip = _clean_ip(candidate)
                if ip:
                    return ip

        ip = _clean_ip(headers_lower.get("x-real-ip"))
        if ip:
            return ip

    return _clean_ip(peer_host) or UNKNOWN
