"""Validation utilities for link creation."""

import ipaddress
import re
from urllib.parse import urlparse
from typing import Iterable, List, Optional, Tuple


ALLOWED_SCHEMES = ("http", "https")

# Schemes that must never appear anywhere in a destination, even nested in a query.
DANGEROUS_SCHEMES = ("javascript:", "data:", "vbscript:", "file:")

BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}

RESERVED_WORDS = {
    "api", "health", "admin", "static", "assets", "favicon",
    "robots", "sitemap", "create", "delete", "list", "stats",
    "philosophical-quotes", "verify",
}


def _is_private_host(hostname: str) -> bool:
    """Whether a hostname points at a loopback, private or otherwise non-public range."""
    hostname = hostname.lower().rstrip(".")

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
        return True

    try:
        address = ipaddress.ip_address(hostname.strip("[]"))
    except ValueError:
        return False

    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_multicast
        or address.is_unspecified
    )


def is_valid_url(url: str) -> Tuple[bool, str]:
    """Validate a destination URL.

    Args:
        url: The URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "URL is required"

    if len(url) > 2048:
        return False, "URL is too long (max 2048 characters)"

    lowered = url.lower()
    for scheme in DANGEROUS_SCHEMES:
        if scheme in lowered:
            return False, f"Dangerous protocol detected: {scheme}"

    try:
        result = urlparse(url)

        if result.scheme not in ALLOWED_SCHEMES:
            return False, "URL must use http or https protocol"

        if not result.netloc or not result.hostname:
            return False, "URL must have a valid domain"

        if _is_private_host(result.hostname):
            return False, "URL must not point to a private or loopback address"

        return True, ""

    except ValueError as e:
        return False, f"Invalid URL format: {str(e)}"


def is_valid_short_code(short_code: str, min_length: int = 4, max_length: int = 20) -> Tuple[bool, str]:
    """Validate a short code.

    Args:
        short_code: The short code to validate
        min_length: Minimum length for short code
        max_length: Maximum length for short code

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not short_code or not isinstance(short_code, str):
        return False, "Short code is required"

    if len(short_code) < min_length:
        return False, f"Short code must be at least {min_length} characters"

    if len(short_code) > max_length:
        return False, f"Short code must be at most {max_length} characters"

    # Only allow alphanumeric characters, hyphens, and underscores
    if not re.match(r'^[a-zA-Z0-9_-]+$', short_code):
        return False, "Short code can only contain letters, numbers, hyphens, and underscores"

    if short_code.lower() in RESERVED_WORDS:
        return False, f"'{short_code}' is a reserved word and cannot be used"

    return True, ""


def is_valid_ip_rule(rule: str) -> bool:
    """Whether a block-list entry is an IP address or a CIDR range."""
    try:
        if "/" in rule:
            ipaddress.ip_network(rule.strip(), strict=False)
        else:
            ipaddress.ip_address(rule.strip())
        return True
    except ValueError:
        return False


def normalize_block_list(entries: Optional[Iterable[str]]) -> List[str]:
    """Strip entries and drop blanks and duplicates, keeping order."""
    seen = set()
    result = []
    for entry in entries or []:
        if not isinstance(entry, str):
            continue
        entry = entry.strip()
        if entry and entry not in seen:
            seen.add(entry)
            result.append(entry)
    return result
