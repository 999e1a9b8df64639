"""IP block-list matching."""

import ipaddress
from typing import Iterable, Optional, Union

Address = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def unmap(address: Address) -> Address:
    """IPv4 address behind an IPv4-mapped IPv6 one (``::ffff:a.b.c.d``)."""
    if address.version == 6 and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def ip_matches_rule(ip: str, rule: str) -> bool:
    """Whether ``ip`` equals ``rule`` or falls inside the CIDR range ``rule``.

    IPv4-mapped IPv6 addresses are compared as the IPv4 address they carry,
    on either side. Malformed rules or addresses never match and never raise.
    """
    if not ip or not rule or not isinstance(ip, str) or not isinstance(rule, str):
        return False

    ip = ip.strip()
    rule = rule.strip()

    if ip == rule:
        return True

    try:
        address = unmap(ipaddress.ip_address(ip.strip("[]")))
    except ValueError:
        return False

    if "/" not in rule:
        try:
            return address == unmap(ipaddress.ip_address(rule.strip("[]")))
        except ValueError:
            return False

    try:
        network = ipaddress.ip_network(rule, strict=False)
    except ValueError:
        return False

    if network.version == 6 and network.prefixlen >= 96:
        mapped = unmap(network.network_address)
        if mapped.version == 4:
            network = ipaddress.ip_network(f"{mapped}/{network.prefixlen - 96}", strict=False)

    if address.version != network.version:
        return False

    return address in network


def is_ip_blocked(ip: Optional[str], rules: Optional[Iterable[str]]) -> bool:
    """Whether ``ip`` matches any block rule (exact address or CIDR range)."""
    if not ip or not rules:
        return False
    return any(ip_matches_rule(ip, rule) for rule in rules)
