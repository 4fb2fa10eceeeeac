"""ABOUTME: SSRF guard - decides whether an outbound URL may be fetched.

Every URL the fetcher touches (the initial one and every redirect target) is
run through evaluate(). A decision is computed fresh each time and never
cached.
"""

import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, Union
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# Async callable: hostname -> list of address strings (raises OSError on failure)
Resolver = Callable[[str], Awaitable[List[str]]]


# ============================================================================
# Decision reasons
# ============================================================================

REASON_ALLOWED = "allowed"
REASON_SCHEME_NOT_ALLOWED = "scheme_not_allowed"
REASON_MISSING_HOST = "missing_host"
REASON_UNRESOLVABLE = "unresolvable"
REASON_NOT_ALLOWLISTED = "not_allowlisted"
REASON_LOCALHOST = "localhost"
REASON_METADATA_ENDPOINT = "metadata_endpoint"
REASON_PRIVATE_ADDRESS = "private_address"

ALLOWED_SCHEMES = ("http", "https")

METADATA_HOSTNAMES = frozenset({
    "metadata.google.internal",
    "metadata.goog",
    "metadata",
    "instance-data",
    "instance-data.ec2.internal",
})

METADATA_ADDRESSES = frozenset({
    ipaddress.ip_address("169.254.169.254"),   # AWS, GCP, Azure, OpenStack
    ipaddress.ip_address("169.254.170.2"),     # AWS ECS task metadata
    ipaddress.ip_address("100.100.100.200"),   # Alibaba Cloud
    ipaddress.ip_address("fd00:ec2::254"),     # AWS IPv6
})

CGNAT_NETWORK = ipaddress.ip_network("100.64.0.0/10")


@dataclass(frozen=True)
class FetchPolicy:
    """Host policy applied to every fetched URL."""
    allowed_hosts: Tuple[str, ...] = ()
    allow_private: bool = False


@dataclass(frozen=True)
class FetchPolicyDecision:
    """Outcome of evaluating one URL against a FetchPolicy."""
    allowed: bool
    reason: str
    host: Optional[str] = None
    addresses: Tuple[str, ...] = ()


async def default_resolver(host: str) -> List[str]:
    """Resolve a hostname with the event loop's getaddrinfo."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    return list(dict.fromkeys(info[4][0] for info in infos))


def normalize_host(host: str) -> str:
    return host.strip().lower().rstrip(".")


def unwrap_address(address: IPAddress) -> IPAddress:
    """Map ::ffff:a.b.c.d to a.b.c.d so IPv4 rules apply to it."""
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def is_metadata_address(address: IPAddress) -> bool:
    return unwrap_address(address) in METADATA_ADDRESSES


def is_private_address(address: IPAddress) -> bool:
    """Check whether an address is non-public.

    Covers loopback, unspecified, link-local, RFC1918/ULA private, CGNAT,
    multicast and reserved ranges.
    """
    address = unwrap_address(address)
    if (
        address.is_loopback
        or address.is_unspecified
        or address.is_link_local
        or address.is_private
        or address.is_multicast
        or address.is_reserved
    ):
        return True
    return isinstance(address, ipaddress.IPv4Address) and address in CGNAT_NETWORK


def _parse_addresses(raw: Iterable[str]) -> List[IPAddress]:
    parsed = []
    for item in raw:
        # Scoped IPv6 addresses come back as fe80::1%eth0
        parsed.append(ipaddress.ip_address(item.split("%", 1)[0]))
    return parsed


def _deny(reason: str, host: Optional[str] = None, addresses: Tuple[str, ...] = ()) -> FetchPolicyDecision:
    return FetchPolicyDecision(allowed=False, reason=reason, host=host, addresses=addresses)


async def evaluate(
    url: str,
    policy: FetchPolicy,
    resolver: Optional[Resolver] = None,
) -> FetchPolicyDecision:
    """Decide whether a URL may be fetched under the given policy.

    Checks run in order: scheme, host presence, DNS resolution, explicit
    allowlist (which overrides everything after it), then localhost, metadata
    endpoints and private ranges unless allow_private is set.

    Args:
        url: Absolute URL to examine
        policy: Allowlist and private-range policy
        resolver: Async hostname resolver (defaults to getaddrinfo)

    Returns:
        FetchPolicyDecision with the first reason that applies
    """
    resolver = resolver or default_resolver

    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        return _deny(REASON_MISSING_HOST)

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return _deny(REASON_SCHEME_NOT_ALLOWED)
    if not hostname:
        return _deny(REASON_MISSING_HOST)

    host = normalize_host(hostname)

    try:
        literal: Optional[IPAddress] = ipaddress.ip_address(host.split("%", 1)[0])
    except ValueError:
        literal = None

    if literal is not None:
        addresses = [literal]
    else:
        try:
            addresses = _parse_addresses(await resolver(host))
        except (OSError, ValueError) as e:
            logger.debug(f"DNS resolution failed for {host}: {e}")
            return _deny(REASON_UNRESOLVABLE, host)
        if not addresses:
            return _deny(REASON_UNRESOLVABLE, host)

    address_strs = tuple(str(a) for a in addresses)

    if policy.allowed_hosts:
        allowlist = {normalize_host(h) for h in policy.allowed_hosts}
        if host in allowlist:
            return FetchPolicyDecision(True, REASON_ALLOWED, host, address_strs)
        return _deny(REASON_NOT_ALLOWLISTED, host, address_strs)

    if not policy.allow_private:
        if host == "localhost" or host.endswith(".localhost"):
            return _deny(REASON_LOCALHOST, host, address_strs)
        if host in METADATA_HOSTNAMES:
            return _deny(REASON_METADATA_ENDPOINT, host, address_strs)
        if any(is_metadata_address(a) for a in addresses):
            return _deny(REASON_METADATA_ENDPOINT, host, address_strs)
        if any(is_private_address(a) for a in addresses):
            return _deny(REASON_PRIVATE_ADDRESS, host, address_strs)

    return FetchPolicyDecision(True, REASON_ALLOWED, host, address_strs)
