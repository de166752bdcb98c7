"""Classification of address tokens into routing scopes.

Special (non-routable) addresses are annotated as local without consulting
the geo database. Tokens that do not parse as addresses are deliberately
reported as not special, so they fall through to a lookup which then fails
and yields the "Unknown" label.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import Union

from .models import AddressScope

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_IPV4_LINK_LOCAL_MULTICAST = ipaddress.ip_network("224.0.0.0/24")

# RFC 1918 and unique local only; documentation, benchmarking and reserved
# blocks are looked up like any public address
_PRIVATE_NETWORKS = tuple(
    ipaddress.ip_network(cidr) for cidr in ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16", "fc00::/7")
)


def _parse(token: str) -> IPAddress | None:
    try:
        address = ipaddress.ip_address(token.strip("[]"))
    except ValueError:
        return None

    # ::ffff:a.b.c.d is classified as the IPv4 address it carries
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def _is_link_local_multicast(address: IPAddress) -> bool:
    if isinstance(address, ipaddress.IPv4Address):
        return address in _IPV4_LINK_LOCAL_MULTICAST
    # ff02::/16 plus the same scope with any flag bits set
    packed = address.packed
    return packed[0] == 0xFF and packed[1] & 0x0F == 0x02


def classify_ip(token: str) -> AddressScope:
    """Return the routing scope of a token.

    Checks run in a fixed order and the first hit decides, so each token has
    exactly one scope.

    Args:
        token: Address text; enclosing brackets are tolerated

    Returns:
        The token's AddressScope, INVALID when it does not parse

    Examples:
        >>> classify_ip("127.0.0.1")
        <AddressScope.LOOPBACK: 'loopback'>
        >>> classify_ip("999.999.999.999")
        <AddressScope.INVALID: 'invalid'>
    """
    address = _parse(token)
    if address is None:
        logger.debug(f"Token {token!r} is not a valid IP address")
        return AddressScope.INVALID

    if address.is_loopback:
        return AddressScope.LOOPBACK
    if address.is_unspecified:
        return AddressScope.UNSPECIFIED
    if address.is_link_local:
        return AddressScope.LINK_LOCAL
    if _is_link_local_multicast(address):
        return AddressScope.LINK_LOCAL_MULTICAST
    if any(address in network for network in _PRIVATE_NETWORKS):
        return AddressScope.PRIVATE
    return AddressScope.PUBLIC


def is_special_ip(token: str) -> bool:
    """Whether a token is loopback, unspecified, link-local or private.

    Malformed tokens are not special.
    """
    return classify_ip(token).is_special


__all__ = ["classify_ip", "is_special_ip"]
