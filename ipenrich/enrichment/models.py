"""Data models for IP token enrichment.

This module provides the core data structures shared by the scanner,
classifier, resolver and line rewriter: detected address tokens, location
records and the address scope enum.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

LOCAL_LABEL = "Local"
UNKNOWN_LABEL = "Unknown"

# Field value the geo database uses for "not available"
UNAVAILABLE_SENTINEL = "0"


class AddressScope(str, Enum):
    """Routing scope of an address token.

    Every token gets exactly one scope. All scopes except PUBLIC and INVALID
    are "special" and annotated as local without a database lookup.

    Attributes:
        LOOPBACK: 127.0.0.0/8, ::1
        UNSPECIFIED: 0.0.0.0, ::
        LINK_LOCAL: 169.254.0.0/16, fe80::/10
        LINK_LOCAL_MULTICAST: 224.0.0.0/24, ffX2::/16
        PRIVATE: RFC 1918 or unique local (fc00::/7)
        PUBLIC: Globally routable, eligible for geo lookup
        INVALID: Token does not parse as an address
    """

    LOOPBACK = "loopback"
    UNSPECIFIED = "unspecified"
    LINK_LOCAL = "link_local"
    LINK_LOCAL_MULTICAST = "link_local_multicast"
    PRIVATE = "private"
    PUBLIC = "public"
    INVALID = "invalid"

    @property
    def is_special(self) -> bool:
        """Whether tokens of this scope are annotated as local."""
        return self not in (AddressScope.PUBLIC, AddressScope.INVALID)


@dataclass(slots=True, frozen=True)
class Match:
    """An address token detected in a line.

    Attributes:
        text: Address text, without enclosing brackets for IPv6
        start: Offset of the first character of the token in the original line
        end: Offset one past the last character (includes the closing bracket)

    Example:
        >>> line = "peer [fe80::1] up"
        >>> m = Match(text="fe80::1", start=5, end=14)
        >>> line[m.start:m.end]
        '[fe80::1]'
    """

    text: str
    start: int
    end: int


@dataclass(slots=True, frozen=True)
class Location:
    """Location record returned by the geo database.

    Any field may be None, empty or UNAVAILABLE_SENTINEL when the database
    carries no value for it.
    """

    country: Optional[str] = None
    province: Optional[str] = None
    city: Optional[str] = None


__all__ = [
    "AddressScope",
    "Location",
    "Match",
    "LOCAL_LABEL",
    "UNKNOWN_LABEL",
    "UNAVAILABLE_SENTINEL",
]
