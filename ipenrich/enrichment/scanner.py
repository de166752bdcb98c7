"""Detection of IP address tokens in free-form text."""

from __future__ import annotations

import re
from typing import List

from .models import Match

# Dotted quad, no octet range check
IPV4_PATTERN = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b", re.ASCII)

# IPv6 only inside brackets, so "host:port" or "pid:123" never match
IPV6_PATTERN = re.compile(r"\[([0-9a-fA-F:]+)\]")


def find_all_ips(line: str) -> List[Match]:
    """Find all IPv4 and bracketed IPv6 tokens in a line.

    Tokens are not validated: ``999.999.999.999`` is returned like any other
    dotted quad and left for classification and lookup to reject.

    Args:
        line: Line of text to scan

    Returns:
        Matches with offsets into ``line``. IPv4 matches come first, then IPv6
        matches; callers must not treat this as positional order.

    Examples:
        >>> [m.text for m in find_all_ips("from 10.0.0.1 via [fe80::1]")]
        ['10.0.0.1', 'fe80::1']
    """
    matches = [Match(text=m.group(0), start=m.start(), end=m.end()) for m in IPV4_PATTERN.finditer(line)]

    # Text excludes the brackets, offsets span them
    matches.extend(Match(text=m.group(1), start=m.start(), end=m.end()) for m in IPV6_PATTERN.finditer(line))

    return matches


__all__ = ["IPV4_PATTERN", "IPV6_PATTERN", "find_all_ips"]
