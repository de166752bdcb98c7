"""Reduction of geo lookups to short display labels."""

from __future__ import annotations

import logging
from typing import Optional

from .geo_client import LocationLookup
from .models import UNAVAILABLE_SENTINEL, UNKNOWN_LABEL, Location

logger = logging.getLogger(__name__)


def _available(value: Optional[str]) -> bool:
    return bool(value) and value != UNAVAILABLE_SENTINEL


def format_location(location: Optional[Location]) -> str:
    """Build a display label from a location record.

    Country, province and city are concatenated in that order with no
    separator, skipping empty fields and the "0" sentinel.

    Args:
        location: Location record or None

    Returns:
        Concatenated label, or "Unknown" when no field is available

    Examples:
        >>> format_location(Location(country="X", province="Y", city=""))
        'XY'
        >>> format_location(Location(country="0", province="0", city="0"))
        'Unknown'
    """
    if location is None:
        return UNKNOWN_LABEL

    parts = [value for value in (location.country, location.province, location.city) if _available(value)]
    if not parts:
        return UNKNOWN_LABEL

    return "".join(parts)  # type: ignore[arg-type]


class GeoResolver:
    """Resolve public address tokens to location labels.

    Special addresses never reach the resolver; the line enricher labels
    them "Local" first.
    """

    def __init__(self, lookup: LocationLookup) -> None:
        self.lookup = lookup

    def resolve(self, token: str) -> str:
        """Return the location label for a token, "Unknown" on any failure."""
        try:
            location = self.lookup.lookup_ip(token)
        except Exception as e:
            logger.error(f"Location lookup failed for {token}: {e}")
            return UNKNOWN_LABEL

        if location is None:
            logger.debug(f"No location for {token}")
            return UNKNOWN_LABEL
        return format_location(location)


__all__ = ["GeoResolver", "format_location"]
