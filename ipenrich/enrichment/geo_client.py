"""Offline geo database client backed by a MaxMind-format (.mmdb) file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Sequence

import geoip2.database
import geoip2.errors
import maxminddb

from .errors import DatabaseLoadError
from .models import Location

logger = logging.getLogger(__name__)

DEFAULT_LOCALES = ("en",)


class LocationLookup(Protocol):
    """Point lookup from an address string to a location record.

    Implementations return None when the address is unknown, malformed or
    the lookup fails; they never raise for a single address.
    """

    def lookup_ip(self, ip_address: str) -> Optional[Location]:
        """Return the location for ``ip_address`` or None."""
        ...


class GeoDatabaseClient:
    """Read-only geo lookups against a local .mmdb database.

    City databases (GeoLite2-City, DB-IP City Lite) yield country,
    subdivision and city names; Country databases yield the country only.
    Names are taken in the first available of the configured locales.

    The reader is opened once by ``load()`` and shared read-only for the
    lifetime of the process.

    Usage:
        with GeoDatabaseClient(Path("GeoLite2-City.mmdb"), locales=["en"]) as client:
            client.load()
            location = client.lookup_ip("8.8.8.8")
            if location:
                print(location.country, location.city)
    """

    def __init__(self, db_path: Path, locales: Sequence[str] = DEFAULT_LOCALES) -> None:
        """Initialize the client without opening the database.

        Args:
            db_path: Path to the .mmdb database file
            locales: Preferred name locales, most preferred first
        """
        self.db_path = db_path
        self.locales = list(locales) or list(DEFAULT_LOCALES)

        self._reader: Optional[geoip2.database.Reader] = None
        self._query: Optional[Callable[[str], Any]] = None

        self.stats: Dict[str, int] = {
            'lookups': 0,
            'hits': 0,
            'not_found': 0,
            'invalid': 0,
            'errors': 0,
        }

    @property
    def is_loaded(self) -> bool:
        """Whether ``load()`` has opened the database."""
        return self._reader is not None

    def load(self) -> None:
        """Open and parse the database file.

        Raises:
            DatabaseLoadError: If the file is missing, unreadable, not a
                MaxMind database, or of a type without country data
        """
        if self._reader is not None:
            return

        try:
            reader = geoip2.database.Reader(str(self.db_path), locales=self.locales)
        except (OSError, ValueError, maxminddb.InvalidDatabaseError) as e:
            raise DatabaseLoadError(f"failed to load geo database {self.db_path}: {e}") from e

        database_type = reader.metadata().database_type
        if "City" in database_type:
            query: Callable[[str], Any] = reader.city
        elif "Country" in database_type:
            query = reader.country
        else:
            reader.close()
            raise DatabaseLoadError(f"unsupported geo database type {database_type!r} in {self.db_path}")

        self._reader = reader
        self._query = query
        logger.debug(f"Geo database opened: {self.db_path} (type={database_type})")

    def lookup_ip(self, ip_address: str) -> Optional[Location]:
        """Look up the location of an address.

        Args:
            ip_address: IPv4 or IPv6 address text

        Returns:
            Location with whichever names the database carries, or None if
            the address is malformed, absent from the database, or the
            lookup failed

        Examples:
            >>> client = GeoDatabaseClient(Path("GeoLite2-City.mmdb"))
            >>> client.load()
            >>> client.lookup_ip("8.8.8.8")
            Location(country='United States', province=None, city=None)
        """
        if self._query is None:
            raise RuntimeError("Geo database not loaded; call load() first")

        self.stats['lookups'] += 1

        try:
            response = self._query(ip_address)
        except geoip2.errors.AddressNotFoundError:
            logger.debug(f"IP {ip_address} not found in geo database")
            self.stats['not_found'] += 1
            return None
        except ValueError as e:
            logger.debug(f"Cannot look up {ip_address}: {e}")
            self.stats['invalid'] += 1
            return None
        except Exception as e:
            logger.error(f"Geo lookup failed for {ip_address}: {e}")
            self.stats['errors'] += 1
            return None

        self.stats['hits'] += 1

        # Country-only responses have no subdivisions or city
        subdivisions = getattr(response, "subdivisions", None)
        city = getattr(response, "city", None)
        return Location(
            country=response.country.name,
            province=subdivisions.most_specific.name if subdivisions is not None else None,
            city=city.name if city is not None else None,
        )

    def close(self) -> None:
        """Close the database reader and release resources."""
        if self._reader:
            self._reader.close()
            self._reader = None
            self._query = None
            logger.debug("Geo database closed")

    def get_stats(self) -> Dict[str, int]:
        """Get lookup statistics.

        Returns:
            Dictionary with lookup counters
        """
        return dict(self.stats)

    def __enter__(self) -> GeoDatabaseClient:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - close reader."""
        self.close()


__all__ = ['GeoDatabaseClient', 'LocationLookup', 'DEFAULT_LOCALES']
