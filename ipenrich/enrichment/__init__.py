"""IP token enrichment pipeline.

Example:
    >>> from pathlib import Path
    >>> from ipenrich.enrichment import GeoDatabaseClient, GeoResolver, LineEnricher
    >>>
    >>> client = GeoDatabaseClient(Path("GeoLite2-City.mmdb"))
    >>> client.load()
    >>> enricher = LineEnricher(GeoResolver(client))
    >>> enricher.enrich_line("connect to 10.0.0.1 and 8.8.8.8")
    'connect to 10.0.0.1(Local) and 8.8.8.8(United States)'
"""

from .classifier import classify_ip, is_special_ip
from .geo_client import GeoDatabaseClient, LocationLookup
from .line_enricher import LineEnricher, rewrite_line
from .models import AddressScope, Location, Match
from .provisioner import DatabaseProvisioner
from .resolver import GeoResolver, format_location
from .scanner import find_all_ips

__all__ = [
    "AddressScope",
    "DatabaseProvisioner",
    "GeoDatabaseClient",
    "GeoResolver",
    "LineEnricher",
    "Location",
    "LocationLookup",
    "Match",
    "classify_ip",
    "find_all_ips",
    "format_location",
    "is_special_ip",
    "rewrite_line",
]
