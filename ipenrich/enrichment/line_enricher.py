"""Per-line enrichment: scan, classify, resolve and rewrite.

Annotations are inserted right to left. Inserting left to right would shift
every match after the first insertion point and corrupt the remaining
offsets, so matches are always sorted by descending end offset first.

Enrichment is not idempotent: feeding an annotated line back through may
detect digit runs inside an earlier label as new tokens.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Tuple

from .classifier import is_special_ip
from .models import LOCAL_LABEL, UNKNOWN_LABEL, Match
from .resolver import GeoResolver
from .scanner import find_all_ips

logger = logging.getLogger(__name__)


def rewrite_line(line: str, labelled: Iterable[Tuple[Match, str]]) -> str:
    """Insert ``(<label>)`` after each match.

    Args:
        line: Original line; match offsets refer to this text
        labelled: (match, label) pairs in any order, non-overlapping

    Returns:
        Annotated line, or ``line`` itself when there is nothing to insert

    Examples:
        >>> rewrite_line("a 1.1.1.1 b", [(Match("1.1.1.1", 2, 9), "X")])
        'a 1.1.1.1(X) b'
    """
    # sorted() is stable, equal end offsets keep their input order
    ordered = sorted(labelled, key=lambda pair: pair[0].end, reverse=True)
    if not ordered:
        return line

    for match, label in ordered:
        line = f"{line[:match.end]}({label}){line[match.end:]}"
    return line


class LineEnricher:
    """Annotate every address token in a line with its location label.

    Holds the process-wide resolver; nothing else carries over between lines
    apart from the statistics counters.

    Example:
        >>> enricher = LineEnricher(GeoResolver(client))
        >>> enricher.enrich_line("ESTAB 127.0.0.1:22 8.8.8.8:443")
        'ESTAB 127.0.0.1(Local):22 8.8.8.8(United States):443'
    """

    def __init__(self, resolver: GeoResolver) -> None:
        self.resolver = resolver
        self.stats: Dict[str, int] = {
            'lines': 0,
            'matches': 0,
            'local': 0,
            'resolved': 0,
            'unknown': 0,
        }

    def label_for(self, token: str) -> str:
        """Return the annotation label for a single token."""
        if is_special_ip(token):
            self.stats['local'] += 1
            return LOCAL_LABEL

        label = self.resolver.resolve(token)
        if label == UNKNOWN_LABEL:
            self.stats['unknown'] += 1
        else:
            self.stats['resolved'] += 1
        return label

    def enrich_line(self, line: str) -> str:
        """Return ``line`` with a label inserted after every address token."""
        self.stats['lines'] += 1

        matches = find_all_ips(line)
        if not matches:
            return line

        self.stats['matches'] += len(matches)
        return rewrite_line(line, [(match, self.label_for(match.text)) for match in matches])

    def get_stats(self) -> Dict[str, int]:
        """Get enrichment counters."""
        return dict(self.stats)


__all__ = ["LineEnricher", "rewrite_line"]
