"""Shared pytest fixtures for ipenrich tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ipenrich.enrichment.line_enricher import LineEnricher  # noqa: E402
from ipenrich.enrichment.resolver import GeoResolver  # noqa: E402
from tests.fixtures.enrichment_fixtures import SAMPLE_LOCATIONS, StubGeoClient  # noqa: E402


@pytest.fixture
def stub_client() -> StubGeoClient:
    """Geo client stub answering from SAMPLE_LOCATIONS."""
    return StubGeoClient(SAMPLE_LOCATIONS)


@pytest.fixture
def enricher(stub_client: StubGeoClient) -> LineEnricher:
    """Line enricher backed by the stub geo client."""
    return LineEnricher(GeoResolver(stub_client))


@pytest.fixture
def db_file(tmp_path: Path) -> Path:
    """Existing (empty) database file; the reader is always mocked."""
    path = tmp_path / "GeoLite2-City.mmdb"
    path.write_bytes(b"")
    return path
