"""Exceptions raised while provisioning and loading the geo database."""

from __future__ import annotations


class EnrichmentError(Exception):
    """Base class for enrichment pipeline failures."""


class DatabaseProvisioningError(EnrichmentError):
    """The geo database file could not be made available on disk."""


class ExecutablePathError(DatabaseProvisioningError):
    """The running program's own path could not be resolved."""


class DatabaseDownloadError(DatabaseProvisioningError):
    """Downloading or installing the geo database failed.

    Attributes:
        url: Source URL of the download
        target: Final install path the file was destined for
    """

    def __init__(self, message: str, url: str, target: str) -> None:
        super().__init__(message)
        self.url = url
        self.target = target


class DatabaseLoadError(EnrichmentError):
    """The geo database file exists but could not be opened or parsed."""


__all__ = [
    "EnrichmentError",
    "DatabaseProvisioningError",
    "ExecutablePathError",
    "DatabaseDownloadError",
    "DatabaseLoadError",
]
