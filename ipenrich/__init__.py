"""Inline geo annotation of IP addresses in a wrapped command's output."""

from importlib.metadata import PackageNotFoundError, version

__all__ = ["get_version"]


def get_version() -> str:
    """Return the installed package version or a development marker."""
    try:
        return version("ipenrich")
    except PackageNotFoundError:
        return "0.0.0-dev"
