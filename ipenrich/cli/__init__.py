"""Command-line entry points for ipenrich."""
