"""Runtime configuration helpers for the IP enrichment wrapper."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping

from ipenrich.enrichment.errors import ExecutablePathError
from ipenrich.enrichment.geo_client import DEFAULT_LOCALES
from ipenrich.enrichment.provisioner import DEFAULT_CHUNK_SIZE, DEFAULT_DB_FILENAME, DEFAULT_DOWNLOAD_URL


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _coerce_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _split_list(value: str | None) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def default_database_path(program: str | None = None) -> Path:
    """Return the install path of the geo database next to the running program.

    Args:
        program: Program path, defaults to ``sys.argv[0]``

    Raises:
        ExecutablePathError: If the program path is unavailable or cannot be resolved
    """
    program = sys.argv[0] if program is None else program
    if not program or program == "-c":
        raise ExecutablePathError("failed to get executable path: program path is not available")
    try:
        program_path = Path(program).resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise ExecutablePathError(f"failed to get executable path: {e}") from e
    return program_path.parent / DEFAULT_DB_FILENAME


@dataclass(slots=True)
class EnricherSettings:
    """Normalized configuration for database provisioning and lookups.

    ``db_path`` of None means the default location next to the program,
    resolved only when needed so that failures surface at startup.
    """

    db_path: Path | None = None
    download_url: str = DEFAULT_DOWNLOAD_URL
    locales: List[str] = field(default_factory=lambda: list(DEFAULT_LOCALES))
    download_timeout: int | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    show_progress: bool = True

    @classmethod
    def from_sources(
        cls,
        config: Mapping[str, Any] | None = None,
        env_prefix: str = "IPENRICH_",
    ) -> "EnricherSettings":
        """Build settings from defaults, optional config mapping, and environment variables.

        Precedence order (highest to lowest):
        1. Explicit config mapping values
        2. Environment variables
        3. Default values
        """
        cfg: dict[str, Any] = {
            "db_path": None,
            "download_url": DEFAULT_DOWNLOAD_URL,
            "locales": list(DEFAULT_LOCALES),
            "download_timeout": None,
            "chunk_size": DEFAULT_CHUNK_SIZE,
            "show_progress": True,
        }

        config_keys: set[str] = set()
        if config:
            config_keys = {k for k, v in config.items() if v is not None}
            cfg.update({k: v for k, v in config.items() if v is not None})

        env = os.environ
        prefix = env_prefix.upper()

        if "db_path" not in config_keys:
            path_override = env.get(f"{prefix}DB_PATH")
            if path_override:
                cfg["db_path"] = path_override

        if "download_url" not in config_keys:
            url_override = env.get(f"{prefix}DOWNLOAD_URL")
            if url_override:
                cfg["download_url"] = url_override.strip()

        if "locales" not in config_keys:
            locales = _split_list(env.get(f"{prefix}LOCALES"))
            if locales:
                cfg["locales"] = locales

        if "download_timeout" not in config_keys:
            timeout = _coerce_int(env.get(f"{prefix}DOWNLOAD_TIMEOUT"), -1)
            if timeout > 0:
                cfg["download_timeout"] = timeout

        if "chunk_size" not in config_keys:
            cfg["chunk_size"] = _coerce_int(env.get(f"{prefix}CHUNK_SIZE"), int(cfg["chunk_size"]))

        if "show_progress" not in config_keys:
            cfg["show_progress"] = _coerce_bool(env.get(f"{prefix}PROGRESS"), bool(cfg["show_progress"]))

        if cfg["db_path"] is not None:
            cfg["db_path"] = Path(cfg["db_path"]).expanduser()
        cfg["locales"] = list(cfg["locales"]) or list(DEFAULT_LOCALES)
        if int(cfg["chunk_size"]) <= 0:
            cfg["chunk_size"] = DEFAULT_CHUNK_SIZE

        return cls(**cfg)

    def resolve_db_path(self) -> Path:
        """Return the configured database path or the program-adjacent default."""
        if self.db_path is not None:
            return self.db_path
        return default_database_path()


def load_settings(
    config: Mapping[str, Any] | None = None,
    env_prefix: str = "IPENRICH_",
) -> EnricherSettings:
    """Convenience wrapper used by CLI entry points."""
    return EnricherSettings.from_sources(config=config, env_prefix=env_prefix)


__all__ = ["EnricherSettings", "default_database_path", "load_settings"]
