"""First-run download and atomic install of the geo database file."""

from __future__ import annotations

import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import IO, Optional

import requests
from tqdm import tqdm

from .errors import DatabaseDownloadError

logger = logging.getLogger(__name__)

DEFAULT_DB_FILENAME = "GeoLite2-City.mmdb"
DEFAULT_DOWNLOAD_URL = "https://github.com/P3TERX/GeoLite.mmdb/raw/download/GeoLite2-City.mmdb"
DEFAULT_CHUNK_SIZE = 32 * 1024


class DatabaseProvisioner:
    """Guarantee the geo database file exists before it is loaded.

    Existence of the file at ``db_path`` is the only check: no integrity
    or freshness validation is made. A missing file is downloaded once over
    HTTP into a temporary file in the same directory and renamed into place
    on success, so a partial file is never visible under the final name.
    Failures are not retried.

    Example:
        >>> provisioner = DatabaseProvisioner(Path("/opt/ipenrich/GeoLite2-City.mmdb"))
        >>> path = provisioner.ensure_database()
    """

    def __init__(
        self,
        db_path: Path,
        download_url: str = DEFAULT_DOWNLOAD_URL,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        request_timeout: Optional[int] = None,
        show_progress: bool = True,
    ) -> None:
        """Initialize the provisioner.

        Args:
            db_path: Final install path of the database file
            download_url: Source URL fetched when the file is missing
            chunk_size: Read buffer size for the streamed download
            request_timeout: HTTP timeout in seconds, None to wait indefinitely
            show_progress: Render a download progress bar on stderr
        """
        self.db_path = db_path
        self.download_url = download_url
        self.chunk_size = chunk_size
        self.request_timeout = request_timeout
        self.show_progress = show_progress

    def ensure_database(self) -> Path:
        """Return the database path, downloading the file first if it is missing.

        Raises:
            DatabaseDownloadError: If the download, write or rename fails
        """
        if self.db_path.exists():
            logger.debug(f"Geo database present: {self.db_path}")
            return self.db_path

        self.download()
        return self.db_path

    def download(self) -> None:
        """Download the database and atomically install it at ``db_path``.

        Raises:
            DatabaseDownloadError: On network errors, a non-200 status, or
                any filesystem error. The temporary file is removed first.
        """
        print(f"Downloading IP database from {self.download_url}...", file=sys.stderr)
        logger.info(f"Downloading geo database to {self.db_path}")

        tmp_path: Optional[Path] = None
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            with requests.get(self.download_url, stream=True, timeout=self.request_timeout) as response:
                if response.status_code != requests.codes.ok:
                    raise self._error(f"failed to download IP database: HTTP {response.status_code}")

                with tempfile.NamedTemporaryFile(
                    dir=self.db_path.parent,
                    prefix=f"{self.db_path.stem}-",
                    suffix=f"{self.db_path.suffix}.tmp",
                    delete=False,
                ) as handle:
                    tmp_path = Path(handle.name)
                    downloaded = self._copy_body(response, handle)

            os.replace(tmp_path, self.db_path)
            tmp_path = None

        except DatabaseDownloadError:
            raise
        except requests.RequestException as e:
            raise self._error(f"failed to download IP database: {e}") from e
        except OSError as e:
            raise self._error(f"failed to install IP database: {e}") from e
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)

        print("Download complete!", file=sys.stderr)
        logger.info(f"Geo database installed at {self.db_path} ({downloaded} bytes)")

    def _copy_body(self, response: requests.Response, handle: IO[bytes]) -> int:
        """Stream the response body into ``handle`` in fixed-size chunks.

        Returns:
            Number of bytes written
        """
        content_length = response.headers.get("Content-Length")
        total = int(content_length) if content_length and content_length.isdigit() else None

        downloaded = 0
        with tqdm(
            total=total,
            desc="Downloading",
            unit="B",
            unit_scale=True,
            unit_divisor=1024,
            file=sys.stderr,
            disable=not self.show_progress,
        ) as progress:
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                if not chunk:
                    continue
                handle.write(chunk)
                downloaded += len(chunk)
                progress.update(len(chunk))

        return downloaded

    def _error(self, message: str) -> DatabaseDownloadError:
        return DatabaseDownloadError(message, url=self.download_url, target=str(self.db_path))


__all__ = [
    "DatabaseProvisioner",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_DB_FILENAME",
    "DEFAULT_DOWNLOAD_URL",
]
