"""Run a command and annotate IP addresses in its standard output."""

from __future__ import annotations

import argparse
import logging
import os
import subprocess
import sys
from typing import BinaryIO, Iterable, List, NoReturn, Optional

from ipenrich import get_version
from ipenrich.enrichment.errors import DatabaseDownloadError, EnrichmentError
from ipenrich.enrichment.geo_client import GeoDatabaseClient
from ipenrich.enrichment.line_enricher import LineEnricher
from ipenrich.enrichment.provisioner import DatabaseProvisioner
from ipenrich.enrichment.resolver import GeoResolver
from ipenrich.settings import EnricherSettings, load_settings

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on usage errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="ipenrich",
        description="Run a command and annotate IP addresses in its output with their location",
        epilog="Options must precede the command; everything after it is passed to the command.",
        allow_abbrev=False,
    )
    parser.add_argument("--db-path", help="Geo database file (default: next to this program)")
    parser.add_argument("--download-url", help="URL to download the geo database from when it is missing")
    parser.add_argument(
        "--locale",
        dest="locales",
        action="append",
        help="Preferred locale for location names (repeatable, default: en)",
    )
    parser.add_argument(
        "--no-progress",
        dest="show_progress",
        action="store_false",
        default=None,
        help="Do not show a progress bar while downloading the database",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    parser.add_argument("command", nargs="?", help="Command to run")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Arguments for the command")
    return parser


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s [%(levelname)s] %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")


def prepare_database(settings: EnricherSettings) -> GeoDatabaseClient:
    """Provision and load the geo database.

    Raises:
        EnrichmentError: If the program path, download or load step fails
    """
    db_path = settings.resolve_db_path()
    provisioner = DatabaseProvisioner(
        db_path=db_path,
        download_url=settings.download_url,
        chunk_size=settings.chunk_size,
        request_timeout=settings.download_timeout,
        show_progress=settings.show_progress,
    )
    provisioner.ensure_database()

    client = GeoDatabaseClient(db_path, locales=settings.locales)
    client.load()
    return client


def decode_line(raw: bytes) -> str:
    """Strip a trailing ``\\n`` or ``\\r\\n`` and decode.

    Undecodable bytes are carried as surrogates so ``encode_line`` restores
    them unchanged.
    """
    if raw.endswith(b"\n"):
        raw = raw[:-1]
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return raw.decode("utf-8", errors="surrogateescape")


def encode_line(line: str) -> bytes:
    """Encode an output line and terminate it with ``\\n``."""
    return line.encode("utf-8", errors="surrogateescape") + b"\n"


def stream_enriched(source: Iterable[bytes], sink: BinaryIO, enricher: LineEnricher) -> int:
    """Enrich ``source`` line by line into ``sink``, flushing after each line.

    Returns:
        Number of lines written

    Raises:
        OSError: If reading ``source`` or writing ``sink`` fails
    """
    count = 0
    for raw in source:
        sink.write(encode_line(enricher.enrich_line(decode_line(raw))))
        sink.flush()
        count += 1
    return count


def _exit_status(returncode: int) -> int:
    # Popen reports death by signal N as -N
    if returncode < 0:
        return 128 - returncode
    return returncode


def _silence_stdout() -> None:
    devnull = os.open(os.devnull, os.O_WRONLY)
    try:
        os.dup2(devnull, sys.stdout.fileno())
    finally:
        os.close(devnull)


def run_command(command: List[str], enricher: LineEnricher, sink: Optional[BinaryIO] = None) -> int:
    """Run ``command``, enrich its stdout into ``sink`` and return its exit status.

    The child's stderr is inherited and passes through untouched.

    Returns:
        The child's exit status, 128 + N if it was killed by signal N, or 1
        if it could not be started
    """
    sink = sink if sink is not None else sys.stdout.buffer

    try:
        process = subprocess.Popen(command, stdout=subprocess.PIPE)
    except (OSError, ValueError) as e:
        logger.error(f"Error starting command: {e}")
        return EXIT_FAILURE

    assert process.stdout is not None
    with process.stdout:
        try:
            stream_enriched(process.stdout, sink, enricher)
        except BrokenPipeError:
            # Our reader went away; stop and let the child see SIGPIPE
            logger.debug("Output closed by reader")
            if sink is sys.stdout.buffer:
                _silence_stdout()
        except OSError as e:
            logger.error(f"Error reading command output: {e}")
        except KeyboardInterrupt:
            logger.debug("Interrupted, waiting for command to exit")

    try:
        returncode = process.wait()
    except KeyboardInterrupt:
        returncode = process.wait()

    logger.debug(f"Command exited with status {returncode}")
    return _exit_status(returncode)


def main(argv: Iterable[str] | None = None) -> int:
    """Run the enrichment wrapper and return an exit status."""
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if not args.command:
        parser.print_usage(sys.stderr)
        print(f"Example: {parser.prog} ss -nltp", file=sys.stderr)
        return EXIT_FAILURE

    _configure_logging(args.verbose)

    settings = load_settings(
        {
            "db_path": args.db_path,
            "download_url": args.download_url,
            "locales": args.locales,
            "show_progress": args.show_progress,
        }
    )

    try:
        client = prepare_database(settings)
    except DatabaseDownloadError as e:
        logger.error(str(e))
        logger.error(f"Please manually download the database file to: {e.target}")
        logger.error(f"Download URL: {e.url}")
        return EXIT_FAILURE
    except EnrichmentError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    with client:
        enricher = LineEnricher(GeoResolver(client))
        status = run_command([args.command, *args.args], enricher)
        logger.debug(f"Enrichment stats: {enricher.get_stats()}")
        logger.debug(f"Geo lookup stats: {client.get_stats()}")

    return status


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
