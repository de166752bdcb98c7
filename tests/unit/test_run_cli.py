"""Unit tests for the command wrapper CLI."""

from __future__ import annotations

import io
import logging
import signal
import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from ipenrich.cli import run as run_cli
from ipenrich.cli.run import decode_line, encode_line, main, run_command, stream_enriched
from ipenrich.enrichment.errors import DatabaseDownloadError, DatabaseLoadError, ExecutablePathError
from ipenrich.enrichment.line_enricher import LineEnricher
from tests.fixtures.enrichment_fixtures import SAMPLE_LOCATIONS, StubGeoClient

PREPARE = "ipenrich.cli.run.prepare_database"


def _child(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestLineCodec:
    """Test decode_line and encode_line."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (b"plain\n", "plain"),
            (b"windows\r\n", "windows"),
            (b"no terminator", "no terminator"),
            (b"\n", ""),
            (b"inner\rcarriage\n", "inner\rcarriage"),
        ],
    )
    def test_decode_strips_terminator(self, raw: bytes, expected: str) -> None:
        """One trailing LF or CRLF is removed."""
        assert decode_line(raw) == expected

    def test_undecodable_bytes_round_trip(self) -> None:
        """Invalid UTF-8 is passed through byte for byte."""
        raw = b"caf\xe9 10.0.0.1\n"

        assert encode_line(decode_line(raw)) == raw

    def test_encode_appends_newline(self) -> None:
        """Output lines always end with LF."""
        assert encode_line("x") == b"x\n"


class TestStreamEnriched:
    """Test stream_enriched."""

    def test_streams_and_counts(self, enricher: LineEnricher) -> None:
        """Every input line produces one enriched output line."""
        sink = io.BytesIO()

        count = stream_enriched([b"a 1.1.1.1 b\r\n", b"nothing\n", b"[::1]"], sink, enricher)

        assert count == 3
        assert sink.getvalue() == b"a 1.1.1.1(XY) b\nnothing\n[::1](Local)\n"


class TestRunCommand:
    """Test run_command with real child processes."""

    def test_enriches_child_output(self, enricher: LineEnricher) -> None:
        """Child stdout is enriched line by line."""
        sink = io.BytesIO()

        status = run_command(_child("print('a 1.1.1.1 b [fd00::1] c'); print('plain')"), enricher, sink)

        assert status == 0
        assert sink.getvalue() == b"a 1.1.1.1(XY) b [fd00::1](Local) c\nplain\n"

    def test_propagates_exit_code(self, enricher: LineEnricher) -> None:
        """The child's exit code is returned verbatim."""
        sink = io.BytesIO()

        status = run_command(_child("import sys; print('127.0.0.1'); sys.exit(3)"), enricher, sink)

        assert status == 3
        assert sink.getvalue() == b"127.0.0.1(Local)\n"

    def test_crlf_and_missing_final_newline(self, enricher: LineEnricher) -> None:
        """CRLF terminators are normalized and a final partial line is kept."""
        sink = io.BytesIO()
        code = "import sys; sys.stdout.buffer.write(b'x 10.0.0.1\\r\\ny 8.8.8.8')"

        run_command(_child(code), enricher, sink)

        assert sink.getvalue() == b"x 10.0.0.1(Local)\ny 8.8.8.8(United StatesCaliforniaMountain View)\n"

    def test_stderr_passes_through_untouched(self, enricher: LineEnricher, capfd: pytest.CaptureFixture[str]) -> None:
        """Child stderr is inherited and never annotated."""
        sink = io.BytesIO()

        run_command(_child("import sys; sys.stderr.write('warn 8.8.8.8\\n')"), enricher, sink)

        assert "warn 8.8.8.8\n" in capfd.readouterr().err
        assert sink.getvalue() == b""

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    def test_signal_exit_status(self, enricher: LineEnricher) -> None:
        """Death by signal N maps to 128 + N."""
        code = "import os, signal; os.kill(os.getpid(), signal.SIGTERM)"

        assert run_command(_child(code), enricher, io.BytesIO()) == 128 + signal.SIGTERM

    def test_command_not_found(self, enricher: LineEnricher, caplog: pytest.LogCaptureFixture) -> None:
        """A child that cannot be started yields exit status 1."""
        with caplog.at_level(logging.ERROR):
            status = run_command(["/nonexistent/definitely-not-a-command"], enricher, io.BytesIO())

        assert status == 1
        assert "Error starting command" in caplog.text

    def test_read_error_still_waits_for_child(self, enricher: LineEnricher, caplog: pytest.LogCaptureFixture) -> None:
        """A stream error is reported and the child's status still returned."""
        with patch.object(run_cli, "stream_enriched", side_effect=OSError("Input/output error")):
            with caplog.at_level(logging.ERROR):
                status = run_command(_child("import sys; sys.exit(4)"), enricher, io.BytesIO())

        assert status == 4
        assert "Error reading command output: Input/output error" in caplog.text


class TestMain:
    """Test the main entry point."""

    def test_missing_command_prints_usage(self, capsys: pytest.CaptureFixture[str]) -> None:
        """No command is a usage error with exit status 1."""
        with patch(PREPARE) as mock_prepare:
            assert main([]) == 1

        err = capsys.readouterr().err
        assert "usage:" in err
        assert "Example: ipenrich ss -nltp" in err
        mock_prepare.assert_not_called()

    def test_unknown_option_exits_with_one(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Invalid wrapper options exit with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--bogus", "ls"])

        assert exc_info.value.code == 1
        assert "unrecognized arguments" in capsys.readouterr().err

    def test_download_failure_prints_recovery_help(self, caplog: pytest.LogCaptureFixture) -> None:
        """Download failures abort before the child starts and explain the manual fix."""
        error = DatabaseDownloadError(
            "failed to download IP database: HTTP 503",
            url="https://example.com/GeoLite2-City.mmdb",
            target="/opt/ipenrich/GeoLite2-City.mmdb",
        )

        with patch(PREPARE, side_effect=error), patch.object(run_cli, "run_command") as mock_run:
            with caplog.at_level(logging.ERROR):
                assert main(["ls"]) == 1

        mock_run.assert_not_called()
        assert "HTTP 503" in caplog.text
        assert "Please manually download the database file to: /opt/ipenrich/GeoLite2-City.mmdb" in caplog.text
        assert "Download URL: https://example.com/GeoLite2-City.mmdb" in caplog.text

    @pytest.mark.parametrize(
        "error",
        [
            ExecutablePathError("failed to get executable path: program path is not available"),
            DatabaseLoadError("failed to load geo database /x.mmdb: corrupt"),
        ],
    )
    def test_startup_errors_exit_one(self, error: Exception, caplog: pytest.LogCaptureFixture) -> None:
        """Path and load failures are fatal with a distinct message."""
        with patch(PREPARE, side_effect=error), patch.object(run_cli, "run_command") as mock_run:
            with caplog.at_level(logging.ERROR):
                assert main(["ls"]) == 1

        mock_run.assert_not_called()
        assert str(error) in caplog.text

    def test_passes_command_and_options(self) -> None:
        """Wrapper options precede the command; everything after goes to the child."""
        client = StubGeoClient(SAMPLE_LOCATIONS)

        with patch(PREPARE, return_value=client) as mock_prepare, patch.object(
            run_cli, "run_command", return_value=7
        ) as mock_run:
            status = main(["--db-path", "/tmp/geo.mmdb", "--locale", "de", "--no-progress", "ss", "-nltp", "-v"])

        assert status == 7
        settings = mock_prepare.call_args.args[0]
        assert settings.db_path == Path("/tmp/geo.mmdb")
        assert settings.locales == ["de"]
        assert settings.show_progress is False
        assert mock_run.call_args.args[0] == ["ss", "-nltp", "-v"]
        assert client.closed

    def test_child_options_matching_wrapper_options(self) -> None:
        """Options after the command belong to the child even if the wrapper knows them."""
        client = StubGeoClient(SAMPLE_LOCATIONS)

        with patch(PREPARE, return_value=client), patch.object(
            run_cli, "run_command", return_value=0
        ) as mock_run, patch.object(run_cli, "_configure_logging") as mock_logging:
            status = main(["grep", "-v", "--version", "--db-path", "foo"])

        assert status == 0
        assert mock_run.call_args.args[0] == ["grep", "-v", "--version", "--db-path", "foo"]
        mock_logging.assert_called_once_with(False)

    def test_prepare_database_wires_settings(self, tmp_path: Path) -> None:
        """The provisioner runs before the client loads from the same path."""
        settings = run_cli.load_settings({"db_path": tmp_path / "geo.mmdb", "show_progress": False})
        provisioner = Mock()
        client = Mock()

        with patch.object(run_cli, "DatabaseProvisioner", return_value=provisioner) as mock_provisioner_class, \
                patch.object(run_cli, "GeoDatabaseClient", return_value=client) as mock_client_class:
            assert run_cli.prepare_database(settings) is client

        mock_provisioner_class.assert_called_once_with(
            db_path=tmp_path / "geo.mmdb",
            download_url=settings.download_url,
            chunk_size=settings.chunk_size,
            request_timeout=None,
            show_progress=False,
        )
        provisioner.ensure_database.assert_called_once_with()
        mock_client_class.assert_called_once_with(tmp_path / "geo.mmdb", locales=["en"])
        client.load.assert_called_once_with()
