"""Unit tests for logging configuration."""

import json
from collections.abc import Iterator

import pytest
from loguru import logger

from poll_results.core.logging import setup_logging


@pytest.fixture(autouse=True)
def _remove_sinks() -> Iterator[None]:
    yield
    logger.remove()


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_does_not_raise(self) -> None:
        """setup_logging with valid log level does not raise."""
        setup_logging("DEBUG")
        setup_logging("INFO")
        setup_logging("WARNING")

    def test_setup_logging_case_insensitive(self) -> None:
        """setup_logging accepts case-insensitive log levels."""
        setup_logging("info")
        setup_logging("debug")

    def test_file_sink_created(self, tmp_path) -> None:
        """A log file is written when log_dir is set."""
        log_dir = tmp_path / "logs"
        setup_logging("INFO", log_dir=str(log_dir))
        logger.info("hello from test")
        logger.complete()
        setup_logging("INFO")

        log_file = log_dir / "poll-results.log"
        assert log_file.exists()
        assert "hello from test" in log_file.read_text()

    def test_json_logs(self, capsys) -> None:
        """json_logs writes one JSON object per record to stderr."""
        setup_logging("INFO", json_logs=True)
        logger.info("structured")
        setup_logging("INFO")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        assert json.loads(line)["record"]["message"] == "structured"
