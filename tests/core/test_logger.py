"""Tests for logging setup."""

import json

import pytest
from loguru import logger

from cadence.core.logger import setup_logger


@pytest.fixture
def reset_logger():
    yield
    setup_logger(level="INFO")


class TestSetupLogger:
    """Bound context reaches every sink."""

    def test_text_file_renders_sorted_context(self, tmp_path, reset_logger):
        log_file = tmp_path / "logs" / "cadence.log"
        setup_logger(level="DEBUG", log_file=str(log_file), compression=None)

        logger.bind(user_id="user-1", enrollment_id="enr-1", week=None).info("Challenge started")
        setup_logger(level="INFO")

        line = next(line for line in log_file.read_text().splitlines() if "Challenge started" in line)
        assert line.endswith("Challenge started enrollment_id=enr-1 user_id=user-1")

    def test_json_file_keeps_bound_fields(self, tmp_path, reset_logger):
        log_file = tmp_path / "cadence.jsonl"
        setup_logger(level="INFO", log_file=str(log_file), serialize=True, compression=None)

        logger.bind(user_id="user-1").warning("Invalid profile timezone, using default")
        setup_logger(level="INFO")

        records = [json.loads(line)["record"] for line in log_file.read_text().splitlines()]
        record = next(r for r in records if r["message"] == "Invalid profile timezone, using default")
        assert record["extra"]["user_id"] == "user-1"
        assert record["level"]["name"] == "WARNING"

    def test_level_filters_file_sink(self, tmp_path, reset_logger):
        log_file = tmp_path / "cadence.log"
        setup_logger(level="WARNING", log_file=str(log_file), compression=None)

        logger.info("Enrollment abandoned")
        logger.error("Persistence operation failed")
        setup_logger(level="INFO")

        content = log_file.read_text()
        assert "Enrollment abandoned" not in content
        assert "Persistence operation failed" in content
