"""
Tests for logging setup.
"""

import logging

import pytest
from rich.logging import RichHandler

from tributary.utils.logging import (
    ConsoleFormatter,
    FileFormatter,
    _parse_level,
    get_logger,
    setup_logging,
    setup_logging_from_config,
)


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger("tributary")
    level = logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)


@pytest.mark.unit
class TestParseLevel:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("debug", logging.DEBUG),
            ("WARNING", logging.WARNING),
            (logging.ERROR, logging.ERROR),
            ("chatty", logging.INFO),
            (None, logging.INFO),
        ],
    )
    def test_parse_level(self, value, expected):
        assert _parse_level(value) == expected


@pytest.mark.unit
class TestSetupLogging:
    def test_rich_console_by_default(self):
        logger = setup_logging("DEBUG")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_plain_console(self):
        logger = setup_logging("INFO", use_rich=False)
        handler = logger.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert isinstance(handler.formatter, ConsoleFormatter)

    def test_repeated_setup_replaces_handlers(self):
        setup_logging("INFO")
        logger = setup_logging("INFO")
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "tributary.log"
        logger = setup_logging("INFO", log_file=log_file, console_enabled=False)
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, FileFormatter)

        get_logger("tributary.test").info("edge recorded")
        for handler in logger.handlers:
            handler.flush()
        content = log_file.read_text()
        assert "tributary.test: edge recorded" in content
        assert "[INFO    ]" in content

    def test_from_config_resolves_relative_file(self, tmp_path):
        config = {"logging": {"level": "WARNING", "file": "logs/app.log", "console_enabled": False}}
        logger = setup_logging_from_config(config, tmp_path)
        assert logger.level == logging.WARNING
        assert logger.handlers[0].baseFilename == str(tmp_path / "logs" / "app.log")

    def test_from_config_file_disabled(self, tmp_path):
        config = {"logging": {"file": "logs/app.log", "file_enabled": False, "console_type": "plain"}}
        logger = setup_logging_from_config(config, tmp_path)
        assert len(logger.handlers) == 1
        assert not (tmp_path / "logs").exists()


@pytest.mark.unit
class TestConsoleFormatter:
    def test_errors_include_location(self):
        record = logging.LogRecord("tributary", logging.ERROR, "/src/tributary/core/state.py", 42, "boom", None, None)
        assert "state.py:42 - boom" in ConsoleFormatter().format(record)

    def test_info_omits_location(self):
        record = logging.LogRecord("tributary", logging.INFO, "/src/tributary/core/state.py", 42, "hello", None, None)
        formatted = ConsoleFormatter().format(record)
        assert formatted.startswith("INFO: ")
        assert "state.py" not in formatted
