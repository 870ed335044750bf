"""
Logging configuration for Tributary.

Console output through rich (or a plain formatter) and optional file output.
"""

import logging
import sys
import threading
import traceback
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with full exception info for errors."""
        result = super().format(record)
        if record.exc_info and not record.exc_text:
            result += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return result


class ConsoleFormatter(logging.Formatter):
    """Plain console format: ``level: timestamp - msg``, with file:line for errors."""

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname}: {self.formatTime(record)} - {record.getMessage()}"
        if record.levelno >= logging.ERROR and record.pathname:
            filename = Path(record.pathname).name
            base = f"{record.levelname}: {self.formatTime(record)} - {filename}:{record.lineno} - {record.getMessage()}"
        return base


# Map string level names to logging constants
LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int) -> int:
    """
    Parse logging level from string or int.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int

    Returns:
        Logging level constant, INFO when unrecognised
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level_upper = level.upper()
        if level_upper in LEVEL_MAP:
            return LEVEL_MAP[level_upper]
    return logging.INFO


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_string: str | None = None,
    file_mode: str = "a",
    console: Console | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logging configuration for Tributary.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int (default: INFO)
        log_file: Optional file path to write logs to (default: None, console only)
        format_string: Optional custom format string for the plain console handler
        file_mode: File mode for file handler - 'a' for append, 'w' for overwrite (default: 'a')
        console: Optional rich Console instance to log through
        console_enabled: Whether to enable console logging (default: True)
        use_rich: Whether to use RichHandler for console output (default: True)

    Returns:
        Logger instance
    """
    logger = logging.getLogger("tributary")

    # Only clear handlers from this specific logger, not root or child loggers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        handler: logging.Handler
        if use_rich:
            handler = RichHandler(
                console=console or Console(stderr=True),
                level=level_int,
                show_time=True,
                show_path=True,
                markup=False,
                rich_tracebacks=True,
                log_time_format="[%X]",
            )
        else:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(level_int)
            handler.setFormatter(logging.Formatter(format_string) if format_string else ConsoleFormatter())
        logger.addHandler(handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode=file_mode)
        # File captures everything; the logger level still filters
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


def setup_logging_from_config(
    config: dict[str, Any], project_dir: Path | None = None, console: Console | None = None
) -> logging.Logger:
    """
    Setup logging from Tributary configuration.

    Args:
        config: Configuration dictionary (reads the 'logging' section)
        project_dir: Optional project directory for resolving relative log file paths
        console: Optional rich Console instance for RichHandler

    Returns:
        Logger instance
    """
    logging_config = config.get("logging") or {}

    level = logging_config.get("level", logging.INFO)
    file_mode = logging_config.get("file_mode", "a")
    format_string = logging_config.get("format")
    console_enabled = logging_config.get("console_enabled", True)
    console_type = logging_config.get("console_type", "rich")

    log_file = None
    if logging_config.get("file_enabled", True):
        log_file = logging_config.get("file") or logging_config.get("log_file")

    if log_file and project_dir:
        log_file = Path(log_file)
        if not log_file.is_absolute():
            log_file = project_dir / log_file

    return setup_logging(
        level=level,
        log_file=log_file,
        format_string=format_string,
        file_mode=file_mode,
        console=console,
        console_enabled=console_enabled,
        use_rich=console_type == "rich",
    )


# Track if logging has been set up to avoid duplicate setup
_logging_setup_done = False
_logging_setup_lock = threading.Lock()


def _auto_setup_logging() -> None:
    """
    Set up logging from the global config the first time a logger is requested.

    Does nothing until a config has been loaded, and nothing if handlers are
    already attached to the ``tributary`` logger.
    """
    global _logging_setup_done

    if _logging_setup_done:
        return

    tributary_logger = logging.getLogger("tributary")
    if tributary_logger.handlers:
        _logging_setup_done = True
        return

    with _logging_setup_lock:
        if _logging_setup_done or tributary_logger.handlers:
            _logging_setup_done = True
            return

        from tributary.config.singleton import get_config

        config_obj = get_config()
        if config_obj is None:
            return

        setup_logging_from_config(config_obj.data)
        _logging_setup_done = True


def get_logger(name: str = "tributary") -> logging.Logger:
    """
    Get a logger instance.

    Automatically sets up logging from global config if not already configured.

    Args:
        name: Logger name (default: "tributary")

    Returns:
        Logger instance
    """
    _auto_setup_logging()

    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
