"""
Logging configuration for cli-music-player.

This module sets up the logging system with multiple outputs:
    - Console: colored, compact messages written through tqdm
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages

Log File Locations:
    All log files are created in the 'logs' subdirectory of the directory
    passed to setup_logging(). Each run gets its own timestamped files.

Usage:
    from cli_music_player.core.logger import setup_logging, get_logger

    setup_logging(data_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Connecting to browser")
    logger.warning("Backend failed", extra={'backend': 'proxy', 'reason': '...'})
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Custom formatter that adds colors to console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
        - the record's 'backend' extra field, when present: Cyan
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        message = record.getMessage()
        backend = getattr(record, "backend", None)
        if backend:
            message = message.replace(backend, f"{Colors.CYAN}{backend}{Colors.RESET}", 1)
        return f"{colored_levelname}: {message}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking tqdm progress bars.

    yt-dlp downloads and long container start-ups may show progress bars on
    stderr. This handler uses tqdm.write() so log lines appear above any
    active bar instead of corrupting it.
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class ErrorOnlyFilter(logging.Filter):
    """Filter that only allows ERROR and CRITICAL level records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path, verbose: bool = False) -> Path:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any browser is contacted.

    Args:
        log_dir: Directory under which a 'logs' subdirectory is created.
        verbose: If True, the console handler shows DEBUG messages too.

    Returns:
        Path to the full log file of this run.

    Behavior:
        1. Create log_dir/logs if it doesn't exist
        2. Configure root logger level to DEBUG
        3. Console handler (TqdmLoggingHandler), INFO or DEBUG
        4. Full log file handler, DEBUG
        5. Error log file handler, filtered to ERROR+ by ErrorOnlyFilter

    Thread Safety:
        This function is NOT thread-safe. Call it once from the main
        thread before starting any worker threads.
    """
    logs_dir = log_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_log_path = logs_dir / f"log_full_{timestamp}.log"
    full_handler = logging.FileHandler(full_log_path, mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_log_path = logs_dir / f"log_errors_{timestamp}.log"
    error_handler = logging.FileHandler(error_log_path, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    # Playwright's driver is chatty at DEBUG
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return full_log_path


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.
              This creates a hierarchy like 'cli_music_player.browser.docker'.

    Returns:
        logging.Logger: A logger instance configured by setup_logging().

    Note:
        Loggers obtained before setup_logging() is called will have no
        handlers and will not produce output.
    """
    return logging.getLogger(name)


def format_backend_failure_message(backend: str, reason: str) -> str:
    """
    Format a 'Backend failed' warning message.

    Args:
        backend: Short label of the backend (e.g. "docker:justinribeiro/chrome-headless").
        reason: Failure reason.

    Returns:
        Plain message string. Console colors are added by
        ColoredConsoleFormatter.
    """
    return f"Backend failed: {backend} ({reason})"


def format_connected_message(backend: str) -> str:
    """Format a 'Connected' message."""
    return f"Connected: {backend}"


def log_backend_failure(
    logger: logging.Logger,
    backend: str,
    reason: str,
    position: int
) -> None:
    """
    Log a backend that could not produce a browser connection.

    Args:
        logger: The logger to use for the message.
        backend: Short label of the backend.
        reason: Why the connection attempt failed.
        position: Zero-based priority position of the backend.

    Behavior:
        Logs a WARNING with the plain message and attaches 'backend',
        'backend_position' and 'backend_failure' extra fields so that
        file handlers and tests can inspect the structured data.
    """
    logger.warning(
        format_backend_failure_message(backend, reason),
        extra={
            "backend": backend,
            "backend_position": position,
            "backend_failure": reason,
        }
    )


def shutdown_logging() -> None:
    """
    Properly shut down the logging system.

    Flushes and closes every handler of the root logger and removes them.
    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except (OSError, ValueError):
            pass
        root_logger.removeHandler(handler)
