"""
Logging configuration for spot-ripper.

This module sets up the logging system with multiple outputs:
    - Console: Real-time messages with tqdm-compatible formatting
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages
    - download_failures.log: Links of the tracks that could not be ripped

The logging system follows the principle: everything to screen is also saved
to file, then filtered into specialized files.

The failure report is line-oriented on purpose: every failed track is
written as its open.spotify.com link preceded by a "#" comment line, so the
file can be piped straight back into spot-ripper to retry the failures.

Log File Locations:
    All log files are created in the log directory (by default
    <output directory>/logs). Each run gets its own timestamped files.

Usage:
    from spot_ripper.core.logger import setup_logging, get_logger

    setup_logging(log_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Starting batch")
    log_track_failure(logger, identifier, "Song Title", "No playable alternative")
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

TRACK_URL_PREFIX = "https://open.spotify.com/track/"


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
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to the console without breaking progress bars.

    Uses tqdm.write(), which prints above any active bar instead of
    interleaving with its carriage-return updates.

    Attributes:
        stream: The output stream (defaults to sys.stderr).
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


class TrackFailureHandler(logging.Handler):
    """
    Custom handler that captures per-track failures for the failure report.

    This handler listens for log records that contain track failure
    information and writes them to download_failures.log:

        # Song Title: No playable alternative
        https://open.spotify.com/track/4cOdK2wGLETKBW3PvgPWqT

    The handler looks for specific extra fields in log records:
        - 'failed_track_token': The base62 token of the track
        - 'failed_track_name': Display name (optional, may be empty)
        - 'failed_track_reason': Short failure reason

    Only records containing 'failed_track_token' are written to the report.

    Attributes:
        report_path: Path to the report file.
        report_file: Open file handle (opened by open()).
    """

    def __init__(self, report_path: Path) -> None:
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """
        Open the report file for writing.

        Called by setup_logging() after handler is created.
        File is opened in write mode (overwrites existing content).
        """
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        if not hasattr(record, "failed_track_token"):
            return

        if self.report_file is None:
            return

        try:
            token = getattr(record, "failed_track_token")
            name = getattr(record, "failed_track_name", "") or token
            reason = getattr(record, "failed_track_reason", "")

            # Reasons may span lines (ffmpeg stderr); keep the comment on one
            reason = " ".join(str(reason).split())

            self.report_file.write(f"# {name}: {reason}\n")
            self.report_file.write(f"{TRACK_URL_PREFIX}{token}\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """
        Close the report file handle.

        Called automatically when logging is shut down.
        Safe to call multiple times.
        """
        if self.report_file is not None:
            self.report_file.close()
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """
    Filter that only allows ERROR and CRITICAL level records.

    Used by the error log file handler to exclude DEBUG, INFO, and WARNING.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(log_dir: Path, verbose: bool = False) -> Path:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any other operations.

    Args:
        log_dir: Directory where log files will be created. Created if
                 it doesn't exist.
        verbose: If True the console shows DEBUG messages as well.

    Returns:
        Path of this run's failure report file.

    Behavior:
        1. Create log_dir if it doesn't exist
        2. Generate timestamp for this run's log files
        3. Configure root logger level to DEBUG
        4. Console handler (TqdmLoggingHandler), INFO or DEBUG, no timestamp
        5. log_full_{timestamp}.log, DEBUG, full format
        6. log_errors_{timestamp}.log, ERROR+ via ErrorOnlyFilter
        7. download_failures_{timestamp}.log via TrackFailureHandler

    Thread Safety:
        This function is NOT thread-safe. Call it once from the main
        thread before starting any worker threads.
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_log_path = log_dir / f"log_full_{timestamp}.log"
    full_handler = logging.FileHandler(full_log_path, mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_log_path = log_dir / f"log_errors_{timestamp}.log"
    error_handler = logging.FileHandler(error_log_path, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    failures_path = log_dir / f"download_failures_{timestamp}.log"
    failure_handler = TrackFailureHandler(failures_path)
    failure_handler.open()
    root_logger.addHandler(failure_handler)

    # librespot and urllib3 are chatty at DEBUG
    for noisy in ("librespot", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return failures_path


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.

    Returns:
        logging.Logger: A logger instance configured by setup_logging().

    Note:
        Loggers obtained before setup_logging() is called will have no
        handlers and will not produce output.
    """
    return logging.getLogger(name)


def log_track_failure(
    logger: logging.Logger,
    token: str,
    name: str,
    reason: str
) -> None:
    """
    Log a track that could not be processed.

    Attaches the extra fields TrackFailureHandler picks up, so the track
    ends up in download_failures.log as well as in the normal logs.

    Args:
        logger: The logger to use for the message.
        token: The base62 catalog token of the track.
        name: The track name if known, else an empty string.
        reason: Description of why the track failed.

    Example:
        log_track_failure(
            logger,
            token="4cOdK2wGLETKBW3PvgPWqT",
            name="Song Title",
            reason="No acceptable format"
        )
    """
    label = name or token
    logger.error(
        f"Failed: {label} - {reason}",
        extra={
            "failed_track_token": token,
            "failed_track_name": name,
            "failed_track_reason": reason,
        }
    )


def shutdown_logging() -> None:
    """
    Properly shut down the logging system.

    Flushes and closes every handler on the root logger, then removes
    them. Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        handler.flush()
        handler.close()
        root_logger.removeHandler(handler)
