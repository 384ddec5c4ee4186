"""
Centralized logging configuration for TicketBookingWeb.

Every log line carries the name of the thread that wrote it. Request
threads, ticket-list loader threads and booking submission threads all log
into the same stream, so the thread name is how one screen's activity is
followed across them.

Log Format:
    2026-10-17 10:15:30 [INFO    ] [MainThread] ticket_booking_web.app - Starting application
    2026-10-17 10:15:31 [DEBUG   ] [Loader-tickets] ticket_booking_web.services.snapshot_loader - ...
    2026-10-17 10:15:32 [INFO    ] [Booking-a1b2c3d4] ticket_booking_web.screen.a1b2c3d4 - Booking accepted

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True)

    # In modules
    logger = get_logger(__name__)

    # For one buy screen
    screen_logger = get_screen_logger(screen_id)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union


APP_LOGGER_NAME = "ticket_booking_web"


class ThreadContextFilter(logging.Filter):
    """
    Adds thread_name and thread_id attributes to every record.

    Never filters anything out.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        current_thread = threading.current_thread()
        record.thread_name = current_thread.name
        record.thread_id = threading.get_ident()
        return True


def _rotating_handler(path: Path, level: int, formatter, thread_filter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=10 * 1024 * 1024,  # 10 MB per file
        backupCount=5,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(thread_filter)
    return handler


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure application logging with thread context.

    Console output is always on. With file logging enabled, a rotating
    application log and a separate ERROR-only log are written to log_dir.

    Args:
        app_name: Name of the application root logger
        log_level: Minimum log level (default: INFO)
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write log files

    Returns:
        Configured application root logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False

    # Allows re-configuration (tests, app factory called twice)
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    thread_filter = ThreadContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(thread_filter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        if log_dir is None:
            log_dir = Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log_file = log_dir / f"{app_name}.log"
        logger.addHandler(_rotating_handler(app_log_file, log_level, formatter, thread_filter))
        logger.addHandler(
            _rotating_handler(log_dir / f"{app_name}_error.log", logging.ERROR, formatter, thread_filter)
        )

        logger.info(f"File logging enabled: {app_log_file}")

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the application namespace.

    Example:
        get_logger("services.booking_service")
        # -> "ticket_booking_web.services.booking_service"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


class ScreenLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with a short screen id."""

    def process(self, msg, kwargs):
        return f"[screen {self.extra['screen_id']}] {msg}", kwargs


ScreenLogger = Union[logging.Logger, logging.LoggerAdapter]


def get_screen_logger(screen_id: str) -> ScreenLogger:
    """
    Get the logger for one buy screen.

    All screens share the "screen" logger; the adapter tags each line with
    the first 8 characters of the screen id, which is enough to grep one
    user's session out of the log.
    """
    return ScreenLoggerAdapter(get_logger("screen"), {"screen_id": screen_id[:8]})


def set_thread_name(name: str) -> None:
    """
    Rename the current thread.

    The name shows up in the [thread_name] field of every log line.
    """
    threading.current_thread().name = name
