#!/usr/bin/env python3
"""
Logging configuration for the story context cache and its tooling.
Provides console logging plus optional file logging with rotation.
"""

import logging
import logging.handlers
from datetime import datetime
from pathlib import Path

LOGS_DIR = Path(__file__).parent / "logs"

LOG_FORMAT = "[%(asctime)s] %(name)s [%(levelname)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str, log_file: str, level=logging.INFO, console_output: bool = True, file_output: bool = True):
    """
    Set up a logger with file and/or console handlers.

    Args:
        name: Logger name (e.g., 'story_cache')
        log_file: Log file name under LOGS_DIR (e.g., 'story_cache.log')
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console_output: Enable console output (default: True)
        file_output: Enable rotating file output (default: True)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if file_output:
        LOGS_DIR.mkdir(exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            LOGS_DIR / log_file,
            maxBytes=5 * 1024 * 1024,  # 5 MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def setup_error_logger(name: str, error_log_file: str, file_output: bool = True):
    """
    Set up a separate logger for ERROR and CRITICAL messages only.

    Without file output the logger propagates to the root handlers.
    """
    error_logger = logging.getLogger(name)
    error_logger.setLevel(logging.ERROR)

    if error_logger.handlers or not file_output:
        return error_logger

    formatter = logging.Formatter(
        fmt=LOG_FORMAT + "\nLocation: %(pathname)s:%(lineno)d in %(funcName)s\n",
        datefmt=DATE_FORMAT,
    )

    LOGS_DIR.mkdir(exist_ok=True)
    error_handler = logging.handlers.RotatingFileHandler(
        LOGS_DIR / error_log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)
    error_logger.addHandler(error_handler)

    return error_logger


def get_story_cache_logger(debug: bool = False, file_output: bool = False):
    """
    Get configured loggers for the story cache.

    The main logger is named 'story_cache'; library modules log under their
    own module names and reach the console through the root logger.

    Returns:
        Tuple of (main_logger, error_logger)
    """
    level = logging.DEBUG if debug else logging.INFO

    main_logger = setup_logger(
        name="story_cache",
        log_file="story_cache.log",
        level=level,
        console_output=True,
        file_output=file_output,
    )
    main_logger.propagate = False
    if debug:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT, datefmt=DATE_FORMAT)

    error_logger = setup_error_logger(
        name="story_cache_errors", error_log_file="story_cache_error.log", file_output=file_output
    )

    return main_logger, error_logger


def log_startup_info(logger, app_name: str, version: str = "1.0.0"):
    """Log startup information."""
    logger.info("=" * 70)
    logger.info(f"{app_name} Starting")
    logger.info(f"Version: {version}")
    logger.info(f"Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    logger.info("=" * 70)


def log_exception(logger, error_logger, exception: Exception, context: str = ""):
    """Log an exception to both main and error logs."""
    msg = f"{context}: {type(exception).__name__}: {str(exception)}" if context else str(exception)
    logger.error(msg, exc_info=True)
    error_logger.error(msg, exc_info=True)
