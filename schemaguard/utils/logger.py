"""Logging utilities for schemaguard."""

import logging
import sys
from pathlib import Path
from typing import Optional
from ..config import settings


def setup_logger(
    name: str,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up a logger with console and optional file handlers.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Get level from config if not provided
    if level is None:
        level = settings.get("logging.level", "INFO")

    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    log_format = settings.get(
        "logging.format",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is None:
        log_file = settings.get("logging.log_file")

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def shorten(text: Optional[str], limit: int = 80) -> str:
    """Collapse whitespace and truncate text for single-line log messages.

    Args:
        text: Text to shorten (SQL, DDL, model output)
        limit: Maximum number of characters kept

    Returns:
        Shortened text, suffixed with '...' when truncated
    """
    if not text:
        return ""
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[:limit] + "..."


# Global logger instance for the package
logger = setup_logger("schemaguard")
