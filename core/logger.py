"""
Logging configuration for the finance tracker.
Every module logs through setup_logger(__name__). Document text and
credentials are never passed to loggers, only their lengths.
"""
import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that flood the output while reading PDFs and images
NOISY_LOGGERS = ("pdfminer", "pdfplumber", "PIL", "urllib3")


def resolve_level(level: Optional[str] = None) -> int:
    """Numeric level for a level name, falling back to env LOG_LEVEL, then INFO."""
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    return getattr(logging, name, logging.INFO)


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env LOG_LEVEL or INFO.

    Returns:
        Configured logger instance
    """
    log_level = resolve_level(level)

    logger = logging.getLogger(name)
    logger.setLevel(log_level)

    # One stdout handler per logger, even when modules are re-imported
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    return logger


def quiet_third_party(level: int = logging.WARNING) -> None:
    """Raise the threshold of chatty third-party loggers."""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)
