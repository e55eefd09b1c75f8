"""
Unit tests for logging setup.
"""
import logging

from core.logger import NOISY_LOGGERS, quiet_third_party, resolve_level, setup_logger


def test_setup_logger_single_handler():
    """Repeated setup does not stack handlers."""
    logger = setup_logger("tests.logger.single")
    setup_logger("tests.logger.single")
    assert len(logger.handlers) == 1


def test_explicit_level():
    logger = setup_logger("tests.logger.debug", level="DEBUG")
    assert logger.level == logging.DEBUG


def test_resolve_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    assert resolve_level() == logging.WARNING
    assert resolve_level("bogus") == logging.INFO


def test_quiet_third_party():
    quiet_third_party()
    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING
