import logging

import pytest

from gp_playoffs.logging_config import ROOT_LOGGER_NAME, configure_logging, log_service_call


def test_configure_logging_adds_a_single_handler():
    logger = configure_logging("warning")
    handlers = list(logger.handlers)
    assert logger.name == ROOT_LOGGER_NAME
    assert logger.level == logging.WARNING

    again = configure_logging("info")
    assert again is logger
    assert again.handlers == handlers
    assert again.level == logging.INFO


def test_log_service_call_reports_success(caplog):
    @log_service_call
    def compute(year, today=None):
        return year + 1

    with caplog.at_level(logging.DEBUG):
        assert compute(2024, today="2024-05-01") == 2025

    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("SERVICE CALL: ") and "2024, today='2024-05-01'" in m for m in messages)
    assert any(m.startswith("SERVICE OK: ") for m in messages)


def test_log_service_call_reraises(caplog):
    @log_service_call
    def broken(year):
        raise ValueError(f"no season {year}")

    with caplog.at_level(logging.INFO):
        with pytest.raises(ValueError):
            broken(1999)

    failures = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(failures) == 1
    assert "ValueError: no season 1999" in failures[0].getMessage()
