import logging

import pytest

from telehealth.config.constants import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers added by configure_logging so each test starts clean"""
    app_logger = logging.getLogger(LOGGER_NAME)
    saved_handlers = app_logger.handlers[:]
    saved_level = app_logger.level
    saved_propagate = app_logger.propagate
    yield
    for handler in app_logger.handlers[:]:
        if handler not in saved_handlers:
            handler.close()
            app_logger.removeHandler(handler)
    for handler in saved_handlers:
        if handler not in app_logger.handlers:
            app_logger.addHandler(handler)
    app_logger.setLevel(saved_level)
    app_logger.propagate = saved_propagate
