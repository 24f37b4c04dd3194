import logging

import pytest

from ctfile_cli.ctfile_logger import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_ctfile_logger():
    """Drop handlers installed by configure_logging so they never outlive a test's captured streams."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
