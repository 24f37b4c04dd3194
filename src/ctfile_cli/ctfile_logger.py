"""
Logger used throughout ctfile_cli.
"""

import logging
import sys

LOGGER_NAME = "ctfile_cli"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class CtfileLogger:
    """
    Thin wrapper over a stdlib logger, called as ``logger.log(message, level)``.
    """

    def __init__(self, name: str = LOGGER_NAME) -> None:
        self.logger = logging.getLogger(name)

    def log(self, message: str, level: int) -> None:
        """
        Log a single-line message at the given level.

        Args:
            message: The message to log. Newlines are flattened.
            level: A ``logging`` level such as ``logging.INFO``
        """
        self.logger.log(level, message.replace("\n", " "))


def configure_logging(verbose: bool = False, stream=None) -> logging.Logger:
    """
    Install a single stderr handler on the ``ctfile_cli`` logger.

    Calling it again replaces the previous handler, so the CLI can be
    invoked repeatedly in one process (tests do this).
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    return logger
