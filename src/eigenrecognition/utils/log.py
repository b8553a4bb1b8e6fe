"""Logging helpers"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name):
    """Return the module logger for ``name``."""
    logger = logging.getLogger(name)
    return logger


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for command line use.

    Library modules only create loggers; handlers are installed here.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
