"""
Logging Configuration
The quoting modules log under the 'printquote' namespace and never attach handlers
themselves; a host process calls setup_logging() once to see that output.
"""
import logging
import sys
from typing import Optional

LOGGER_NAME = "printquote"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(module: str) -> logging.Logger:
    """Child logger of the printquote namespace, e.g. 'printquote.mesh_parser'."""
    return logging.getLogger(f"{LOGGER_NAME}.{module}")


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Routes 'printquote' records to stdout and, optionally, to a UTF-8 file.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.

    Calling it again replaces the handlers of the previous call.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))
    for h in handlers:
        h.setLevel(level)
        h.setFormatter(formatter)
        logger.addHandler(h)
    return logger
