"""Logging configuration for BaseCamp."""

import logging

from .config import Config


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredFormatter(logging.Formatter):
    """Prefix messages with the ``operation`` passed through ``extra``."""

    def format(self, record):
        if hasattr(record, 'operation'):
            record = logging.makeLogRecord(record.__dict__)
            record.msg = f"[{record.operation}] {record.msg}"
        return super().format(record)


def setup_logging(config: Config) -> logging.Logger:
    """
    Configure the ``basecamp`` logger hierarchy.

    Returns:
        The top-level ``basecamp`` logger
    """
    level = getattr(logging, config.log_level)

    logger = logging.getLogger('basecamp')
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(handler)
        logger.propagate = False

    # GitPython is chatty at DEBUG
    logging.getLogger('git').setLevel(max(level, logging.INFO))

    return logger
