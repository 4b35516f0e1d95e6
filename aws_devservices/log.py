"""Logging setup for the aws_devservices package."""

import logging

LOG_FORMAT = "%(levelname)s:%(name)s:%(lineno)s:%(message)s"


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """Attach a single stream handler to the package logger."""
    logger = logging.getLogger("aws_devservices")
    logger.setLevel(level.upper())

    if not any(getattr(h, "_aws_devservices", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._aws_devservices = True
        logger.addHandler(handler)
    logger.propagate = False
    return logger
