"""Logging setup for the PayHub service."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_handler: logging.Handler | None = None


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``payhub`` logger.

    Safe to call more than once; later calls only change the level.
    """
    global _handler

    logger = logging.getLogger("payhub")
    logger.setLevel(level.upper())

    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(_handler)

    return logger


def reset_logging() -> None:
    """Remove the handler installed by configure_logging (used by tests)."""
    global _handler

    logger = logging.getLogger("payhub")
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)
