"""
Logging configuration for the marketplace service.

All modules log through children of the ``marketplace`` logger, which writes
to stdout at the level given by ``LOG_LEVEL``.
"""
import logging
import sys

from marketplace.utils.settings import LOG_LEVEL

logger = logging.getLogger("marketplace")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

logger.propagate = False


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: module name, nested under ``marketplace`` unless it already is
    """
    if not name:
        return logger
    if name == "marketplace" or name.startswith("marketplace."):
        return logging.getLogger(name)
    return logging.getLogger(f"marketplace.{name}")
