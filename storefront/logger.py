"""
Logging configuration for the storefront service.

One `storefront` logger writing to stdout; the level comes from LOG_LEVEL.
"""
import logging
import sys

from .settings import settings

LOG_LEVEL = settings.log_level.upper()
logger = logging.getLogger("storefront")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

# no duplicate lines through the root logger
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """`storefront.<name>`, or the `storefront` logger itself when no name is given."""
    if name:
        return logging.getLogger(f"storefront.{name}")
    return logger
