"""
Shared stderr console and logging setup.

Every stratum module logs through logging.getLogger(__name__) and stays silent
until the host calls setup_logging(); faults render on the same console.
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)


def setup_logging(level=logging.WARNING, /):
    """
    Attach a RichHandler to the "stratum" logger (idempotent) and set its level.

    Returns the configured logger.
    """
    logger = logging.getLogger("stratum")
    logger.setLevel(level)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(console=console, show_path=False, rich_tracebacks=True))
    return logger


__all__ = (
    "console",
    "setup_logging",
)
