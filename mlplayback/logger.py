"""
Logging for mlplayback.

The library only creates module loggers; it never configures handlers on
import. Entry points (the demo CLI) call ``setup_logging`` once.

Usage:
    from mlplayback.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Built %d snapshots", len(snapshots))
"""

import logging
import sys

_configured = False


def setup_logging(level="INFO"):
    """Configure root logging. Subsequent calls are no-ops."""
    global _configured
    if _configured:
        return

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
    _configured = True


def get_logger(name):
    """Return a logger for a module (typically ``__name__``)."""
    return logging.getLogger(name)
