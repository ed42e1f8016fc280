"""Logging configuration.

Every module logs through ``logging.getLogger(__name__)``; this sets up
the root handler once for the cron entry point.
"""

import logging

from spotscore.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for batch runs.

    Args:
        level: Explicit level name; defaults to DEBUG in debug mode,
            otherwise ``settings.LOG_LEVEL``.
    """
    if level is None:
        level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)

    # Upstream client chatter
    for noisy in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
