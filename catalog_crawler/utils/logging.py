from __future__ import annotations

import logging
import os

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

# Libraries that are chatty at INFO and drown the crawl log.
_QUIET_LOGGERS = ("asyncio", "aiohttp.access")


def setup_logging(level: str | int | None = None) -> None:
    """
    Configure application logging with a consistent formatter.
    Falls back to CATALOG_LOG_LEVEL, then INFO.
    """
    if level is None:
        level = os.getenv("CATALOG_LOG_LEVEL", "INFO")

    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
