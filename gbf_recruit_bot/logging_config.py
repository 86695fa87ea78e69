import logging
import os
import sys

LOGGER_NAME = "gbf_recruit"

# Libraries that are chatty at INFO; raised to WARNING unless debugging.
_NOISY = ("discord", "discord.client", "discord.gateway", "discord.http", "httpx", "aiosqlite")


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv("GBF_LOG_LEVEL", "").strip() or logging.INFO
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """Configure the ``gbf_recruit`` logger tree once and return its root.

    ``level`` may be a number or a level name; without one ``GBF_LOG_LEVEL``
    is consulted. Later calls return the configured logger unchanged.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger  # already configured
    resolved = _resolve_level(level)
    logger.setLevel(resolved)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    if resolved > logging.DEBUG:
        for name in _NOISY:
            logging.getLogger(name).setLevel(logging.WARNING)
    return logger
