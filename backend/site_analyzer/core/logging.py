import sys
from typing import Optional

from loguru import logger

from site_analyzer.core.config import settings

_configured_level: Optional[str] = None


def setup_logging(level: Optional[str] = None) -> None:
    """
    Point the loguru sink at stderr (and optionally a log file) with the
    configured level.

    Repeated calls with the same level are no-ops, so long-running callers
    can invoke this from every entry point.
    """
    global _configured_level

    level = (level or settings.LOG_LEVEL).upper()
    if _configured_level == level:
        return

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        backtrace=settings.DEBUG,
        diagnose=settings.DEBUG,
    )
    if settings.LOG_FILE:
        logger.add(settings.LOG_FILE, level=level, rotation="10 MB", retention=5)

    _configured_level = level
    logger.debug(f"Logging configured at level {level}")
