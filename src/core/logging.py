"""
Loguru setup shared by the API and the Telegram bot.

Standard library loggers (uvicorn, httpx, telegram) are routed into loguru
so every component logs through the same sink.
"""

import logging
import sys

from loguru import logger

from .config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level> {extra}"
)


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside the logging module so loguru reports it
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str | None = None, serialize: bool | None = None):
    """
    Configure loguru as the single logging sink.

    Args:
        level: Minimum level (defaults to LOG_LEVEL)
        serialize: Emit JSON lines instead of text (defaults to LOG_JSON)

    Returns:
        The configured loguru logger
    """
    level = (level or settings.log_level).upper()
    serialize = settings.log_json if serialize is None else serialize

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=LOG_FORMAT,
        serialize=serialize,
        backtrace=False,
        diagnose=False,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    # Request URLs carry the bot token
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.INFO)

    return logger
