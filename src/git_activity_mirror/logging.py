"""Loguru setup and context helpers.

Library modules only call get_logger(), bind_platform() or bind_target().
The embedding application calls setup_logging() once with its Settings to
install sinks; until then loguru's default stderr handler applies.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

    from git_activity_mirror.config import Settings

# Bound extras rendered on the console line, in this order
CONTEXT_KEYS = ("platform", "repo")


class InterceptHandler(logging.Handler):
    """Route stdlib records (httpx, httpcore, githubkit) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        from types import FrameType

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _console_format(record: Record) -> str:
    source = "{extra[name]}" if "name" in record["extra"] else "{name}"
    context = "".join(f" [{key}={{extra[{key}]}}]" for key in CONTEXT_KEYS if key in record["extra"])
    return (
        "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | "
        f"<cyan>{source}</cyan>{context} - <level>{{message}}</level>\n{{exception}}"
    )


def setup_logging(settings: Settings | None = None) -> Logger:
    """Install loguru sinks from Settings.

    Replaces every existing sink with a stderr sink at ``settings.log_level``
    and, when ``settings.logging.log_file`` is set, a rotating DEBUG file
    sink. Stdlib logging is intercepted; httpx request lines only show at
    DEBUG.

    Args:
        settings: Settings to read (defaults to get_settings())

    Returns:
        The configured loguru logger
    """
    if settings is None:
        from git_activity_mirror.config import get_settings

        settings = get_settings()

    file_config = settings.logging
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format=_console_format, colorize=True)

    if file_config.log_file:
        logger.add(
            file_config.log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {extra} | {message}",
            rotation=file_config.rotation,
            retention=file_config.retention,
            serialize=file_config.serialize,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    http_level = logging.DEBUG if settings.log_level == "DEBUG" else logging.WARNING
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(http_level)

    return logger


def get_logger(name: str) -> Logger:
    """Module logger; use ``logger = get_logger(__name__)``."""
    return logger.bind(name=name)


def bind_platform(platform: str) -> Logger:
    """Logger carrying a configured platform name (e.g. "work-gitlab")."""
    return logger.bind(name="mirror", platform=platform)


def bind_target(platform: str, repository: str) -> Logger:
    """Logger carrying a target platform name and its mirror repository."""
    return logger.bind(name="mirror", platform=platform, repo=repository)
