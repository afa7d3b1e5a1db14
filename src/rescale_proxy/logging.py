"""Logging setup for the proxy.

All output goes through loguru. Records emitted by uvicorn through the
standard library are forwarded into the same sinks, so access and error
lines share the proxy's format, level and optional log file.

Example:
    from rescale_proxy.logging import setup_logging

    setup_logging(level="DEBUG", log_file="/var/log/rescale-proxy.log")

"""

import logging
import sys
from typing import Any

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the original caller
        frame, depth = logging.currentframe(), 0
        while frame is not None and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def intercept_uvicorn(level: str) -> None:
    """Route uvicorn's loggers through loguru at the given level."""
    for name in UVICORN_LOGGERS:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.setLevel(level.upper())
        std_logger.propagate = False


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: str | None = None,
) -> Any:
    """Configure loguru for the proxy.

    Call once at startup, before the server is created. Calling it again
    replaces every sink.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Emit one JSON object per record, on stderr and in the file.
        log_file: Optional path of a rotating log file. Parent directories
            are created when missing.

    Returns:
        The configured loguru logger.

    """
    level = level.upper()
    logger.remove()

    if json_output:
        logger.add(sys.stderr, format="{message}", serialize=True, level=level)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        logger.add(
            log_file,
            format="{message}" if json_output else FILE_FORMAT,
            serialize=json_output,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
        )

    intercept_uvicorn(level)
    return logger
